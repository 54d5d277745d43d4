"""
MySQL Adapter - Export the schema snapshot to MySQL DDL.
One CREATE TABLE statement per table, InnoDB / utf8mb4.
"""
from typing import Dict, List

from ..schema_model import ColumnType, Table, SchemaSnapshot
from config import AUDIT_COLUMNS, PRIMARY_IDENTIFIER


class MySQLAdapter:
    """Adapter to render Table records as MySQL CREATE TABLE statements."""

    # ColumnType -> MySQL column type
    TYPE_MAP: Dict[ColumnType, str] = {
        ColumnType.ID: 'BIGINT AUTO_INCREMENT',
        ColumnType.FOREIGN_ID: 'BIGINT',
        ColumnType.UUID: 'CHAR(36)',
        ColumnType.STRING: 'VARCHAR(255)',
        ColumnType.TEXT: 'TEXT',
        ColumnType.INTEGER: 'INT',
        ColumnType.BIG_INTEGER: 'BIGINT',
        ColumnType.UNSIGNED_BIG_INTEGER: 'BIGINT UNSIGNED',
        ColumnType.BOOLEAN: 'BOOLEAN',
        ColumnType.DECIMAL: 'DECIMAL(8, 2)',
        ColumnType.FLOAT: 'FLOAT',
        ColumnType.DATE: 'DATE',
        ColumnType.DATETIME: 'DATETIME',
        ColumnType.TIMESTAMP: 'TIMESTAMP',
        ColumnType.TIME: 'TIME',
        ColumnType.JSON: 'JSON',
        ColumnType.BINARY: 'BLOB',
    }

    TABLE_OPTIONS = "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"

    @classmethod
    def export_table(cls, table: Table) -> str:
        """Export a single table to a CREATE TABLE statement."""
        lines = []
        primary_columns = [c for c in table.columns if c.is_primary_key]
        inline_primary = len(primary_columns) == 1 and not primary_columns[0].type.is_auto_increment

        for column in table.columns:
            line = f"  `{column.name}` {cls.TYPE_MAP[column.type]}"
            if not column.nullable:
                line += " NOT NULL"
            if inline_primary and column.is_primary_key:
                line += " PRIMARY KEY"
            lines.append(line)

        for audit in AUDIT_COLUMNS:
            lines.append(f"  `{audit}` TIMESTAMP NULL DEFAULT NULL")

        if primary_columns and not inline_primary:
            keys = ", ".join(f"`{c.name}`" for c in primary_columns)
            lines.append(f"  PRIMARY KEY ({keys})")

        for fk in table.foreign_keys:
            lines.append(
                f"  CONSTRAINT `fk_{table.name}_{fk.column}` FOREIGN KEY (`{fk.column}`) "
                f"REFERENCES `{fk.referenced_table}` (`{PRIMARY_IDENTIFIER}`) ON DELETE CASCADE"
            )

        body = ",\n".join(lines)
        return f"CREATE TABLE `{table.name}` (\n{body}\n) {cls.TABLE_OPTIONS};"

    @classmethod
    def export_to_sql(cls, snapshot: SchemaSnapshot) -> str:
        """
        Export every table of the snapshot as one script.

        Referenced tables are emitted before the tables that reference them,
        so the script can be run top to bottom.
        """
        lines = []
        lines.append("-- MySQL Schema (Generated by LaraFlow)")
        lines.append(f"-- Tables: {len(snapshot.tables)}")
        lines.append("")

        for table in cls._sort_tables_by_dependency(snapshot):
            lines.append(cls.export_table(table))
            lines.append("")

        return "\n".join(lines)

    @classmethod
    def _sort_tables_by_dependency(cls, snapshot: SchemaSnapshot) -> List[Table]:
        """Sort tables so that referenced tables come before referencing tables."""
        dependencies = {}
        for table in snapshot.tables.values():
            dependencies[table.name] = {
                fk.referenced_table for fk in table.foreign_keys
                if fk.referenced_table != table.name
            }

        sorted_names = []
        visited = set()

        def visit(name):
            if name in visited:
                return
            visited.add(name)
            for dep in sorted(dependencies.get(name, [])):
                if dep in dependencies:
                    visit(dep)
            sorted_names.append(name)

        for name in dependencies:
            visit(name)

        return [snapshot.tables[name] for name in sorted_names]
