"""
TypeScript Adapter - Export tables as TypeScript interfaces for frontend code.
"""
from typing import Dict

from ..schema_model import ColumnType, SchemaSnapshot, Table
from ..naming import table_to_model
from config import AUDIT_COLUMNS


class TypeScriptAdapter:
    """Adapter to render one exported interface per table."""

    # ColumnType -> TypeScript type as serialized by Laravel's JSON responses
    TYPE_MAP: Dict[ColumnType, str] = {
        ColumnType.ID: 'number',
        ColumnType.FOREIGN_ID: 'number',
        ColumnType.UUID: 'string',
        ColumnType.STRING: 'string',
        ColumnType.TEXT: 'string',
        ColumnType.INTEGER: 'number',
        ColumnType.BIG_INTEGER: 'number',
        ColumnType.UNSIGNED_BIG_INTEGER: 'number',
        ColumnType.BOOLEAN: 'boolean',
        ColumnType.DECIMAL: 'number',
        ColumnType.FLOAT: 'number',
        ColumnType.DATE: 'string',
        ColumnType.DATETIME: 'string',
        ColumnType.TIMESTAMP: 'string',
        ColumnType.TIME: 'string',
        ColumnType.JSON: 'Record<string, unknown>',
        ColumnType.BINARY: 'string',
    }

    @classmethod
    def export_interface(cls, table: Table) -> str:
        lines = [f"export interface {table_to_model(table.name)} {{"]
        for column in table.columns:
            optional = "?" if column.nullable else ""
            lines.append(f"  {column.name}{optional}: {cls.TYPE_MAP[column.type]};")
        for audit in AUDIT_COLUMNS:
            if not table.get_column(audit):
                lines.append(f"  {audit}?: string;")
        lines.append("}")
        return "\n".join(lines)

    @classmethod
    def export_interfaces(cls, snapshot: SchemaSnapshot) -> str:
        blocks = ["// Generated by LaraFlow"]
        blocks.extend(cls.export_interface(table) for table in snapshot.tables.values())
        return "\n\n".join(blocks) + "\n"
