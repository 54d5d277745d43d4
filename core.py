"""
LaraFlow Core - Shared logic for schema analysis and export

This module contains the core components shared by main.py (CLI), the REPL and
web_server.py (Web UI):
- SchemaBuilder: Fold extracted migration blocks into one schema snapshot
- resolve_relations(): Infer relation edges from foreign keys and model declarations
- run_analysis(): The whole pipeline over a file set
- export_schema(): Render the analysis in one of the export modes
- SchemaSession: Current file set + analysis, with edit-back of table changes

Note: For reading files, use parser_factory.load_project_files() which classifies
paths and parser_factory.extract_file() which dispatches to the extractors.
"""
import sys
import dataclasses
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Any, Iterable, Optional, Set, Tuple

import structlog

sys.path.insert(0, str(Path(__file__).parent))

from Schema.schema_model import (
    Column, ColumnType, ForeignKey, Table, Model, DeclaredRelation, RelationEdge,
    RelationKind, SourceFile, SourceKind, SchemaSnapshot
)
from Schema.naming import pluralize, singularize, snake_case
from Schema.adapters import MySQLAdapter, EloquentAdapter, TypeScriptAdapter, ShellAdapter
from Schema.adapters.migration_adapter import (
    MIGRATION_DIR, generate_migration_file, migration_file_names, rewrite_table_block
)
from grammar.migration_extractor import TableBlock, extract_migration
from parser_factory import extract_file
from config import IDENTIFIER_SUFFIX, PRIMARY_IDENTIFIER

logger = structlog.get_logger(__name__)

EXPORT_MODES = ("sql", "typescript", "models", "migrations", "shell", "json")


def chronological(sources: Iterable[SourceFile]) -> List[SourceFile]:
    """
    Order migrations by file name.

    Laravel prefixes migration names with a fixed-width timestamp
    (2024_01_31_120000_...), so plain string order is creation order.
    Path breaks ties between equally named files in different folders.
    """
    return sorted(sources, key=lambda s: (s.name, s.path))


# ============================================================================
# SCHEMA BUILDER
# ============================================================================

class SchemaBuilder:
    """Fold migration blocks and model records into a SchemaSnapshot."""

    def __init__(self):
        self.snapshot = SchemaSnapshot()
        self.changes: List[str] = []

    def build(self, sources: Iterable[SourceFile]) -> SchemaSnapshot:
        """Extract and fold every migration (in chronological order) and model file."""
        sources = list(sources)
        for source in chronological(s for s in sources if s.kind is SourceKind.MIGRATION):
            self.apply_migration(extract_file(source), source.path)
        for source in sources:
            if source.kind is SourceKind.MODEL:
                model = extract_file(source)
                if model is not None:
                    self.add_model(model)
        return self.snapshot

    def apply_migration(self, blocks: List[TableBlock], path: str = "") -> None:
        for block in blocks:
            if block.reverse:
                logger.debug("reverse_block_skipped", table=block.table, path=path)
                continue
            handler = getattr(self, f"_handle_{block.kind}", None)
            if handler:
                handler(block, path)

    def add_model(self, model: Model) -> None:
        if model.class_name in self.snapshot.models:
            logger.debug("model_redefined", model=model.class_name, path=model.file_path)
        self.snapshot.models[model.class_name] = model
        self.changes.append(f"MODEL:{model.class_name}")

    def _handle_create(self, block: TableBlock, path: str) -> None:
        if block.table in self.snapshot.tables:
            logger.debug("table_redefined", table=block.table, path=path)
        self.snapshot.tables[block.table] = Table(
            name=block.table,
            columns=[dataclasses.replace(c) for c in block.columns],
            foreign_keys=list(block.foreign_keys),
        )
        self._record_source(block.table, path)
        self.changes.append(f"CREATE:{block.table}")

    def _handle_alter(self, block: TableBlock, path: str) -> None:
        table = self.snapshot.tables.get(block.table)
        if table is None:
            logger.debug("alter_target_missing", table=block.table, path=path)
            return

        for old_name, new_name in block.renamed:
            column = table.get_column(old_name)
            if column is None:
                continue
            if table.get_column(new_name) is not None:
                logger.debug("rename_target_exists", table=block.table, column=old_name, target=new_name)
                continue
            column.name = new_name
            table.foreign_keys = [
                ForeignKey(new_name, fk.referenced_table) if fk.column == old_name else fk
                for fk in table.foreign_keys
            ]
            self.changes.append(f"RENAME:{block.table}.{old_name}->{new_name}")

        dropped = set(block.dropped)
        if dropped:
            table.columns = [c for c in table.columns if c.name not in dropped]
            table.foreign_keys = [fk for fk in table.foreign_keys if fk.column not in dropped]
            self.changes.extend(f"DROP:{block.table}.{name}" for name in block.dropped)

        for column_name in self._dropped_foreign_columns(table, block.dropped_foreign):
            table.foreign_keys = [fk for fk in table.foreign_keys if fk.column != column_name]
            column = table.get_column(column_name)
            if column:
                column.is_foreign_key = False

        for column in block.columns:
            index = table.column_index(column.name)
            if index >= 0:
                table.columns[index] = dataclasses.replace(column)
            else:
                table.columns.append(dataclasses.replace(column))
            self.changes.append(f"COLUMN:{block.table}.{column.name}")

        for fk in block.foreign_keys:
            table.foreign_keys = [existing for existing in table.foreign_keys if existing.column != fk.column]
            table.foreign_keys.append(fk)

        self._record_source(block.table, path)

    @staticmethod
    def _dropped_foreign_columns(table: Table, names: List[str]) -> List[str]:
        """dropForeign accepts column names or the index name {table}_{column}_foreign."""
        columns = []
        for name in names:
            if table.get_column(name):
                columns.append(name)
            elif name.startswith(f"{table.name}_") and name.endswith("_foreign"):
                columns.append(name[len(table.name) + 1:-len("_foreign")])
        return columns

    def _record_source(self, table_name: str, path: str) -> None:
        self.snapshot.sources.setdefault(table_name, []).append(path)


# ============================================================================
# RELATION RESOLVER
# ============================================================================

def declared_relations(models: Iterable[Model]) -> List[DeclaredRelation]:
    """Flatten model relation methods into DeclaredRelation records."""
    return [
        DeclaredRelation(model.class_name, rel.kind, rel.target_class, rel.method_name)
        for model in models
        for rel in model.relations
    ]


def _is_reference_column(column: Column) -> bool:
    return column.name != PRIMARY_IDENTIFIER and column.name.endswith(IDENTIFIER_SUFFIX)


def _reference_target(table: Table, column: Column, lowered: Dict[str, str],
                      tables: Dict[str, Table]) -> Optional[str]:
    """
    Target table for a foreign-key column.

    Naming convention first: plural base, singular base, bare base.
    An explicit constraint target is the fallback.
    """
    if _is_reference_column(column):
        base = column.name[:-len(IDENTIFIER_SUFFIX)].lower()
        for candidate in (pluralize(base), singularize(base), base):
            if candidate in lowered:
                return lowered[candidate]

    fk = table.foreign_key_for(column.name)
    if fk and fk.referenced_table in tables:
        return fk.referenced_table
    return None


def _model_name_map(tables: Dict[str, Table]) -> Dict[str, str]:
    """Lower-cased table names plus their singular forms -> table name."""
    name_map = {}
    for name in tables:
        name_map.setdefault(name.lower(), name)
    for name in tables:
        name_map.setdefault(singularize(name.lower()), name)
    return name_map


def _resolve_model_table(model_name: str, name_map: Dict[str, str], tables: Dict[str, Table],
                         model_tables: Dict[str, str]) -> Optional[str]:
    bound = model_tables.get(model_name)
    if bound in tables:
        return bound
    for candidate in (model_name.lower(), snake_case(model_name)):
        for key in (pluralize(candidate), candidate):
            if key in name_map:
                return name_map[key]
    return None


def resolve_relations(tables: Dict[str, Table], declared: Iterable[DeclaredRelation] = (),
                      model_tables: Optional[Dict[str, str]] = None) -> List[RelationEdge]:
    """
    Produce the edge set to render.

    Foreign-key edges are produced first, in table then column declaration
    order; declared relations follow. At most one edge is kept per unordered
    table pair, so a declared relation between tables already joined by a
    foreign key is dropped, and so is a second foreign key between the same
    two tables.

    Args:
        tables: tableName -> Table
        declared: relations stated by models (or by a suggestion)
        model_tables: class name -> bound table name, consulted before name matching

    Returns:
        List of RelationEdge with unique edge_id
    """
    model_tables = model_tables or {}
    edges: List[RelationEdge] = []
    linked: Set[str] = set()
    edge_ids: Set[str] = set()

    def add(edge: RelationEdge) -> bool:
        if edge.source == edge.target:
            return False
        if edge.pair_key in linked or edge.edge_id in edge_ids:
            logger.debug("relation_edge_suppressed", edge=edge.edge_id)
            return False
        linked.add(edge.pair_key)
        edge_ids.add(edge.edge_id)
        edges.append(edge)
        return True

    lowered = {name.lower(): name for name in tables}
    for table in tables.values():
        for column in table.columns:
            if not (_is_reference_column(column) or table.foreign_key_for(column.name)):
                continue
            target = _reference_target(table, column, lowered, tables)
            if target is None:
                logger.debug("reference_target_missing", table=table.name, column=column.name)
                continue
            add(RelationEdge(table.name, target, RelationKind.BELONGS_TO, column.name))

    name_map = _model_name_map(tables)
    for relation in declared:
        source = _resolve_model_table(relation.from_model, name_map, tables, model_tables)
        target = _resolve_model_table(relation.to_model, name_map, tables, model_tables)
        if source is None or target is None:
            logger.debug("declared_relation_unresolved", relation=relation.to_dict())
            continue
        add(RelationEdge(source, target, relation.kind))

    return edges


# ============================================================================
# ANALYSIS
# ============================================================================

@dataclass
class AnalysisResult:
    """One pipeline run: the snapshot, its edges and the builder's change log."""
    snapshot: SchemaSnapshot
    edges: List[RelationEdge] = field(default_factory=list)
    changes: List[str] = field(default_factory=list)
    migration_count: int = 0
    model_count: int = 0

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "migrations": self.migration_count,
            "models": self.model_count,
            "tables": len(self.snapshot.tables),
            "relations": len(self.edges),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.snapshot.to_dict(),
            "edges": [e.to_dict() for e in self.edges],
            "orphan_tables": self.snapshot.orphan_tables(),
            "orphan_models": self.snapshot.orphan_models(),
            "stats": self.stats,
        }


def analyze_snapshot(snapshot: SchemaSnapshot) -> List[RelationEdge]:
    model_tables = {m.class_name: m.table_name for m in snapshot.models.values()}
    return resolve_relations(snapshot.tables, declared_relations(snapshot.models.values()), model_tables)


def run_analysis(sources: Iterable[SourceFile]) -> AnalysisResult:
    """
    Run extraction, building and relation resolution over a file set.

    Args:
        sources: classified SourceFiles (OTHER entries are ignored)

    Returns:
        AnalysisResult with a fresh snapshot
    """
    sources = list(sources)
    builder = SchemaBuilder()
    snapshot = builder.build(sources)
    result = AnalysisResult(
        snapshot=snapshot,
        edges=analyze_snapshot(snapshot),
        changes=builder.changes,
        migration_count=sum(1 for s in sources if s.kind is SourceKind.MIGRATION),
        model_count=sum(1 for s in sources if s.kind is SourceKind.MODEL),
    )
    logger.info("analysis_complete", **result.stats)
    return result


# ============================================================================
# EXPORT
# ============================================================================

def migration_files(snapshot: SchemaSnapshot) -> List[Tuple[str, str]]:
    """(path, content) of a fresh migration per table, referenced tables first."""
    tables = MySQLAdapter._sort_tables_by_dependency(snapshot)
    names = migration_file_names([t.name for t in tables])
    return [(f"{MIGRATION_DIR}/{name}", generate_migration_file(table)) for name, table in zip(names, tables)]


def export_schema(analysis: AnalysisResult, mode: str) -> str:
    """
    Render the analysis in one export mode.

    Args:
        analysis: result of run_analysis()
        mode: one of EXPORT_MODES

    Returns:
        The artifact text
    """
    mode = mode.lower()
    snapshot = analysis.snapshot

    if mode == "sql":
        return MySQLAdapter.export_to_sql(snapshot)
    elif mode == "typescript":
        return TypeScriptAdapter.export_interfaces(snapshot)
    elif mode == "models":
        return EloquentAdapter.export_models(snapshot, analysis.edges)
    elif mode == "migrations":
        return "\n\n// -----------------------------------------\n\n".join(
            content for _, content in migration_files(snapshot)
        )
    elif mode == "shell":
        files = migration_files(snapshot) + EloquentAdapter.model_files(snapshot, analysis.edges)
        return ShellAdapter.export_script(files)
    elif mode == "json":
        return snapshot.to_json()
    else:
        raise ValueError(f"Unknown export mode: {mode}. Available: {list(EXPORT_MODES)}")


# ============================================================================
# SESSION (edit-back loop)
# ============================================================================

class SchemaSession:
    """
    Current file set and its analysis.

    Edits are written back into migration source and the whole pipeline is
    re-run; a previous AnalysisResult is never mutated.
    """

    def __init__(self, sources: Optional[Iterable[SourceFile]] = None, root: Optional[Path] = None):
        self.sources: List[SourceFile] = list(sources or [])
        self.root = Path(root) if root else None
        self.dirty: Set[str] = set()
        self.analysis = run_analysis(self.sources)

    @property
    def snapshot(self) -> SchemaSnapshot:
        return self.analysis.snapshot

    def load(self, sources: Iterable[SourceFile], root: Optional[Path] = None) -> AnalysisResult:
        self.sources = list(sources)
        self.root = Path(root) if root else None
        self.dirty = set()
        return self.refresh()

    def refresh(self) -> AnalysisResult:
        self.analysis = run_analysis(self.sources)
        return self.analysis

    def replace_sources(self, sources: Iterable[SourceFile]) -> AnalysisResult:
        """Swap in a whole new file set, e.g. one generated from a suggestion."""
        self.sources = list(sources)
        self.dirty = {s.path for s in self.sources}
        return self.refresh()

    def save(self) -> List[Path]:
        """Write edited or generated files below the project root."""
        if self.root is None:
            raise ValueError("Session has no project root to save into")
        written = []
        for source in self.sources:
            if source.path not in self.dirty:
                continue
            target = self.root / source.path.lstrip("/")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source.content, encoding='utf-8')
            written.append(target)
        self.dirty = set()
        return written

    def creating_source(self, table_name: str) -> Optional[SourceFile]:
        """First migration (chronologically) whose up() creates the table."""
        migrations = chronological(s for s in self.sources if s.kind is SourceKind.MIGRATION)
        for source in migrations:
            for block in extract_migration(source.content):
                if block.is_create and not block.reverse and block.table == table_name:
                    return source
        return None

    def apply_table_edit(self, table_name: str, columns: List[Column],
                         foreign_keys: Optional[List[ForeignKey]] = None) -> bool:
        """
        Write a table's full new column list back into its creating migration.

        Returns False (and leaves the session untouched) when the table has no
        creating migration or the rewrite changes nothing.
        """
        source = self.creating_source(table_name)
        if source is None:
            logger.debug("edit_back_source_missing", table=table_name)
            return False

        if foreign_keys is None:
            table = self.snapshot.get_table(table_name)
            names = {c.name for c in columns}
            foreign_keys = [fk for fk in (table.foreign_keys if table else []) if fk.column in names]

        new_text = rewrite_table_block(source.content, table_name, columns, foreign_keys)
        if new_text == source.content:
            return False

        edited = source.with_content(new_text)
        self.sources = [edited if s is source else s for s in self.sources]
        self.dirty.add(edited.path)
        self.refresh()
        logger.info("table_edited", table=table_name, path=source.path, columns=len(columns))
        return True

    def _current_columns(self, table_name: str) -> Optional[List[Column]]:
        table = self.snapshot.get_table(table_name)
        if table is None:
            return None
        return [dataclasses.replace(c) for c in table.columns]

    def add_column(self, table_name: str, name: str, column_type: ColumnType, nullable: bool = False) -> bool:
        columns = self._current_columns(table_name)
        if columns is None or any(c.name == name for c in columns):
            return False
        columns.append(Column(
            name=name,
            type=column_type,
            is_primary_key=column_type.is_auto_increment,
            is_foreign_key=column_type is ColumnType.FOREIGN_ID,
            nullable=nullable,
        ))
        return self.apply_table_edit(table_name, columns)

    def drop_column(self, table_name: str, name: str) -> bool:
        columns = self._current_columns(table_name)
        if columns is None or not any(c.name == name for c in columns):
            return False
        return self.apply_table_edit(table_name, [c for c in columns if c.name != name])

    def rename_column(self, table_name: str, old_name: str, new_name: str) -> bool:
        columns = self._current_columns(table_name)
        if columns is None or not any(c.name == old_name for c in columns):
            return False
        if any(c.name == new_name for c in columns):
            return False
        table = self.snapshot.get_table(table_name)
        foreign_keys = []
        for fk in table.foreign_keys:
            foreign_keys.append(ForeignKey(new_name, fk.referenced_table) if fk.column == old_name else fk)
        for column in columns:
            if column.name == old_name:
                column.name = new_name
        return self.apply_table_edit(table_name, columns, foreign_keys)
