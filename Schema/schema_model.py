# Schema Model - tables, columns and model declarations reconstructed from Laravel sources

from enum import Enum
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
import json

from .naming import model_to_table


# ============================================================================
# ENUMS
# ============================================================================

class ColumnType(str, Enum):
    """Semantic column type. Values are the Laravel builder method spellings."""
    ID = "id"                                       # surrogate auto-increment key
    FOREIGN_ID = "foreignId"
    UUID = "uuid"
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BIG_INTEGER = "bigInteger"
    UNSIGNED_BIG_INTEGER = "unsignedBigInteger"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"
    FLOAT = "float"
    DATE = "date"
    DATETIME = "dateTime"
    TIMESTAMP = "timestamp"
    TIME = "time"
    JSON = "json"
    BINARY = "binary"

    @property
    def is_auto_increment(self) -> bool:
        return self is ColumnType.ID

    @classmethod
    def from_builder(cls, method: str) -> Optional['ColumnType']:
        """Map a Blueprint method name to a type, or None when it is not a column."""
        return BUILDER_ALIASES.get(method)

    @classmethod
    def from_token(cls, token: str) -> Optional['ColumnType']:
        """Lenient lookup used for externally supplied payloads ("bigIncrements", "STRING")."""
        if not token:
            return None
        found = BUILDER_ALIASES.get(token)
        if found:
            return found
        lowered = token.lower()
        for method, column_type in BUILDER_ALIASES.items():
            if method.lower() == lowered:
                return column_type
        return None


class RelationKind(str, Enum):
    HAS_MANY = "hasMany"
    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    BELONGS_TO_MANY = "belongsToMany"

    @property
    def is_singular(self) -> bool:
        return self in (RelationKind.BELONGS_TO, RelationKind.HAS_ONE)

    @classmethod
    def from_keyword(cls, keyword: str) -> Optional['RelationKind']:
        try:
            return cls(keyword)
        except ValueError:
            return None


class SourceKind(str, Enum):
    MIGRATION = "migration"
    MODEL = "model"
    OTHER = "other"


# Blueprint method -> semantic type. Methods absent here are not column declarations.
BUILDER_ALIASES: Dict[str, ColumnType] = {
    "id": ColumnType.ID,
    "bigIncrements": ColumnType.ID,
    "increments": ColumnType.ID,
    "foreignId": ColumnType.FOREIGN_ID,
    "uuid": ColumnType.UUID,
    "ulid": ColumnType.UUID,
    "foreignUuid": ColumnType.UUID,
    "string": ColumnType.STRING,
    "char": ColumnType.STRING,
    "enum": ColumnType.STRING,
    "set": ColumnType.STRING,
    "ipAddress": ColumnType.STRING,
    "macAddress": ColumnType.STRING,
    "text": ColumnType.TEXT,
    "tinyText": ColumnType.TEXT,
    "mediumText": ColumnType.TEXT,
    "longText": ColumnType.TEXT,
    "integer": ColumnType.INTEGER,
    "tinyInteger": ColumnType.INTEGER,
    "smallInteger": ColumnType.INTEGER,
    "mediumInteger": ColumnType.INTEGER,
    "unsignedInteger": ColumnType.INTEGER,
    "unsignedTinyInteger": ColumnType.INTEGER,
    "unsignedSmallInteger": ColumnType.INTEGER,
    "bigInteger": ColumnType.BIG_INTEGER,
    "unsignedBigInteger": ColumnType.UNSIGNED_BIG_INTEGER,
    "boolean": ColumnType.BOOLEAN,
    "decimal": ColumnType.DECIMAL,
    "unsignedDecimal": ColumnType.DECIMAL,
    "float": ColumnType.FLOAT,
    "double": ColumnType.FLOAT,
    "date": ColumnType.DATE,
    "dateTime": ColumnType.DATETIME,
    "dateTimeTz": ColumnType.DATETIME,
    "timestamp": ColumnType.TIMESTAMP,
    "timestampTz": ColumnType.TIMESTAMP,
    "time": ColumnType.TIME,
    "timeTz": ColumnType.TIME,
    "year": ColumnType.INTEGER,
    "json": ColumnType.JSON,
    "jsonb": ColumnType.JSON,
    "binary": ColumnType.BINARY,
}


# ============================================================================
# TABLES
# ============================================================================

@dataclass
class Column:
    name: str
    type: ColumnType
    is_primary_key: bool = False
    is_foreign_key: bool = False
    nullable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "is_primary_key": self.is_primary_key,
            "is_foreign_key": self.is_foreign_key,
            "nullable": self.nullable,
        }


@dataclass(frozen=True)
class ForeignKey:
    column: str
    referenced_table: str

    def to_dict(self) -> Dict[str, str]:
        return {"column": self.column, "referenced_table": self.referenced_table}


@dataclass
class Table:
    name: str
    columns: List[Column] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)

    @property
    def is_pivot(self) -> bool:
        """Display heuristic: role_user with two foreign keys is a join table."""
        return "_" in self.name and not self.name.endswith("s") and len(self.foreign_keys) >= 2

    @property
    def primary_key(self) -> Optional[Column]:
        return next((c for c in self.columns if c.is_primary_key), None)

    def get_column(self, name: str) -> Optional[Column]:
        return next((c for c in self.columns if c.name == name), None)

    def column_index(self, name: str) -> int:
        for i, c in enumerate(self.columns):
            if c.name == name:
                return i
        return -1

    def foreign_key_for(self, column_name: str) -> Optional[ForeignKey]:
        return next((fk for fk in self.foreign_keys if fk.column == column_name), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "foreign_keys": [fk.to_dict() for fk in self.foreign_keys],
            "is_pivot": self.is_pivot,
        }


# ============================================================================
# MODELS & RELATIONS
# ============================================================================

@dataclass(frozen=True)
class ModelRelation:
    method_name: str
    kind: RelationKind
    target_class: str

    def to_dict(self) -> Dict[str, str]:
        return {"method": self.method_name, "kind": self.kind.value, "target": self.target_class}


@dataclass
class Model:
    """An Eloquent class. Correlated with a Table by name only."""
    class_name: str
    table_name: str = ""
    relations: List[ModelRelation] = field(default_factory=list)
    file_path: str = ""
    explicit_table: bool = False

    def __post_init__(self):
        if not self.table_name:
            self.table_name = model_to_table(self.class_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.class_name,
            "table": self.table_name,
            "explicit_table": self.explicit_table,
            "relations": [r.to_dict() for r in self.relations],
            "file_path": self.file_path,
        }


@dataclass(frozen=True)
class DeclaredRelation:
    """A relation stated between two model names (from a model file or a suggestion)."""
    from_model: str
    kind: RelationKind
    to_model: str
    method_name: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "fromModel": self.from_model,
            "type": self.kind.value,
            "toModel": self.to_model,
            "methodName": self.method_name,
        }


@dataclass(frozen=True)
class RelationEdge:
    source: str
    target: str
    kind: RelationKind
    origin_column: Optional[str] = None

    @property
    def edge_id(self) -> str:
        return f"{self.source}-{self.target}-{self.origin_column or self.kind.value}"

    @property
    def pair_key(self) -> str:
        return ":".join(sorted((self.source, self.target)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.edge_id,
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
            "origin_column": self.origin_column,
        }


# ============================================================================
# SOURCE FILES & SNAPSHOT
# ============================================================================

@dataclass(frozen=True)
class SourceFile:
    path: str
    name: str
    content: str
    kind: SourceKind = SourceKind.OTHER

    def with_content(self, content: str) -> 'SourceFile':
        return SourceFile(path=self.path, name=self.name, content=content, kind=self.kind)


@dataclass
class SchemaSnapshot:
    """tableName -> Table, plus models and per-table source traceability.

    Built in one pass by core.SchemaBuilder and replaced wholesale on change.
    """
    tables: Dict[str, Table] = field(default_factory=dict)
    models: Dict[str, Model] = field(default_factory=dict)
    sources: Dict[str, List[str]] = field(default_factory=dict)

    def get_table(self, name: str) -> Optional[Table]:
        return self.tables.get(name)

    def orphan_tables(self) -> List[str]:
        modelled = {m.table_name for m in self.models.values()}
        return [name for name in self.tables if name not in modelled]

    def orphan_models(self) -> List[str]:
        return [m.class_name for m in self.models.values() if m.table_name not in self.tables]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tables": {n: t.to_dict() for n, t in self.tables.items()},
            "models": {n: m.to_dict() for n, m in self.models.items()},
            "sources": {n: list(p) for n, p in self.sources.items()},
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


__all__ = [
    'ColumnType', 'RelationKind', 'SourceKind', 'BUILDER_ALIASES',
    'Column', 'ForeignKey', 'Table',
    'ModelRelation', 'Model', 'DeclaredRelation', 'RelationEdge',
    'SourceFile', 'SchemaSnapshot'
]
