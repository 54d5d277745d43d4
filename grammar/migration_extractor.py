"""
Migration Extractor - pull table blocks out of Laravel migration source.

Extraction is pattern based and best effort: a statement that does not match
the column grammar is skipped, an unclosed block is skipped, and nothing here
raises for malformed input. Callers get fewer records, never an exception.

Supported forms inside a Schema::create / Schema::table closure:
    $table->id();                                  identifier shorthand
    $table->string('title')->nullable();           column + modifier chain
    $table->foreignId('user_id')->constrained();   foreign identifier
    $table->foreignIdFor(User::class);
    $table->morphs('taggable');                    taggable_id + taggable_type
    $table->foreign('user_id')->references('id')->on('users');
    $table->softDeletes();  $table->rememberToken();
    $table->dropColumn(['a', 'b']);  $table->renameColumn('a', 'b');
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog

from Schema.schema_model import Column, ColumnType, ForeignKey
from Schema.naming import model_to_table, pluralize, snake_case
from config import IDENTIFIER_SUFFIX, PRIMARY_IDENTIFIER
from .php_scanner import find_matching_brace, mask_comments, quoted_strings, statement_end

logger = structlog.get_logger(__name__)

BLOCK_CREATE = "create"
BLOCK_ALTER = "alter"

_BLOCK_HEAD = re.compile(
    r"Schema::(create|table)\s*\(\s*(['\"])(\w+)\2\s*,\s*(?:static\s+)?function\s*"
    r"\(\s*(?:\\?[\w\\]*Blueprint\s+)?\$(\w+)\s*\)\s*(?::\s*void\s*)?(?:use\s*\([^)]*\)\s*)?\{"
)
_DOWN_METHOD = re.compile(r"function\s+down\s*\([^)]*\)\s*(?::\s*\w+\s*)?\{")
_FIRST_ARG = re.compile(r"\s*(['\"])([\w.]*)\1")
_CLASS_ARG = re.compile(r"\s*\\?([\w\\]+)::class")
_QUOTED_CLASS_ARG = re.compile(r"\s*['\"]\\?([\w\\]+)['\"]")
_SECOND_ARG = re.compile(r"\s*,\s*(['\"])(\w+)\1")
_MODIFIER_ARG = r"->\s*{name}\s*\(\s*(?:(['\"])(\w+)\1)?"

_NULLABLE = re.compile(r"->\s*nullable\s*\(\s*(false)?")
_PRIMARY = re.compile(r"->\s*primary\s*\(")
_CONSTRAINED = re.compile(_MODIFIER_ARG.format(name="constrained"))
_ON = re.compile(_MODIFIER_ARG.format(name="on"))

_TIMESTAMP_HELPERS = {"timestamps", "timestampsTz", "nullableTimestamps"}
MORPH_HELPERS = {
    "morphs": (ColumnType.UNSIGNED_BIG_INTEGER, False),
    "nullableMorphs": (ColumnType.UNSIGNED_BIG_INTEGER, True),
    "uuidMorphs": (ColumnType.UUID, False),
    "nullableUuidMorphs": (ColumnType.UUID, True),
}


@dataclass
class TableBlock:
    """One Schema::create or Schema::table closure."""
    table: str
    kind: str
    columns: List[Column] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    dropped_foreign: List[str] = field(default_factory=list)
    renamed: List[Tuple[str, str]] = field(default_factory=list)
    reverse: bool = False           # inside the migration's down() method
    body_start: int = 0             # offset just past the opening brace
    body_end: int = 0               # offset of the closing brace

    @property
    def is_create(self) -> bool:
        return self.kind == BLOCK_CREATE


# ============================================================================
# BLOCK DISCOVERY
# ============================================================================

def find_table_blocks(text: str) -> List[Tuple[str, str, str, int, int]]:
    """Locate table closures: (kind, table, var_name, body_start, body_end).

    Offsets refer to the original text. Unclosed blocks are dropped.
    """
    masked = mask_comments(text)
    blocks = []
    for m in _BLOCK_HEAD.finditer(masked):
        open_index = m.end() - 1
        close_index = find_matching_brace(masked, open_index)
        if close_index is None:
            logger.debug("table_block_unclosed", table=m.group(3), offset=m.start())
            continue
        kind = BLOCK_CREATE if m.group(1) == "create" else BLOCK_ALTER
        blocks.append((kind, m.group(3), m.group(4), open_index + 1, close_index))
    return blocks


def _down_span(masked: str) -> Optional[Tuple[int, int]]:
    m = _DOWN_METHOD.search(masked)
    if not m:
        return None
    close_index = find_matching_brace(masked, m.end() - 1)
    return m.start(), (close_index if close_index is not None else len(masked))


def extract_migration(text: str) -> List[TableBlock]:
    """Extract every table block of one migration file, in textual order."""
    masked = mask_comments(text)
    down = _down_span(masked)
    result = []

    for kind, table, var_name, body_start, body_end in find_table_blocks(text):
        block = TableBlock(table=table, kind=kind, body_start=body_start, body_end=body_end)
        block.reverse = bool(down and down[0] <= body_start < down[1])
        _parse_body(block, masked[body_start:body_end], var_name)
        result.append(block)

    return result


# ============================================================================
# BODY PARSING
# ============================================================================

def _parse_body(block: TableBlock, body: str, var_name: str) -> None:
    head_re = re.compile(r"\$" + re.escape(var_name) + r"\s*->\s*(\w+)\s*\(")
    identifier: Optional[Column] = None
    constraints: List[Tuple[str, str]] = []

    for head in head_re.finditer(body):
        method = head.group(1)
        end = statement_end(body, head.start())
        statement = body[head.start():end]
        args_offset = head.end() - head.start()
        tail = statement[args_offset:]
        name_match = _FIRST_ARG.match(tail)
        name = name_match.group(2) if name_match else None

        if method == "id":
            identifier = Column(name or PRIMARY_IDENTIFIER, ColumnType.ID, is_primary_key=True)
        elif method in _TIMESTAMP_HELPERS:
            continue
        elif method in MORPH_HELPERS:
            _add_morphs(block, method, name)
        elif method in ("softDeletes", "softDeletesTz"):
            _upsert(block.columns, Column(name or "deleted_at", ColumnType.TIMESTAMP, nullable=True))
        elif method == "rememberToken":
            _upsert(block.columns, Column("remember_token", ColumnType.STRING, nullable=True))
        elif method == "foreign":
            target = _modifier_arg(_ON, tail)
            if name and target:
                constraints.append((name, target))
            else:
                logger.debug("foreign_constraint_skipped", table=block.table, statement=statement.strip())
        elif method == "foreignIdFor":
            _add_foreign_id_for(block, tail)
        elif method == "dropColumn":
            block.dropped.extend(quoted_strings(tail))
        elif method == "dropForeign":
            block.dropped_foreign.extend(quoted_strings(tail))
        elif method == "dropMorphs":
            if name:
                block.dropped.extend([f"{name}_id", f"{name}_type"])
        elif method == "dropSoftDeletes":
            block.dropped.append("deleted_at")
        elif method == "dropRememberToken":
            block.dropped.append("remember_token")
        elif method == "renameColumn":
            args = quoted_strings(tail)
            if len(args) >= 2:
                block.renamed.append((args[0], args[1]))
        else:
            _add_column(block, method, name, tail, statement)

    if identifier is not None:
        block.columns = [identifier] + [c for c in block.columns if c.name != identifier.name]

    for column_name, target in constraints:
        column = next((c for c in block.columns if c.name == column_name), None)
        if column:
            column.is_foreign_key = True
        block.foreign_keys = [fk for fk in block.foreign_keys if fk.column != column_name]
        block.foreign_keys.append(ForeignKey(column_name, target))


def _add_column(block: TableBlock, method: str, name: Optional[str], tail: str, statement: str) -> None:
    column_type = ColumnType.from_builder(method)
    if column_type is None:
        return
    if not name:
        logger.debug("column_statement_skipped", table=block.table, statement=statement.strip())
        return

    nullable = _NULLABLE.search(tail)
    column = Column(
        name=name,
        type=column_type,
        is_primary_key=column_type.is_auto_increment or bool(_PRIMARY.search(tail))
        or (column_type is ColumnType.UUID and name == PRIMARY_IDENTIFIER),
        nullable=bool(nullable and not nullable.group(1)),
    )

    target = _modifier_arg(_CONSTRAINED, tail) or _modifier_arg(_ON, tail)
    if column_type is ColumnType.FOREIGN_ID or method == "foreignUuid" or target:
        column.is_foreign_key = True
        block.foreign_keys = [fk for fk in block.foreign_keys if fk.column != name]
        block.foreign_keys.append(ForeignKey(name, target or _guess_target(name)))

    _upsert(block.columns, column)


def _add_morphs(block: TableBlock, method: str, prefix: Optional[str]) -> None:
    if not prefix:
        return
    id_type, nullable = MORPH_HELPERS[method]
    _upsert(block.columns, Column(f"{prefix}_id", id_type, is_foreign_key=True, nullable=nullable))
    _upsert(block.columns, Column(f"{prefix}_type", ColumnType.STRING, nullable=nullable))


def _add_foreign_id_for(block: TableBlock, tail: str) -> None:
    m = _CLASS_ARG.match(tail) or _QUOTED_CLASS_ARG.match(tail)
    if not m:
        logger.debug("foreign_id_for_skipped", table=block.table)
        return
    class_name = m.group(1).split("\\")[-1]
    rest = tail[m.end():]

    explicit = _SECOND_ARG.match(rest)
    name = explicit.group(2) if explicit else f"{snake_case(class_name)}{IDENTIFIER_SUFFIX}"
    nullable = _NULLABLE.search(rest)
    _upsert(block.columns, Column(name, ColumnType.FOREIGN_ID, is_foreign_key=True,
                                  nullable=bool(nullable and not nullable.group(1))))
    block.foreign_keys = [fk for fk in block.foreign_keys if fk.column != name]
    block.foreign_keys.append(ForeignKey(name, _modifier_arg(_CONSTRAINED, rest) or model_to_table(class_name)))


# ============================================================================
# HELPERS
# ============================================================================

def _modifier_arg(pattern: re.Pattern, tail: str) -> Optional[str]:
    m = pattern.search(tail)
    return m.group(2) if m and m.group(2) else None


def _guess_target(column_name: str) -> str:
    """user_id -> users (Laravel's constrained() convention)."""
    base = column_name[:-len(IDENTIFIER_SUFFIX)] if column_name.endswith(IDENTIFIER_SUFFIX) else column_name
    return pluralize(base)


def _upsert(columns: List[Column], column: Column) -> None:
    for i, existing in enumerate(columns):
        if existing.name == column.name:
            columns[i] = column
            return
    columns.append(column)
