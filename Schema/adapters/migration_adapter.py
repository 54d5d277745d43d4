"""
Migration Adapter - Render column lists back into Laravel migration source.

Two uses:
- generate_migration_file(): a complete anonymous-class migration for a table
- rewrite_table_block(): edit-back into an existing migration. The body of the
  table's Schema::create closure is regenerated in full from the new column
  list; every byte outside that closure body is left untouched. Comments and
  hand formatting inside the rewritten body are not preserved.
"""
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import structlog

from ..schema_model import Column, ColumnType, ForeignKey, Table
from ..naming import pluralize
from config import AUDIT_COLUMNS, IDENTIFIER_SUFFIX, PRIMARY_IDENTIFIER
from grammar.migration_extractor import BLOCK_CREATE, MORPH_HELPERS, find_table_blocks

logger = structlog.get_logger(__name__)

MIGRATION_DIR = "database/migrations"
INDENT_STEP = "    "

_FIRST_STATEMENT_INDENT = re.compile(r"\n([ \t]*)\S")
_MORPH_HELPER_BY_SHAPE = {shape: method for method, shape in MORPH_HELPERS.items()}


# ============================================================================
# STATEMENT RENDERING
# ============================================================================

def _default_target(column_name: str) -> str:
    base = column_name[:-len(IDENTIFIER_SUFFIX)] if column_name.endswith(IDENTIFIER_SUFFIX) else column_name
    return pluralize(base)


def _constrained(column: Column, foreign_key: Optional[ForeignKey]) -> str:
    if foreign_key and foreign_key.referenced_table != _default_target(column.name):
        return f"->constrained('{foreign_key.referenced_table}')"
    return "->constrained()"


def render_column_statement(column: Column, foreign_key: Optional[ForeignKey] = None,
                            var_name: str = "table") -> str:
    """One Blueprint statement for a column, e.g. "$table->string('title')->nullable();"."""
    nullable = "->nullable()" if column.nullable else ""

    if column.type is ColumnType.ID:
        if column.name == PRIMARY_IDENTIFIER:
            return f"${var_name}->id();"
        return f"${var_name}->id('{column.name}');"

    if column.type is ColumnType.FOREIGN_ID:
        return (f"${var_name}->foreignId('{column.name}'){nullable}"
                f"{_constrained(column, foreign_key)}->cascadeOnDelete();")

    if column.type is ColumnType.UUID and column.is_foreign_key and foreign_key:
        return (f"${var_name}->foreignUuid('{column.name}'){nullable}"
                f"{_constrained(column, foreign_key)}->cascadeOnDelete();")

    primary = "->primary()" if column.is_primary_key else ""
    return f"${var_name}->{column.type.value}('{column.name}'){nullable}{primary};"


def _morph_helpers(columns: List[Column], fk_by_column: Dict[str, ForeignKey]) -> Dict[str, str]:
    """{prefix}_id -> morphs helper name, for id/type column pairs a morphs() call would produce."""
    by_name = {c.name: c for c in columns}
    helpers = {}
    for column in columns:
        if not column.is_foreign_key or column.name in fk_by_column or not column.name.endswith(IDENTIFIER_SUFFIX):
            continue
        prefix = column.name[:-len(IDENTIFIER_SUFFIX)]
        type_column = by_name.get(f"{prefix}_type")
        if type_column is None or type_column.type is not ColumnType.STRING or type_column.nullable != column.nullable:
            continue
        method = _MORPH_HELPER_BY_SHAPE.get((column.type, column.nullable))
        if method:
            helpers[column.name] = method
    return helpers


def render_table_statements(columns: List[Column], foreign_keys: Optional[List[ForeignKey]] = None,
                            var_name: str = "table") -> List[str]:
    """
    Statements for a whole create block: identifier shorthand first, then the
    remaining columns in order, explicit foreign() constraints, and the
    timestamps() footer.
    A polymorphic id/type pair is folded back into its morphs() helper.
    """
    fk_by_column = {fk.column: fk for fk in (foreign_keys or [])}
    morphs = _morph_helpers(columns, fk_by_column)
    morph_types = {f"{name[:-len(IDENTIFIER_SUFFIX)]}_type" for name in morphs}
    statements = []

    identifier = next((c for c in columns if c.type is ColumnType.ID), None)
    if identifier is not None:
        statements.append(render_column_statement(identifier, var_name=var_name))
    elif not any(c.name == PRIMARY_IDENTIFIER for c in columns):
        statements.append(f"${var_name}->id();")

    constraints = []
    for column in columns:
        if column is identifier or column.name in AUDIT_COLUMNS or column.name in morph_types:
            continue
        if column.name in morphs:
            statements.append(f"${var_name}->{morphs[column.name]}('{column.name[:-len(IDENTIFIER_SUFFIX)]}');")
            continue
        fk = fk_by_column.get(column.name)
        statements.append(render_column_statement(column, fk, var_name))
        if fk and column.type not in (ColumnType.FOREIGN_ID, ColumnType.UUID):
            constraints.append(
                f"${var_name}->foreign('{column.name}')->references('{PRIMARY_IDENTIFIER}')"
                f"->on('{fk.referenced_table}')->cascadeOnDelete();"
            )

    statements.extend(constraints)
    statements.append(f"${var_name}->timestamps();")
    return statements


# ============================================================================
# MIGRATION FILES
# ============================================================================

def migration_file_name(table_name: str, stamp: datetime) -> str:
    """2024_01_31_120000_create_posts_table.php"""
    return f"{stamp.strftime('%Y_%m_%d_%H%M%S')}_create_{table_name}_table.php"


def migration_file_names(table_names: List[str], start: Optional[datetime] = None) -> List[str]:
    """Names for a batch of migrations, one second apart so they sort in creation order."""
    start = start or datetime.now()
    return [migration_file_name(name, start + timedelta(seconds=i)) for i, name in enumerate(table_names)]


def generate_migration_file(table: Table) -> str:
    """A complete migration creating the table in up() and dropping it in down()."""
    body_indent = INDENT_STEP * 3
    statements = "\n".join(
        body_indent + s for s in render_table_statements(table.columns, table.foreign_keys)
    )
    return (
        "<?php\n"
        "\n"
        "use Illuminate\\Database\\Migrations\\Migration;\n"
        "use Illuminate\\Database\\Schema\\Blueprint;\n"
        "use Illuminate\\Support\\Facades\\Schema;\n"
        "\n"
        "return new class extends Migration\n"
        "{\n"
        "    /**\n"
        "     * Run the migrations.\n"
        "     */\n"
        "    public function up(): void\n"
        "    {\n"
        f"        Schema::create('{table.name}', function (Blueprint $table) {{\n"
        f"{statements}\n"
        "        });\n"
        "    }\n"
        "\n"
        "    /**\n"
        "     * Reverse the migrations.\n"
        "     */\n"
        "    public function down(): void\n"
        "    {\n"
        f"        Schema::dropIfExists('{table.name}');\n"
        "    }\n"
        "};\n"
    )


# ============================================================================
# EDIT-BACK
# ============================================================================

def _line_indent(text: str, index: int) -> str:
    line_start = text.rfind("\n", 0, index) + 1
    line = text[line_start:index]
    return line[:len(line) - len(line.lstrip(" \t"))]


def rewrite_table_block(text: str, table_name: str, columns: List[Column],
                        foreign_keys: Optional[List[ForeignKey]] = None) -> str:
    """
    Replace the body of the first Schema::create block for table_name with
    statements rendered from columns.

    Returns text unchanged when no such block exists. Applying the same
    column list twice yields identical text.
    """
    block = next(
        (b for b in find_table_blocks(text) if b[0] == BLOCK_CREATE and b[1] == table_name),
        None,
    )
    if block is None:
        logger.debug("edit_back_block_missing", table=table_name)
        return text

    _, _, var_name, body_start, body_end = block
    close_indent = _line_indent(text, body_start - 1)
    first_statement = _FIRST_STATEMENT_INDENT.search(text, body_start, body_end)
    indent = first_statement.group(1) if first_statement else close_indent + INDENT_STEP

    statements = render_table_statements(columns, foreign_keys, var_name)
    body = "\n" + "".join(f"{indent}{s}\n" for s in statements) + close_indent
    return text[:body_start] + body + text[body_end:]
