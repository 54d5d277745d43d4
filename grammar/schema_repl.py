#!/usr/bin/env python3
"""
LaraFlow - Interactive REPL with Auto-completion

Load a Laravel project, inspect the reconstructed schema, edit columns (the
edit is written back into the creating migration) and export.
When user types "SHOW " and presses Tab, they see all available sub-commands.
"""
import sys
from pathlib import Path
from typing import Optional

from prompt_toolkit import prompt
from prompt_toolkit.completion import NestedCompleter
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.styles import Style

sys.path.insert(0, str(Path(__file__).parent.parent))

from Schema.schema_model import ColumnType
from config import REPL_HISTORY_FILE, configure_logging
from core import EXPORT_MODES, SchemaSession, export_schema
from parser_factory import load_project_files
from suggestion_client import SuggestionClient, SuggestionError, suggestion_to_files

# ============================================================================
# Command Hierarchy
# ============================================================================

COLUMN_TYPES = {t.value: None for t in ColumnType}

EXPORT_TARGETS = {mode.upper(): {"TO": None} for mode in EXPORT_MODES}

REPL_COMMANDS = {
    "LOAD": None,                                   # LOAD /path/to/project
    "SHOW": {
        "TABLES": None,
        "TABLE": None,                              # SHOW TABLE posts
        "RELATIONS": None,
        "MODELS": None,
        "ORPHANS": None,
    },
    "ADD": {"COLUMN": COLUMN_TYPES},                # ADD COLUMN name type TO table [NULLABLE]
    "DROP": {"COLUMN": None},                       # DROP COLUMN name FROM table
    "RENAME": {"COLUMN": None},                     # RENAME COLUMN old TO new IN table
    "EXPORT": EXPORT_TARGETS,                       # EXPORT SQL [TO file]
    "SUGGEST": None,                                # SUGGEST a blog with posts and comments
    "SAVE": None,
    "HELP": None,
    "EXIT": None
}

# ============================================================================
# Style Configuration
# ============================================================================

style = Style.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})

HELP_TEXT = """
LaraFlow Command Reference
==========================

Project:
  LOAD <path>                              - Scan a Laravel project
  SAVE                                     - Write edited migrations back to disk

Inspection:
  SHOW TABLES|RELATIONS|MODELS|ORPHANS
  SHOW TABLE <name>

Column edits (rewrites the table's Schema::create block):
  ADD COLUMN <name> <type> TO <table> [NULLABLE]
  DROP COLUMN <name> FROM <table>
  RENAME COLUMN <old> TO <new> IN <table>

Export:
  EXPORT SQL|TYPESCRIPT|MODELS|MIGRATIONS|SHELL|JSON [TO <file>]

Generation:
  SUGGEST <description>                    - Replace the schema with a suggested one

Utility:
  HELP
  EXIT

Press TAB after any keyword to see available completions!
"""


# ============================================================================
# REPL Implementation
# ============================================================================

def print_banner():
    """Print welcome banner with usage tips"""
    print("""
+===========================================================================+
|                    LaraFlow - Laravel Schema Explorer                     |
|                  Interactive REPL with Auto-completion                    |
+===========================================================================+
|  TIP: Type a command and press TAB to see available sub-commands          |
|                                                                           |
|  Examples:                                                                |
|    LOAD ~/code/blog                                                       |
|    SHOW <TAB>     -> TABLES, TABLE, RELATIONS, MODELS, ORPHANS            |
|    EXPORT <TAB>   -> SQL, TYPESCRIPT, MODELS, MIGRATIONS, SHELL, JSON     |
|                                                                           |
|  Type 'HELP' for command reference, 'EXIT' to quit                        |
+---------------------------------------------------------------------------+
""")


def _show(session: SchemaSession, args) -> str:
    snapshot = session.snapshot
    what = args[0].upper() if args else "TABLES"

    if what == "TABLES":
        if not snapshot.tables:
            return "  (no tables - use LOAD <path>)"
        return "\n".join(
            f"  {t.name} ({len(t.columns)} columns){' [pivot]' if t.is_pivot else ''}"
            for t in snapshot.tables.values()
        )
    if what == "TABLE":
        if len(args) < 2:
            return "  Usage: SHOW TABLE <name>"
        table = snapshot.get_table(args[1])
        if table is None:
            return f"  [?] Unknown table: {args[1]}"
        lines = [f"  {table.name}"]
        for c in table.columns:
            marker = " [PK]" if c.is_primary_key else (" [FK]" if c.is_foreign_key else "")
            lines.append(f"    {c.name}{'?' if c.nullable else ''}: {c.type.value}{marker}")
        for fk in table.foreign_keys:
            lines.append(f"    -> {fk.column} -> {fk.referenced_table}")
        return "\n".join(lines)
    if what == "RELATIONS":
        if not session.analysis.edges:
            return "  (no relations)"
        return "\n".join(
            f"  {e.source} --{e.kind.value}--> {e.target}" + (f" via {e.origin_column}" if e.origin_column else "")
            for e in session.analysis.edges
        )
    if what == "MODELS":
        if not snapshot.models:
            return "  (no models)"
        return "\n".join(
            f"  {m.class_name} -> {m.table_name} ({len(m.relations)} relations)"
            for m in snapshot.models.values()
        )
    if what == "ORPHANS":
        return (f"  Tables without model: {', '.join(snapshot.orphan_tables()) or '-'}\n"
                f"  Models without table: {', '.join(snapshot.orphan_models()) or '-'}")
    return f"  [?] Unknown SHOW target: {what}"


def _add_column(session: SchemaSession, args) -> str:
    # COLUMN name type TO table [NULLABLE]
    if len(args) < 5 or args[0].upper() != "COLUMN" or args[3].upper() != "TO":
        return "  Usage: ADD COLUMN <name> <type> TO <table> [NULLABLE]"
    name, type_token, table = args[1], args[2], args[4]
    column_type = ColumnType.from_token(type_token)
    if column_type is None:
        return f"  [?] Unknown column type: {type_token}"
    nullable = len(args) > 5 and args[5].upper() == "NULLABLE"
    if session.add_column(table, name, column_type, nullable):
        return f"  [+] {table}.{name} ({column_type.value})"
    return f"  [!] Could not add {name} to {table}"


def _drop_column(session: SchemaSession, args) -> str:
    if len(args) < 4 or args[0].upper() != "COLUMN" or args[2].upper() != "FROM":
        return "  Usage: DROP COLUMN <name> FROM <table>"
    if session.drop_column(args[3], args[1]):
        return f"  [-] {args[3]}.{args[1]}"
    return f"  [!] Could not drop {args[1]} from {args[3]}"


def _rename_column(session: SchemaSession, args) -> str:
    if len(args) < 6 or args[0].upper() != "COLUMN" or args[2].upper() != "TO" or args[4].upper() != "IN":
        return "  Usage: RENAME COLUMN <old> TO <new> IN <table>"
    if session.rename_column(args[5], args[1], args[3]):
        return f"  [~] {args[5]}.{args[1]} -> {args[3]}"
    return f"  [!] Could not rename {args[1]} in {args[5]}"


def _export(session: SchemaSession, args) -> str:
    if not args:
        return f"  Usage: EXPORT {'|'.join(m.upper() for m in EXPORT_MODES)} [TO <file>]"
    try:
        content = export_schema(session.analysis, args[0])
    except ValueError as e:
        return f"  [!] {e}"
    if len(args) >= 3 and args[1].upper() == "TO":
        Path(args[2]).write_text(content, encoding='utf-8')
        return f"  [OK] Written to {args[2]}"
    return content


def execute_command(session: SchemaSession, command: str,
                    client: Optional[SuggestionClient] = None) -> str:
    """Execute one REPL command against the session and return the text to print."""
    cmd = command.strip()
    if not cmd:
        return ""

    parts = cmd.split()
    keyword, args = parts[0].upper(), parts[1:]

    if keyword == "HELP":
        return HELP_TEXT
    elif keyword == "LOAD":
        if not args:
            return "  Usage: LOAD <path>"
        root = Path(cmd[len(parts[0]):].strip()).expanduser()
        try:
            sources = load_project_files(root)
        except FileNotFoundError as e:
            return f"  [!] {e}"
        stats = session.load(sources, root).stats
        return f"  Loaded {stats['migrations']} migrations, {stats['models']} models -> {stats['tables']} tables"
    elif keyword == "SHOW":
        return _show(session, args)
    elif keyword == "ADD":
        return _add_column(session, args)
    elif keyword == "DROP":
        return _drop_column(session, args)
    elif keyword == "RENAME":
        return _rename_column(session, args)
    elif keyword == "EXPORT":
        return _export(session, args)
    elif keyword == "SAVE":
        try:
            written = session.save()
        except ValueError as e:
            return f"  [!] {e}"
        return f"  [OK] {len(written)} file(s) written"
    elif keyword == "SUGGEST":
        description = cmd[len(parts[0]):].strip()
        if not description:
            return "  Usage: SUGGEST <description>"
        try:
            suggestion = (client or SuggestionClient()).suggest(description, session.snapshot)
        except SuggestionError as e:
            return f"  [!] {e}"
        stats = session.replace_sources(suggestion_to_files(suggestion)).stats
        return f"  [+] Suggested schema: {stats['tables']} tables, {stats['relations']} relations"
    else:
        return f"  [?] Unknown command: {cmd}\n  Type 'HELP' for commands or press TAB for suggestions"


def main():
    """Main REPL loop"""
    configure_logging()
    print_banner()

    completer = NestedCompleter.from_nested_dict(REPL_COMMANDS)
    history = FileHistory(str(REPL_HISTORY_FILE))
    session = SchemaSession()

    while True:
        try:
            user_input = prompt(
                'LaraFlow> ',
                completer=completer,
                complete_while_typing=False,
                history=history,
                auto_suggest=AutoSuggestFromHistory(),
                style=style,
            )

            if user_input.strip().upper() == "EXIT":
                print("Goodbye!")
                break
            output = execute_command(session, user_input)
            if output:
                print(output)

        except KeyboardInterrupt:
            print("\n  Use 'EXIT' to quit")
        except EOFError:
            print("\nGoodbye!")
            break


if __name__ == "__main__":
    main()
