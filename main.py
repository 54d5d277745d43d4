"""LaraFlow CLI - Command Line Interface for Laravel schema analysis and export"""
import sys
from pathlib import Path
from typing import List, Optional, Set

sys.path.insert(0, str(Path(__file__).parent))

from Schema.schema_model import Table
from config import configure_logging
from core import AnalysisResult, export_schema, run_analysis
from parser_factory import load_project_files

# ANSI Colors
GREEN = "\033[92m"
YELLOW = "\033[93m"
CYAN = "\033[96m"
RED = "\033[91m"
BOLD = "\033[1m"
RESET = "\033[0m"

EXPORT_MENU = {
    "1": ("sql", "MySQL DDL"),
    "2": ("typescript", "TypeScript interfaces"),
    "3": ("models", "Eloquent models"),
    "4": ("migrations", "Laravel migrations"),
    "5": ("shell", "Bash setup script"),
    "6": ("json", "Raw JSON schema"),
}


def get_table_lines(table: Table, highlights: Set[str] = None) -> List[str]:
    """Format a table as indented lines; highlighted tables are printed green."""
    highlights = highlights or set()
    lines = []

    pivot = f" {YELLOW}[pivot]{RESET}" if table.is_pivot else ""
    if table.name in highlights:
        lines.append(f"{GREEN}{BOLD}  {table.name}{RESET}{pivot}")
    else:
        lines.append(f"  {table.name}{pivot}")

    for column in table.columns:
        marker = "[PK]" if column.is_primary_key else ("[FK]" if column.is_foreign_key else "")
        optional = "?" if column.nullable else ""
        lines.append(f"    {column.name}{optional}: {column.type.value} {marker}".rstrip())

    for fk in table.foreign_keys:
        lines.append(f"{CYAN}    -> {fk.column} -> {fk.referenced_table}{RESET}")

    return lines


def print_analysis(analysis: AnalysisResult) -> None:
    snapshot = analysis.snapshot
    stats = analysis.stats

    print(f"\n{BOLD}{'=' * 60}")
    print(" TABLES")
    print(f"{'=' * 60}{RESET}")
    for table in snapshot.tables.values():
        for line in get_table_lines(table):
            print(line)
        print()

    print(f"{BOLD}{'=' * 60}")
    print(" RELATIONS")
    print(f"{'=' * 60}{RESET}")
    if not analysis.edges:
        print("  (none)")
    for edge in analysis.edges:
        via = f" via {edge.origin_column}" if edge.origin_column else ""
        print(f"  {edge.source} {CYAN}--{edge.kind.value}-->{RESET} {edge.target}{via}")

    orphan_tables = snapshot.orphan_tables()
    orphan_models = snapshot.orphan_models()
    if orphan_tables or orphan_models:
        print(f"\n  {YELLOW}Tables without model:{RESET} {', '.join(orphan_tables) or '-'}")
        print(f"  {YELLOW}Models without table:{RESET} {', '.join(orphan_models) or '-'}")

    print(f"\n  {stats['migrations']} migrations, {stats['models']} models -> "
          f"{stats['tables']} tables, {stats['relations']} relations")


def choose_export(analysis: AnalysisResult) -> int:
    print(f"\n  {CYAN}Export:{RESET}")
    for key, (_, label) in EXPORT_MENU.items():
        print(f"  [{key}] {label}")
    print("\n  [0] Exit")

    try:
        choice = input("\nChoice: ").strip()
    except (KeyboardInterrupt, EOFError):
        return 0

    if choice == "0":
        return 0
    if choice not in EXPORT_MENU:
        print("Invalid choice")
        return 1

    mode, label = EXPORT_MENU[choice]
    content = export_schema(analysis, mode)

    try:
        target = input("Save to file (blank = print): ").strip()
    except (KeyboardInterrupt, EOFError):
        target = ""

    if target:
        Path(target).write_text(content, encoding='utf-8')
        print(f"\n  {GREEN}{BOLD}[OK] {label} written to {target}{RESET}")
    else:
        print(f"\n{BOLD}{'=' * 60}")
        print(f" {label.upper()}")
        print(f"{'=' * 60}{RESET}")
        print(content)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    configure_logging()

    print(f"\n{BOLD}{'=' * 60}")
    print(" LaraFlow - Laravel Schema Analyzer")
    print(f"{'=' * 60}{RESET}")

    if argv:
        project = argv[0]
    else:
        try:
            project = input("\nLaravel project path [.]: ").strip() or "."
        except (KeyboardInterrupt, EOFError):
            return 0

    print(f"\n{CYAN}[Step 1] Scanning: {project}{RESET}")
    try:
        sources = load_project_files(project)
    except FileNotFoundError as e:
        print(f"{RED}[ERROR] {e}{RESET}")
        return 1
    print(f"         Found {len(sources)} migration/model files")

    print(f"\n{CYAN}[Step 2] Building schema{RESET}")
    analysis = run_analysis(sources)
    if not analysis.snapshot.tables:
        print(f"{YELLOW}[WARN] No tables found in {project}{RESET}")

    print_analysis(analysis)
    return choose_export(analysis)


if __name__ == "__main__":
    sys.exit(main())
