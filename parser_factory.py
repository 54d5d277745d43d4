"""
Parser Factory - Auto-select extractor based on file path

This module provides a unified entry point for reading Laravel sources.
It classifies each file by path and dispatches it to the matching extractor:
- .../database/migrations/*.php -> migration extractor
- .../app/Models/*.php          -> model extractor
- .../app/**/*.php              -> model extractor (older layouts, no Http/Providers)
"""
import sys
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

import structlog

sys.path.insert(0, str(Path(__file__).parent))

from Schema.schema_model import Model, SourceFile, SourceKind
from grammar.migration_extractor import TableBlock, extract_migration
from grammar.model_extractor import extract_model
from config import (
    PHP_SUFFIX, MIGRATION_PATH_MARKER, MODEL_PATH_MARKER,
    LEGACY_MODEL_MARKER, LEGACY_MODEL_EXCLUDES, SKIPPED_DIRS
)

logger = structlog.get_logger(__name__)


def classify_path(path: str) -> SourceKind:
    """
    Detect what a file holds based on its path.

    Args:
        path: Project-relative path using forward slashes

    Returns:
        SourceKind.MIGRATION, SourceKind.MODEL or SourceKind.OTHER
    """
    normalized = "/" + path.replace("\\", "/").lstrip("/")

    if any(skipped in normalized for skipped in SKIPPED_DIRS):
        return SourceKind.OTHER
    if not normalized.endswith(PHP_SUFFIX):
        return SourceKind.OTHER

    if MIGRATION_PATH_MARKER in normalized:
        return SourceKind.MIGRATION
    if MODEL_PATH_MARKER in normalized:
        return SourceKind.MODEL
    if LEGACY_MODEL_MARKER in normalized and not any(x in normalized for x in LEGACY_MODEL_EXCLUDES):
        return SourceKind.MODEL
    return SourceKind.OTHER


def make_source(path: str, content: str) -> SourceFile:
    """Wrap in-memory text as a classified SourceFile."""
    return SourceFile(
        path=path,
        name=PurePosixPath(path.replace("\\", "/")).name,
        content=content,
        kind=classify_path(path),
    )


def load_project_files(root: Union[str, Path]) -> List[SourceFile]:
    """
    Read every migration and model file below a Laravel project root.

    Paths are filtered before contents are read; other PHP files are skipped.

    Args:
        root: Laravel project directory

    Returns:
        SourceFiles with project-relative paths, in path order
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Project directory not found: {root}")

    sources = []
    for file_path in sorted(root.rglob(f"*{PHP_SUFFIX}")):
        relative = file_path.relative_to(root).as_posix()
        kind = classify_path(relative)
        if kind is SourceKind.OTHER:
            continue
        content = file_path.read_text(encoding='utf-8', errors='replace')
        sources.append(SourceFile(path=relative, name=file_path.name, content=content, kind=kind))

    logger.info("project_loaded", root=str(root), files=len(sources),
                migrations=sum(1 for s in sources if s.kind is SourceKind.MIGRATION))
    return sources


def extract_file(source: SourceFile) -> Union[List[TableBlock], Optional[Model]]:
    """
    Run the extractor matching the file's kind.

    Returns:
        List of TableBlock for a migration, a Model (or None) for a model file
    """
    if source.kind is SourceKind.MIGRATION:
        return extract_migration(source.content)
    elif source.kind is SourceKind.MODEL:
        return extract_model(source.content, source.path)
    else:
        raise ValueError(f"No extractor for source kind: {source.kind.value} ({source.path})")
