"""
LaraFlow Configuration - Centralized path and settings management.

This module contains all configurable paths and settings for the LaraFlow
schema tools. Deployment-related values can be overridden via environment
variables; the rest are conventions of the Laravel source layout.
"""
import logging
import os
import sys
from pathlib import Path

import structlog

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# REPL command history
REPL_HISTORY_FILE = Path(os.environ.get("LARAFLOW_HISTORY_FILE", Path.home() / ".laraflow_history"))


# =============================================================================
# SOURCE CLASSIFICATION
# =============================================================================
# Path substring heuristics used when scanning a Laravel project directory

PHP_SUFFIX = ".php"
MIGRATION_PATH_MARKER = "database/migrations"
MODEL_PATH_MARKER = "app/Models"

# Older layouts keep models directly under app/; skip controllers and providers
LEGACY_MODEL_MARKER = "app/"
LEGACY_MODEL_EXCLUDES = ("Http", "Providers")

SKIPPED_DIRS = ("/node_modules/", "/vendor/", "/storage/", "/public/")


# =============================================================================
# NAMING CONVENTIONS
# =============================================================================

PRIMARY_IDENTIFIER = "id"
IDENTIFIER_SUFFIX = "_id"

# Emitted by $table->timestamps(); generators append them unconditionally
AUDIT_COLUMNS = ("created_at", "updated_at")


# =============================================================================
# SCHEMA SUGGESTION SERVICE
# =============================================================================
# Any OpenAI-compatible chat completions endpoint works

SUGGESTION_API_URL = os.environ.get(
    "LARAFLOW_SUGGESTION_URL", "https://api.groq.com/openai/v1/chat/completions"
)
SUGGESTION_MODEL = os.environ.get("LARAFLOW_SUGGESTION_MODEL", "llama-3.3-70b-versatile")
SUGGESTION_API_KEY = os.environ.get("GROQ_API_KEY", "")
SUGGESTION_TIMEOUT = float(os.environ.get("LARAFLOW_SUGGESTION_TIMEOUT", "60"))
SUGGESTION_TEMPERATURE = 0.1


# =============================================================================
# WEB & LOGGING
# =============================================================================

WEB_PORT = int(os.environ.get("LARAFLOW_PORT", "5577"))
LOG_LEVEL = os.environ.get("LARAFLOW_LOG_LEVEL", "WARNING")

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Route structlog through stdlib logging to stderr at the given level."""
    default_level = _LEVEL_MAP.get(level.upper(), logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(default_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=structlog.dev.ConsoleRenderer(colors=False))
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(default_level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
