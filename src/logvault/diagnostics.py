"""Diagnostic sink: the daemon's own log, kept apart from ingested records."""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Record level names that logging spells differently
LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL", "TRACE": "DEBUG"}


def resolve_level(name: str | None) -> int:
    """Map a level name to a logging level. Unknown names fall back to INFO.

    LOGVAULT_LOG_LEVEL, when set, takes precedence.
    """
    name = os.environ.get("LOGVAULT_LOG_LEVEL") or name or "INFO"
    name = name.strip().upper()
    level = logging.getLevelName(LEVEL_ALIASES.get(name, name))
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: str | None = "INFO", diagnostic_file: str = "") -> None:
    """Send diagnostics to stderr and, optionally, a rotating file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if diagnostic_file:
        Path(diagnostic_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                diagnostic_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
