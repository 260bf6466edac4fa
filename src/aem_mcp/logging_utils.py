"""Logging helpers for the AEM MCP server."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from aem_mcp.config import load_settings

_logging_configured = False
_logging_lock = threading.Lock()

_logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_NULL_LOGGER_NAME = "aem_mcp.null"


def configure_logging(level: str | None = None) -> None:
    """Configure structured logging for the server.

    ``level`` overrides the configured ``LOG_LEVEL`` (used by serverless
    invocations that carry their own verbosity flag).
    """
    global _logging_configured

    settings = load_settings()
    level_name = level or settings.logging.level
    resolved_level = getattr(logging, level_name.upper(), logging.INFO)

    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    handlers.append(stream_handler)

    if settings.logging.file:
        try:
            Path(settings.logging.file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.logging.file)
            file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
            handlers.append(file_handler)
        except OSError as exc:
            _logger.warning("Failed to open log file %s: %s", settings.logging.file, exc)

    logging.basicConfig(level=resolved_level, handlers=handlers, force=True)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    if not _logging_configured:
        with _logging_lock:
            if not _logging_configured:
                configure_logging()
    return logging.getLogger(name)


def null_logger() -> logging.Logger:
    """Return a logger that discards every record.

    Clients fall back to this when no logger handle is passed in.
    """
    logger = logging.getLogger(_NULL_LOGGER_NAME)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger
