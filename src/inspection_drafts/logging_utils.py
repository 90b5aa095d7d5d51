"""Logging setup for the maintenance CLI."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from inspection_drafts.config import load_settings

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# httpx logs every request at INFO, which drowns out sync outcomes.
_NOISY_LOGGERS = ("httpx", "httpcore")

_logger = logging.getLogger(__name__)


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str | None = None) -> int:
    """Configure stderr and optional file logging.

    ``level`` overrides ``LOG_LEVEL`` from the settings. Returns the level
    that was applied.
    """
    settings = load_settings()
    resolved = _resolve_level(level or settings.logging.level)
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream_handler]

    log_file = settings.logging.file
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as exc:
            _logger.warning("Failed to open log file %s: %s", log_file, exc)

    logging.basicConfig(level=resolved, handlers=handlers, force=True)

    transport_level = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
    return resolved
