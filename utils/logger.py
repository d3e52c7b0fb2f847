"""
Centralized logging for the alternatives engine.

Records are emitted as JSON lines on stderr (stdout carries CLI output).
Page identity, catalog source and UI trigger travel as record attributes,
either through ``extra=`` or through ``PageLogAdapter``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import MutableMapping
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_logging_configured = False

CONTEXT_FIELDS = ("url", "item_id", "catalog_source", "trigger", "strategy", "field")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
PRETTY_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
QUIET_PREFIXES = ("httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """One JSON object per record with the engine's context fields."""

    def __init__(self, *, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def _context(self, record: logging.LogRecord) -> dict[str, Any]:
        if not self.include_context:
            return {}
        values = {name: getattr(record, name, None) for name in CONTEXT_FIELDS}
        return {name: value for name, value in values.items() if value not in (None, "")}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self._context(record),
        }

        if record.exc_info:
            error_type, error, _ = record.exc_info
            entry["error_type"] = error_type.__name__ if error_type else None
            entry["error_message"] = str(error) if error else None

        if getattr(record, "duration_ms", None) is not None:
            entry["duration_ms"] = record.duration_ms

        return json.dumps(entry, default=str)


class NoHttpFilter(logging.Filter):
    """Drop per-request lines from the HTTP client libraries."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(QUIET_PREFIXES)


class PageLogAdapter(logging.LoggerAdapter):
    """Logger bound to a page identity; call-site ``extra`` wins over the binding."""

    def __init__(self, logger: logging.Logger, url: str | None = None, item_id: str | None = None):
        super().__init__(logger, {"url": url, "item_id": item_id})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def _env_level() -> int:
    name = os.environ.get("LOG_LEVEL", "").upper()
    return getattr(logging, name) if name in LOG_LEVELS else logging.INFO


def _env_pretty() -> bool:
    return os.environ.get("LOG_FORMAT", "json").lower() == "pretty"


def _console_handler(pretty: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if pretty:
        handler.setFormatter(logging.Formatter(PRETTY_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    else:
        handler.setFormatter(JSONFormatter())
    handler.addFilter(NoHttpFilter())
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(
    debug_mode: bool = False,
    *,
    json_output: bool = True,
    log_file: str | Path | None = None,
) -> None:
    """Configure the root logger once per process.

    Args:
        debug_mode: Force DEBUG level (and reconfigure even if already set up).
        json_output: JSON lines on stderr; False (or LOG_FORMAT=pretty) gives
            human-readable lines.
        log_file: Optional rotating JSON log file; defaults to LOG_FILE.
    """
    global _logging_configured

    if _logging_configured and not debug_mode:
        return

    level = logging.DEBUG if debug_mode else _env_level()
    pretty = _env_pretty() or not json_output

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(_console_handler(pretty))

    log_file = log_file or os.environ.get("LOG_FILE")
    if log_file:
        root.addHandler(_file_handler(Path(log_file)))

    _logging_configured = True
    root.info(f"Logging initialized ({'pretty' if pretty else 'JSON'} mode). Level: {logging.getLevelName(level)}")


def reset_logging() -> None:
    """Reset logging configuration (useful for testing)."""
    global _logging_configured
    _logging_configured = False
    logging.getLogger().handlers.clear()
