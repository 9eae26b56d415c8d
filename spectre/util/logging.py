"""Logging setup shared by the collector, the renderer and the web server.

Every logger lives under the ``spectre`` namespace. Console output goes to
stderr; an optional JSON-lines file carries the structured ``extra`` fields
(collection identifier, sweep tool, batch sizes, timings) for later parsing.

Usage:
    from spectre.util.logging import get_logger, configure_logging

    configure_logging(level="DEBUG", json_file="/var/log/spectre.log")
    logger = get_logger(__name__)
    logger.info("flushed %d aggregates", n, extra={"batch_size": n})
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional


ROOT_LOGGER = "spectre"

# Structured fields lifted from extra={} into JSON records.
STRUCTURED_FIELDS = ("identifier", "source", "sweep_tool", "batch_size", "error_type", "duration_ms")

_configured = False


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _format_traceback(record: logging.LogRecord) -> str:
    return "".join(traceback.format_exception(*record.exc_info)) if record.exc_info else ""


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _record_time(record).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (field, getattr(record, field)) for field in STRUCTURED_FIELDS if hasattr(record, field)
        )
        tb = _format_traceback(record)
        if tb:
            payload["traceback"] = tb
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[time] LEVEL [component] message``, colored when stderr is a TTY.

    The collection identifier, when a record carries one, is appended so
    that interleaved output of several collectors stays attributable.
    """

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color and sys.stderr.isatty()

    def _level(self, record: logging.LogRecord) -> str:
        text = f"{record.levelname:8}"
        if not self.use_color:
            return text
        return f"{self.COLORS.get(record.levelno, '')}{text}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        component = record.name[len(ROOT_LOGGER) + 1:] if record.name.startswith(ROOT_LOGGER + ".") else record.name
        line = f"[{_record_time(record):%Y-%m-%d %H:%M:%S}] {self._level(record)} [{component}] {record.getMessage()}"
        identifier = getattr(record, "identifier", None)
        if identifier:
            line += f" (id={identifier})"
        tb = _format_traceback(record)
        if tb:
            line += "\n" + tb
        return line


def resolve_level(level: Optional[str] = None) -> int:
    """Explicit level, else SPECTRE_DEBUG, else SPECTRE_LOG_LEVEL, else INFO."""
    if level is None:
        if os.environ.get("SPECTRE_DEBUG", "").strip().lower() in ("1", "true", "yes"):
            return logging.DEBUG
        level = os.environ.get("SPECTRE_LOG_LEVEL", "INFO")
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    *,
    level: Optional[str] = None,
    json_file: Optional[str] = None,
    use_color: bool = True,
) -> None:
    """(Re)install the handlers of the ``spectre`` logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR; see resolve_level for defaults.
        json_file: Optional path receiving JSON-lines records.
        use_color: Colorize console output (ignored when stderr is not a TTY).
    """
    global _configured

    numeric_level = resolve_level(level)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(numeric_level)
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ConsoleFormatter(use_color=use_color))
    console.setLevel(numeric_level)
    root.addHandler(console)

    if json_file:
        try:
            jsonl = logging.FileHandler(json_file, mode="a", encoding="utf-8")
        except OSError as exc:
            root.warning("cannot open JSON log file %s: %s", json_file, exc)
        else:
            jsonl.setFormatter(JSONFormatter())
            jsonl.setLevel(numeric_level)
            root.addHandler(jsonl)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the spectre namespace, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    if name == "__main__":
        name = f"{ROOT_LOGGER}.main"
    elif name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    message: str,
    *,
    error_type: Optional[str] = None,
    **extra: Any,
) -> None:
    """Log the exception being handled, tagging it with an error category.

    ``error_type`` groups failures in the JSON log (e.g. "sink_open",
    "db_write", "render_query"); remaining keywords become structured fields.
    """
    if error_type:
        extra["error_type"] = error_type
    logger.exception(message, extra=extra)
