"""Logging utilities with structured output and cycle context.

This module provides:
    - JSON structured logging for log aggregation systems
    - Gather-cycle ID and per-source context on every record
    - Console + rotating file handlers with console-only fallback

Context lives in contextvars. asyncio copies the context into each task,
so a source name set inside one retrieval task never leaks into another
or back into the cycle.

Usage:
    >>> from observability.logging import setup_logging, set_run_context
    >>> setup_logging(config)
    >>> set_run_context(run_id="intel_1760781234000")
    >>> logger.info("Gather started")  # Includes run_id automatically
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any

LOG_FILENAME = "scout.log"

run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")
source_var: contextvars.ContextVar[str] = contextvars.ContextVar("source_name", default="-")

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "run_id", "source_name", "message",
})

_NOISY_LOGGERS = ("aiohttp", "asyncio", "charset_normalizer")


def set_run_context(run_id: str) -> None:
    """Set the current gather-cycle ID for log context propagation."""
    run_id_var.set(run_id)


def set_source_context(source_name: str) -> None:
    """Tag records from the current task with the source being retrieved."""
    source_var.set(source_name)


def clear_context() -> None:
    run_id_var.set("-")
    source_var.set("-")


class ContextFilter(logging.Filter):
    """Stamp run_id and source_name onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        record.source_name = source_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...",
         "run_id": "...", "source_name": "...", ...extras}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
        }
        source_name = getattr(record, "source_name", "-")
        if source_name != "-":
            log_data["source_name"] = source_name

        if record.levelno >= logging.WARNING:
            log_data["location"] = f"{record.filename}:{record.lineno} {record.funcName}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Format: TIMESTAMP [LEVEL] [run_id|source] logger: message"""

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s|%(source_name)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def _file_handler(config: Any) -> logging.Handler:
    """Size-based rotation when LOG_MAX_BYTES is set, else daily at midnight.

    Raises:
        OSError: If the log directory cannot be created or written
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)
    probe = config.log_dir / ".write_test"
    probe.touch()
    probe.unlink()

    log_file = config.log_dir / LOG_FILENAME
    if config.log_max_bytes > 0:
        return RotatingFileHandler(
            log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
    return TimedRotatingFileHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Configure the root logger with console and file handlers.

    The console handler writes to stderr so ``--json`` output on stdout
    stays parseable. If the log directory is not writable, logging falls
    back to console only.

    Args:
        config: Application configuration with logging settings
        verbose: If True, log DEBUG to the console regardless of LOG_LEVEL

    Returns:
        True if file logging is enabled, False if console-only (fallback)
    """
    json_output = config.log_format == "json"
    context_filter = ContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO))
    console.setFormatter(JsonFormatter() if json_output else TextFormatter(include_date=False))
    console.addFilter(context_filter)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.addHandler(console)

    try:
        file_handler = _file_handler(config)
    except OSError as e:
        print(
            f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )
        file_handler = None
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JsonFormatter() if json_output else TextFormatter(include_date=True))
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return file_handler is not None
