"""Structured logging utilities.

Fields can be attached to records in two ways: per call with
``extra={"extra_fields": {...}}``, or for a whole block with
:class:`LogContext`, which stores them as ``context_fields``. All
formatters render both, call-site fields winning on key clashes.
"""

import logging
import logging.handlers
import json
import sys
from typing import Any, Dict, Iterable, Optional
from datetime import datetime, timezone
from pathlib import Path

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("urllib3", "requests", "py7zr")


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Structured fields attached to ``record``."""
    fields: Dict[str, Any] = {}
    fields.update(getattr(record, "context_fields", {}))
    fields.update(getattr(record, "extra_fields", {}))
    return fields


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        log_data.update(record_fields(record))

        # Paths and enums in fields are rendered with str()
        return json.dumps(log_data, default=str)


class _FieldSuffixFormatter(logging.Formatter):
    """Appends ``key=value`` pairs for structured fields to the line."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = record_fields(record)
        if not fields:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in fields.items())
        # Keep tracebacks last
        head, sep, tail = line.partition("\n")
        return f"{head} [{suffix}]{sep}{tail}"


class DetailedFormatter(_FieldSuffixFormatter):
    """Human-readable detailed formatter."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


class SimpleFormatter(_FieldSuffixFormatter):
    """Console formatter: level and message only."""

    def __init__(self) -> None:
        super().__init__(fmt="%(levelname)-8s %(message)s")


FORMATTERS = {
    "json": StructuredFormatter,
    "detailed": DetailedFormatter,
    "simple": SimpleFormatter,
}


def setup_logging(
    level: str = "INFO",
    format: str = "simple",
    log_file: Optional[Path] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """Configure the root logger.

    Console output goes to stderr in the requested format. A log file,
    when given, always receives JSON lines and is rotated by size.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Console format (simple, detailed, json)
        log_file: Optional log file path, parent directories are created
        max_file_size_mb: Size at which the log file is rotated
        backup_count: Number of rotated files to keep
        quiet_loggers: Loggers capped at WARNING
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(FORMATTERS.get(format, SimpleFormatter)())
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """Attach fields to every record created inside the ``with`` block.

    Contexts nest; inner fields override outer ones for the same key.
    """

    def __init__(self, logger: logging.Logger, **fields: Any) -> None:
        self.logger = logger
        self.fields = fields
        self.old_factory = None

    def __enter__(self) -> "LogContext":
        self.old_factory = logging.getLogRecordFactory()
        old_factory = self.old_factory
        fields = self.fields

        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = old_factory(*args, **kwargs)
            record.context_fields = {**getattr(record, "context_fields", {}), **fields}
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        logging.setLogRecordFactory(self.old_factory)
