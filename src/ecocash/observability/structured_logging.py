"""
Structured logging for the EcoCash SDK.

JSON-formatted records with correlation ids, so every log line of one
request can be grouped together.

Usage:
    from ecocash.observability import add_correlation_id

    with add_correlation_id("pay-abc123"):
        logger.info("Payment started")  # Record carries correlation_id
"""

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from ecocash.utils.masking import is_sensitive_key, mask_sensitive_data, mask_value

_correlation_id: ContextVar[str | None] = ContextVar("ecocash_correlation_id", default=None)

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "asctime",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "message",
        "thread",
        "threadName",
        "taskName",
    }
)


def get_correlation_id() -> str | None:
    """Correlation id of the current request context, if any."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def add_correlation_id(correlation_id: str | None = None) -> Iterator[str]:
    """
    Context manager to add correlation ID to logs.

    Args:
        correlation_id: Correlation ID (auto-generated if not provided)

    Yields:
        The correlation ID
    """
    cid = correlation_id or str(uuid.uuid4())[:8]
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed to the logger through ``extra=``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """
    JSON-lines formatter.

    Each record becomes one JSON object with timestamp, level, logger,
    message, correlation id, extra fields and exception info.
    """

    def __init__(self, include_correlation_id: bool = True, extra_fields: dict[str, Any] | None = None):
        """
        Initialize structured formatter.

        Args:
            include_correlation_id: Include correlation ID if available
            extra_fields: Extra fields to include in all logs
        """
        super().__init__()
        self.include_correlation_id = include_correlation_id
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_correlation_id:
            correlation_id = get_correlation_id()
            if correlation_id:
                log_data["correlation_id"] = correlation_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        log_data.update(record_extras(record))
        log_data.update(self.extra_fields)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter with optional correlation ID.

    Format: [timestamp] [level] [logger] [correlation_id] message (duration)
    """

    def __init__(self, include_correlation_id: bool = True):
        super().__init__()
        self.include_correlation_id = include_correlation_id

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable string."""
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        parts = [f"[{timestamp}]", f"[{record.levelname.ljust(8)}]", f"[{record.name}]"]

        if self.include_correlation_id:
            correlation_id = get_correlation_id()
            if correlation_id:
                parts.append(f"[{correlation_id}]")

        parts.append(record.getMessage())

        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"({duration}ms)")

        message = " ".join(parts)

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


class RedactingFilter(logging.Filter):
    """
    Masks sensitive extra fields before a handler formats the record.

    ``metadata`` dicts are masked recursively; any other extra whose key
    names a secret (token, pin, api key, ...) is masked in place.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in record_extras(record).items():
            if key == "metadata" and isinstance(value, dict):
                setattr(record, key, mask_sensitive_data(value))
            elif is_sensitive_key(key):
                setattr(record, key, mask_value(value) if isinstance(value, str) else "***")
        return True
