"""Structured logging for the query cache.

Cache events keep their context out of the message text, as record
attributes passed through ``extra``:

    logger.debug("cache hit", extra={"table": "users", "key": key})

JsonFormatter emits those attributes as top-level fields, ConsoleFormatter
appends them as key=value pairs.

Usage:
    from querycache.observability.logging import configure_logging

    configure_logging(json_format=True, level="INFO")
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

# Record attributes the cache layer sets on its log events
CACHE_FIELDS = ("table", "scope", "key", "operation", "reason")


def cache_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Cache context attached to a record, in CACHE_FIELDS order."""
    fields = {}
    for name in CACHE_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Output format:
    {
        "timestamp": "2026-01-10T12:34:56.789000+00:00",
        "level": "DEBUG",
        "logger": "querycache.query.caching",
        "message": "cache hit",
        "table": "users",
        "key": "cacheable:users:3f2a..."
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(cache_fields(record))
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(data, default=str).decode()


class ConsoleFormatter(logging.Formatter):
    """Single-line format for terminals.

    Output format:
    2026-01-10 12:34:56 | DEBUG    | querycache.query.caching | cache hit | table=users key=...
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{timestamp} | {record.levelname:8} | {record.name} | {record.getMessage()}"

        fields = cache_fields(record)
        if fields:
            line += " | " + " ".join(f"{name}={value}" for name, value in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Send querycache logs to stderr in the chosen format.

    Only the ``querycache`` logger is configured; the root logger and
    other libraries keep their own handlers.

    Args:
        json_format: Use JSON lines instead of the console format
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger = logging.getLogger("querycache")
    logger.setLevel(level.upper())

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter())
    logger.addHandler(handler)
    logger.propagate = False
