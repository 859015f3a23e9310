"""Serialization of result sets for storage in the cache.

Rows are stored as JSON bytes. Column values JSON has no type for (dates and
times, Decimal, UUID, binary) are stored as tagged objects and restored to
their original type on decode:

    {"created": {"__qc_type__": "datetime", "value": "2024-01-01T12:00:00"}}

Anything else without a JSON form is rendered with str(). normalize_rows
gives the form a result takes after a round trip through the cache.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

import orjson

from querycache.errors import SerializationError

Row = dict[str, Any]

TYPE_TAG = "__qc_type__"


def _tagged(kind: str, value: Any) -> dict[str, Any]:
    return {TYPE_TAG: kind, "value": value}


def _encode_value(value: Any) -> Any:
    # datetime is a date subclass, so it is checked first
    if isinstance(value, datetime):
        return _tagged("datetime", value.isoformat())
    if isinstance(value, date):
        return _tagged("date", value.isoformat())
    if isinstance(value, time):
        return _tagged("time", value.isoformat())
    if isinstance(value, timedelta):
        return _tagged("timedelta", [value.days, value.seconds, value.microseconds])
    if isinstance(value, Decimal):
        return _tagged("decimal", str(value))
    if isinstance(value, UUID):
        return _tagged("uuid", str(value))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _tagged("bytes", base64.b64encode(bytes(value)).decode("ascii"))
    if isinstance(value, dict) and TYPE_TAG in value:
        return _tagged("json", value)
    return value


_DECODERS: dict[str, Callable[[Any], Any]] = {
    "datetime": datetime.fromisoformat,
    "date": date.fromisoformat,
    "time": time.fromisoformat,
    "timedelta": lambda parts: timedelta(days=parts[0], seconds=parts[1], microseconds=parts[2]),
    "decimal": Decimal,
    "uuid": UUID,
    "bytes": lambda text: base64.b64decode(text, validate=True),
    "json": lambda value: value,
}


def _decode_value(value: Any) -> Any:
    if not isinstance(value, dict) or TYPE_TAG not in value:
        return value

    kind = value[TYPE_TAG]
    decoder = _DECODERS.get(kind) if isinstance(kind, str) else None
    if decoder is None or "value" not in value:
        raise SerializationError(f"Unknown tagged value in cached row: {kind!r}")
    try:
        return decoder(value["value"])
    except (ArithmeticError, binascii.Error, LookupError, TypeError, ValueError) as e:
        raise SerializationError(f"Cannot restore {kind} value: {e}") from e


def _default(value: Any) -> str:
    return str(value)


def encode_rows(rows: Sequence[Row]) -> bytes:
    """Serialize rows to JSON bytes."""
    try:
        tagged = [{column: _encode_value(v) for column, v in row.items()} for row in rows]
        return orjson.dumps(tagged, default=_default, option=orjson.OPT_NON_STR_KEYS)
    except orjson.JSONEncodeError as e:
        raise SerializationError(f"Cannot encode result set: {e}") from e


def decode_rows(data: bytes) -> list[Row]:
    """Deserialize rows from JSON bytes, restoring tagged column values."""
    try:
        rows = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise SerializationError(f"Cannot decode cached result set: {e}") from e

    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise SerializationError("Cached value is not a list of rows")
    return [{column: _decode_value(v) for column, v in row.items()} for row in rows]


def normalize_rows(rows: Sequence[Row]) -> list[Row]:
    """Rows as they read back from the cache.

    Raises:
        SerializationError: If the rows cannot be encoded
    """
    return decode_rows(encode_rows(rows))
