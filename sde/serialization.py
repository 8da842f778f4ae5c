"""JSON encoding of query results."""

import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from .exceptions import SerializationError


def _default(value: Any) -> Any:
    """Convert values drivers commonly return into JSON-compatible ones."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode('utf-8')
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(data: Any) -> str:
    """
    Serialize a result collection to JSON text.

    Args:
        data: Rows, a single row mapping, or any JSON-compatible structure

    Returns:
        JSON string; non-ASCII characters are kept as-is

    Raises:
        SerializationError: If the structure holds values that cannot be
            encoded (unsupported types, NaN/Infinity, invalid UTF-8)
    """
    try:
        encoded = json.dumps(data, ensure_ascii=False, allow_nan=False, default=_default)
        # Lone surrogates survive json.dumps but are not valid UTF-8
        encoded.encode('utf-8')
    except (TypeError, ValueError) as e:
        raise SerializationError(str(e)) from e
    return encoded
