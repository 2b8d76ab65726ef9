# src/bloop/core/canonical.py
"""
Canonical JSON encoding for batch bodies.

Two-phase approach:
1. Normalize: Convert Python values to the closed JSON value set (our code)
2. Serialize: Compact stdlib json with insertion-ordered keys

Unlike hashing-oriented canonical forms, keys are NOT sorted: the order a
caller builds a mapping in is the order it appears on the wire. Payload
builders rely on this to emit fields in the documented order.

Encoding never fails for supported or unsupported kinds:
- Unknown types fall back to str(value), quoted and escaped
- NaN and Infinity become null (the collector only accepts strict JSON)

There is no cycle detection. Self-referential metadata recurses until
RecursionError; callers must not pass it.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

_ENCODER = json.JSONEncoder(
    ensure_ascii=False,
    separators=(",", ":"),
    allow_nan=False,
)


def _normalize_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)


def _normalize_value(obj: Any) -> Any:
    """Convert a single value to a JSON-safe primitive or container.

    Args:
        obj: Any Python value

    Returns:
        None, str, int, float, bool, dict or list
    """
    # bool before int/float: bool is an int subclass
    if obj is None or isinstance(obj, str | bool):
        return obj

    if isinstance(obj, Enum):
        return _normalize_value(obj.value)

    if isinstance(obj, int):
        return int(obj)

    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return float(obj)

    if isinstance(obj, Mapping):
        return {_normalize_key(k): _normalize_value(v) for k, v in obj.items()}

    if isinstance(obj, list | tuple):
        return [_normalize_value(v) for v in obj]

    if isinstance(obj, datetime):
        if obj.tzinfo is None:
            obj = obj.replace(tzinfo=UTC)
        return obj.astimezone(UTC).isoformat()

    return str(obj)


def canonical_json(obj: Any) -> str:
    """Encode a value as compact JSON text with caller-defined key order.

    Args:
        obj: None, str, int, float, bool, mapping or list (nested freely).
            Anything else is encoded as its quoted string representation.

    Returns:
        JSON text without whitespace. Control characters below 0x20 use
        short escapes where JSON has them and lowercase \\u00XX otherwise.
    """
    return _ENCODER.encode(_normalize_value(obj))


def escape_json_string(value: str) -> str:
    """Escape a string for inclusion between JSON double quotes.

    Example:
        >>> escape_json_string('say "hi"')
        'say \\\\"hi\\\\"'
    """
    return _ENCODER.encode(value)[1:-1]


def json_snapshot(obj: Any) -> Any:
    """Detached copy of obj as plain JSON values.

    Containers are rebuilt, so later changes to the caller's objects do not
    reach the snapshot. Encoding the snapshot gives the same text as
    encoding obj at the time of the call.
    """
    return _normalize_value(obj)
