"""
Canonical JSON encoding of hashed journal structures.

json_c14n_v1 turns a JSON-compatible value into the exact bytes that get
hashed. Transaction info, revision metadata and revision data all contribute
to block hashes through these bytes, so the output for a given value must
never change: a different encoding invalidates every block written before.

Encoding (v1):
- compact separators, no whitespace outside strings
- object keys sorted by Unicode codepoint
- list and tuple order kept
- non-ASCII characters emitted as UTF-8, not escaped
- floats must be finite
- bytes emitted as standard base64 text, the same as hash fields on the wire

Anything else (sets, datetimes, custom objects, non-string keys) is rejected
with ValueError instead of being coerced.
"""

import base64
import json
import math
from typing import Any


def json_c14n_v1(obj: Any) -> bytes:
    """
    Canonical UTF-8 JSON bytes for ``obj``.

    Raises:
        ValueError: On unsupported types, non-string keys or non-finite floats

    Examples:
        >>> json_c14n_v1({"b": 2, "a": 1})
        b'{"a":1,"b":2}'

        >>> json_c14n_v1({"digest": b"\\x00\\x01"})
        b'{"digest":"AAE="}'
    """
    text = json.dumps(
        _to_json_value(obj),
        separators=(",", ":"),
        sort_keys=True,
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def _to_json_value(obj: Any) -> Any:
    # bool is an int subclass; both pass through unchanged
    if obj is None or isinstance(obj, (bool, int, str)):
        return obj
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Non-finite float cannot be canonicalized: {obj}")
        return obj
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    if isinstance(obj, (list, tuple)):
        return [_to_json_value(item) for item in obj]
    if isinstance(obj, dict):
        converted = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise ValueError(f"Object keys must be strings, got {type(key).__name__}")
            converted[key] = _to_json_value(value)
        return converted
    raise ValueError(f"Unsupported type for canonical JSON: {type(obj).__name__}")
