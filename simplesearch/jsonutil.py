"""Compact JSON encoding and single-value JSON decoding."""

from __future__ import annotations

import json
from typing import IO, Any, Union

_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def _default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def json_encode(value: Any) -> bytes:
    """Serialise ``value`` as compact UTF-8 JSON followed by a newline.

    HTML-sensitive characters are escaped. Objects with a ``to_dict`` method are
    encoded through it. Raises ``ValueError`` for NaN or infinity and
    ``TypeError`` for values that cannot be represented.
    """
    text = json.dumps(
        value,
        ensure_ascii=False,
        allow_nan=False,
        separators=(",", ":"),
        default=_default,
    )
    return (text.translate(_ESCAPES) + "\n").encode("utf-8")


def json_decode(stream: IO[Union[str, bytes]]) -> Any:
    """Read the first JSON value from ``stream``; trailing data is ignored."""
    data = stream.read()
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8", errors="replace")
    text = data.lstrip(" \t\r\n")
    if not text:
        raise ValueError("unexpected end of JSON input")
    value, _ = json.JSONDecoder().raw_decode(text)
    return value