"""
Shared utility functions for the Matrix client.

This module provides URL and body encoding used by the request builder.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel

from glitch_matrix._errors import SerializationError
from glitch_matrix._types import Room

# Characters left as-is inside a single path segment. Sigils used by Matrix
# identifiers stay readable; '#' and '/' are always escaped.
_SEGMENT_SAFE = "!:@$"


def quote_segment(value: str | Room) -> str:
    """
    Percent-encode one path segment.

    Args:
        value: Room id, alias, event id, state key or similar

    Returns:
        The encoded segment
    """
    return quote(str(value), safe=_SEGMENT_SAFE)


def join_path(*segments: str | Room) -> str:
    """
    Build an endpoint path from raw segments, encoding each one.

    Example:
        >>> join_path("rooms", "!a:b", "state", "m.room.name", "")
        '/rooms/!a:b/state/m.room.name/'
    """
    return "".join("/" + quote_segment(s) for s in segments)


def format_param(value: Any) -> str:
    """Render a query parameter value as a string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_query(pairs: Iterable[tuple[str, Any]]) -> str:
    """
    Build a query string, percent-encoding every key and value.

    Pairs whose value is None are skipped.

    Args:
        pairs: (key, value) tuples in the order they should appear

    Returns:
        The query string without a leading ``?``
    """
    parts: list[str] = []
    for key, value in pairs:
        if value is None:
            continue
        parts.append(f"{quote(key, safe='')}={quote(format_param(value), safe='')}")
    return "&".join(parts)


def _to_jsonable(body: Any) -> Any:
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json", by_alias=True, exclude_none=True)
    if hasattr(body, "to_dict"):
        return body.to_dict()
    if isinstance(body, Mapping):
        return {str(k): _to_jsonable(v) for k, v in body.items()}
    if isinstance(body, (list, tuple)):
        return [_to_jsonable(v) for v in body]
    if isinstance(body, Room):
        return str(body)
    return body


def encode_json_body(body: Any) -> bytes | None:
    """
    Serialize a request body to JSON bytes.

    A body of None, or one that serializes to an empty object, produces
    no body at all.

    Args:
        body: A pydantic model, an object with ``to_dict()``, or plain JSON data

    Returns:
        Encoded JSON, or None when there is no body

    Raises:
        SerializationError: If the body cannot be serialized
    """
    if body is None:
        return None
    try:
        encoded = json.dumps(_to_jsonable(body), separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot serialize request body: {e}") from e
    if encoded == "{}":
        return None
    return encoded.encode("utf-8")
