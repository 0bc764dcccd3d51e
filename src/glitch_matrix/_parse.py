"""
Parsing utilities for Matrix responses.

This module handles decoding of response bodies and the Matrix error
envelope.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from glitch_matrix._errors import SerializationError

T = TypeVar("T")

# Exceptions a decoder may raise when data has the wrong shape
DECODE_ERRORS = (ValidationError, ValueError, TypeError, KeyError)


class ErrorEnvelope(BaseModel):
    """Body of a failed Matrix request."""

    errcode: str
    error: str | None = None


def parse_json(body: bytes | str) -> Any:
    """
    Parse a response body as JSON.

    Args:
        body: Raw response body

    Returns:
        The parsed JSON value

    Raises:
        SerializationError: If the body is not valid JSON
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationError(f"Response body is not UTF-8: {e}") from e
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON in response body: {e}") from e


def parse_error_envelope(body: bytes | str | None) -> ErrorEnvelope | None:
    """
    Try to decode a response body as a Matrix error envelope.

    Returns None when the body is empty, not JSON, or not shaped like
    ``{"errcode": ..., "error": ...}``.
    """
    if not body:
        return None
    try:
        return ErrorEnvelope.model_validate_json(body)
    except ValidationError:
        return None


def decode_with(decode: Callable[[Any], T], data: Any, what: str = "response") -> T:
    """
    Apply a decoder to parsed JSON, wrapping shape errors.

    Args:
        decode: Callable turning parsed JSON into the target type
        data: Parsed JSON value
        what: Description of the data for error messages

    Returns:
        The decoded value

    Raises:
        SerializationError: If the decoder rejects the data
    """
    try:
        return decode(data)
    except SerializationError:
        raise
    except DECODE_ERRORS as e:
        raise SerializationError(f"Unexpected {what} shape: {e}") from e
