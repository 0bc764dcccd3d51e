"""
Response pipeline.

Sends a BuiltRequest with httpx, buffers the whole body and turns it into
either a decoded value or a classified MatrixError. Both the sync and the
async client go through here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from glitch_matrix._errors import (
    InvalidAddressError,
    TransportError,
    error_from_response,
)
from glitch_matrix._parse import decode_with, parse_json
from glitch_matrix._request import BuiltRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


def handle_response(
    status: int,
    body: bytes,
    *,
    url: str | None = None,
    decode: Callable[[Any], T] | None = None,
    discard: bool = False,
) -> T | Any:
    """
    Classify a buffered response and decode its body.

    Args:
        status: HTTP status code
        body: The complete response body
        url: The requested URL, for error messages
        decode: Callable applied to the parsed JSON (default: return it as-is)
        discard: Skip parsing entirely and return None on success

    Returns:
        The decoded value, or None when ``discard`` is set

    Raises:
        ServerError: Non-2xx with a Matrix error envelope
        HttpStatusError: Non-2xx without one
        SerializationError: 2xx whose body is not the expected JSON
    """
    if not 200 <= status < 300:
        raise error_from_response(status, body, url)

    if discard:
        return None

    data = parse_json(body)
    if decode is None:
        return data
    return decode_with(decode, data)


def _redact(url: str) -> str:
    """Strip the query string (it carries the access token) for logging."""
    return url.split("?", 1)[0]


def _wrap_transport(e: Exception, url: str) -> Exception:
    if isinstance(e, httpx.InvalidURL):
        return InvalidAddressError(f"Invalid URL: {e}", url=_redact(url))
    if isinstance(e, httpx.TimeoutException):
        return TransportError(f"Request timed out: {e}", url=_redact(url))
    return TransportError(f"Request failed: {e}", url=_redact(url))


def send_request(
    client: httpx.Client,
    built: BuiltRequest,
    *,
    decode: Callable[[Any], T] | None = None,
    discard: bool = False,
    timeout: float | httpx.Timeout | None = None,
) -> T | Any:
    """
    Send a request and run the response through the pipeline.

    Args:
        client: httpx client to send with
        built: The request to send
        decode: Decoder for the JSON body
        discard: Ignore the body of a successful response
        timeout: Per-request timeout override

    Returns:
        The decoded value (see ``handle_response``)

    Raises:
        TransportError: If no response was received
        InvalidAddressError: If httpx rejects the URL
    """
    logger.debug("%s %s", built.method, _redact(built.url))
    try:
        request = client.build_request(
            built.method,
            built.url,
            content=built.content,
            headers=built.headers,
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )
        response = client.send(request, stream=True)
        try:
            body = response.read()
        finally:
            response.close()
    except (httpx.RequestError, httpx.InvalidURL) as e:
        raise _wrap_transport(e, built.url) from e

    logger.debug(
        "%s %s -> %d (%d bytes)",
        built.method,
        _redact(built.url),
        response.status_code,
        len(body),
    )
    return handle_response(
        response.status_code,
        body,
        url=_redact(built.url),
        decode=decode,
        discard=discard,
    )


async def asend_request(
    client: httpx.AsyncClient,
    built: BuiltRequest,
    *,
    decode: Callable[[Any], T] | None = None,
    discard: bool = False,
    timeout: float | httpx.Timeout | None = None,
) -> T | Any:
    """Async version of send_request."""
    logger.debug("%s %s", built.method, _redact(built.url))
    try:
        request = client.build_request(
            built.method,
            built.url,
            content=built.content,
            headers=built.headers,
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )
        response = await client.send(request, stream=True)
        try:
            body = await response.aread()
        finally:
            await response.aclose()
    except (httpx.RequestError, httpx.InvalidURL) as e:
        raise _wrap_transport(e, built.url) from e

    logger.debug(
        "%s %s -> %d (%d bytes)",
        built.method,
        _redact(built.url),
        response.status_code,
        len(body),
    )
    return handle_response(
        response.status_code,
        body,
        url=_redact(built.url),
        decode=decode,
        discard=discard,
    )
