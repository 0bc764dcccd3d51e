"""
Typed request builder.

A MatrixRequest describes one call against the client-server API. Building
it against a set of credentials yields a BuiltRequest ready to hand to
httpx; building performs no I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from glitch_matrix._errors import InvalidAddressError
from glitch_matrix._types import (
    ACCESS_TOKEN_QUERY_PARAM,
    API_PATHS,
    USER_ID_QUERY_PARAM,
    ApiType,
    Method,
)
from glitch_matrix._util import encode_json_body, encode_query

JSON_CONTENT_TYPE = "application/json"


class Credentials(Protocol):
    """What the builder needs to know about the session."""

    @property
    def base_url(self) -> str: ...

    @property
    def access_token(self) -> str | None: ...

    @property
    def user_id(self) -> str | None: ...

    @property
    def is_appservice(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class BuiltRequest:
    """
    A fully-resolved HTTP request.

    Attributes:
        method: HTTP method
        url: Absolute URL including the query string
        content: Encoded body, or None for no body
        headers: Request headers
    """

    method: str
    url: str
    content: bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class MatrixRequest:
    """
    Declarative description of a Matrix API call.

    Attributes:
        method: HTTP method
        endpoint: Path below the API prefix, e.g. ``/rooms/!a:b/join``.
            Segments must already be percent-encoded (see ``join_path``).
        params: Extra query parameters; None values are dropped
        body: JSON body (pydantic model, mapping, or anything json-serializable)
        api: Which API family to target
        content: Raw body bytes, sent instead of ``body`` when set
        content_type: Content type for ``content``
    """

    method: Method
    endpoint: str
    params: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    api: ApiType = "client"
    content: bytes | None = None
    content_type: str | None = None

    def build(self, credentials: Credentials) -> BuiltRequest:
        """
        Resolve this request against a session.

        Args:
            credentials: Session supplying base URL and access token. A
                session without a token (before login) adds no auth parameters.

        Returns:
            The built request

        Raises:
            InvalidAddressError: If the resulting URL is malformed
            SerializationError: If the body cannot be serialized
        """
        url = _base_with_prefix(credentials.base_url, self.api) + self.endpoint

        pairs: list[tuple[str, Any]] = []
        if credentials.access_token is not None:
            pairs.append((ACCESS_TOKEN_QUERY_PARAM, credentials.access_token))
        if credentials.is_appservice and credentials.user_id is not None:
            pairs.append((USER_ID_QUERY_PARAM, credentials.user_id))
        pairs.extend(self.params.items())

        query = encode_query(pairs)
        if query:
            url = f"{url}?{query}"
        _validate_url(url)

        headers: dict[str, str] = {}
        if self.content is not None:
            content: bytes | None = self.content
            if self.content_type:
                headers["Content-Type"] = self.content_type
        else:
            content = encode_json_body(self.body)
            if content is not None:
                headers["Content-Type"] = JSON_CONTENT_TYPE

        return BuiltRequest(
            method=self.method,
            url=url,
            content=content,
            headers=headers,
        )


def _base_with_prefix(base_url: str, api: ApiType) -> str:
    try:
        prefix = API_PATHS[api]
    except KeyError:
        raise InvalidAddressError(f"Unknown API family: {api!r}") from None
    return base_url.rstrip("/") + prefix


def _validate_url(url: str) -> None:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise InvalidAddressError(f"Invalid URL: {e}", url=url) from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidAddressError(f"Not an absolute http(s) URL: {url}", url=url)
