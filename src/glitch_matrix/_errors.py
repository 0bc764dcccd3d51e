"""
Exception hierarchy for the Matrix client.

Every failure surfaced by the library is a subclass of MatrixError. Errors
raised by httpx, the json module or pydantic are wrapped, with the original
exception attached as ``__cause__``.
"""

from __future__ import annotations

from typing import Any

# Matrix error code meaning the requested resource does not exist
M_NOT_FOUND = "M_NOT_FOUND"


class MatrixError(Exception):
    """
    Base exception for all Matrix client errors.

    Attributes:
        message: Human-readable error message
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r})"


class TransportError(MatrixError):
    """
    Exception for network-level failures.

    Raised for connection failures, DNS errors, TLS errors and timeouts,
    i.e. whenever no HTTP response was received.

    Attributes:
        message: Human-readable error message
        url: The URL that was being requested (if known)
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} at {self.url}"
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"url={self.url!r})"
        )


class SerializationError(MatrixError):
    """
    Exception raised when JSON cannot be produced or consumed.

    Covers malformed JSON in either direction as well as well-formed JSON
    whose shape does not match the expected type.
    """


class InvalidAddressError(MatrixError):
    """
    Exception raised when a request URL cannot be constructed.

    Attributes:
        url: The offending URL
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"url={self.url!r})"
        )


class HttpStatusError(MatrixError):
    """
    Exception for a non-2xx response whose body is not a Matrix error.

    Attributes:
        status: HTTP status code
        url: The URL that was requested
        body: Raw response body (if available)
    """

    def __init__(
        self,
        message: str,
        status: int,
        url: str | None = None,
        body: str | bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.url = url
        self.body = body

    def __str__(self) -> str:
        return f"{self.message} (status={self.status})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"status={self.status!r}, "
            f"url={self.url!r})"
        )


class ServerError(MatrixError):
    """
    Exception for a non-2xx response carrying a Matrix error envelope.

    The homeserver answered ``{"errcode": ..., "error": ...}``.

    Attributes:
        errcode: Matrix error code, e.g. ``M_FORBIDDEN``
        error: Human-readable message from the server (may be None)
        status: HTTP status code
        details: The full decoded error body
    """

    def __init__(
        self,
        errcode: str,
        error: str | None = None,
        status: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(error or errcode)
        self.errcode = errcode
        self.error = error
        self.status = status
        self.details = details

    @property
    def is_not_found(self) -> bool:
        """True if the server reported M_NOT_FOUND."""
        return self.errcode == M_NOT_FOUND

    def __str__(self) -> str:
        parts = [f"[{self.errcode}]"]
        if self.error:
            parts.append(self.error)
        if self.status is not None:
            parts.append(f"(status={self.status})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"errcode={self.errcode!r}, "
            f"error={self.error!r}, "
            f"status={self.status!r})"
        )


def error_from_response(
    status: int,
    body: bytes | str | None,
    url: str | None = None,
) -> MatrixError:
    """
    Create an appropriate error for a non-2xx response.

    The body is first decoded as a Matrix error envelope; if that succeeds
    a ServerError is returned, otherwise an HttpStatusError.

    Args:
        status: The HTTP status code
        body: The raw response body
        url: The URL that was requested

    Returns:
        An appropriate exception instance
    """
    from glitch_matrix._parse import parse_error_envelope

    envelope = parse_error_envelope(body)
    if envelope is not None:
        return ServerError(
            envelope.errcode,
            envelope.error,
            status=status,
            details=envelope.model_dump(),
        )

    return HttpStatusError(
        f"HTTP error {status}" + (f" at {url}" if url else ""),
        status=status,
        url=url,
        body=body,
    )
