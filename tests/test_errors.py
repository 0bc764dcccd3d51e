"""Tests for error handling."""

from glitch_matrix._errors import (
    HttpStatusError,
    InvalidAddressError,
    MatrixError,
    SerializationError,
    ServerError,
    TransportError,
    error_from_response,
)


class TestMatrixError:
    """Tests for the base error."""

    def test_basic_error(self) -> None:
        error = MatrixError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"

    def test_all_errors_share_base(self) -> None:
        for cls in (TransportError, SerializationError, InvalidAddressError):
            assert issubclass(cls, MatrixError)
        assert issubclass(HttpStatusError, MatrixError)
        assert issubclass(ServerError, MatrixError)


class TestTransportError:
    """Tests for TransportError."""

    def test_with_url(self) -> None:
        error = TransportError("Connection refused", url="https://example.com")
        assert "Connection refused" in str(error)
        assert "example.com" in str(error)

    def test_without_url(self) -> None:
        error = TransportError("Timed out")
        assert str(error) == "Timed out"
        assert error.url is None


class TestServerError:
    """Tests for ServerError."""

    def test_fields(self) -> None:
        error = ServerError("M_FORBIDDEN", "You are not invited", status=403)
        assert error.errcode == "M_FORBIDDEN"
        assert error.error == "You are not invited"
        assert error.status == 403
        assert "[M_FORBIDDEN]" in str(error)
        assert "(status=403)" in str(error)
        assert "You are not invited" in str(error)

    def test_error_message_is_optional(self) -> None:
        error = ServerError("M_UNKNOWN")
        assert error.error is None
        assert str(error) == "[M_UNKNOWN]"

    def test_is_not_found(self) -> None:
        assert ServerError("M_NOT_FOUND", status=404).is_not_found
        assert not ServerError("M_FORBIDDEN", status=403).is_not_found

    def test_repr(self) -> None:
        error = ServerError("M_LIMIT_EXCEEDED", "slow down", status=429)
        assert repr(error) == (
            "ServerError(errcode='M_LIMIT_EXCEEDED', error='slow down', status=429)"
        )


class TestErrorFromResponse:
    """Tests for error_from_response factory."""

    def test_envelope_becomes_server_error(self) -> None:
        body = b'{"errcode":"M_FORBIDDEN","error":"no"}'
        error = error_from_response(403, body, "https://example.com/x")
        assert isinstance(error, ServerError)
        assert error.errcode == "M_FORBIDDEN"
        assert error.error == "no"
        assert error.status == 403

    def test_envelope_without_error_text(self) -> None:
        error = error_from_response(404, b'{"errcode":"M_NOT_FOUND"}')
        assert isinstance(error, ServerError)
        assert error.error is None
        assert error.is_not_found

    def test_html_body_becomes_http_status_error(self) -> None:
        error = error_from_response(502, b"<html>Bad Gateway</html>", "https://x")
        assert isinstance(error, HttpStatusError)
        assert error.status == 502
        assert error.body == b"<html>Bad Gateway</html>"

    def test_empty_body(self) -> None:
        error = error_from_response(500, b"")
        assert isinstance(error, HttpStatusError)
        assert error.status == 500

    def test_json_without_errcode(self) -> None:
        error = error_from_response(400, b'{"error":"missing code"}')
        assert isinstance(error, HttpStatusError)
