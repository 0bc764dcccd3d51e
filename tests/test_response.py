"""Tests for the response pipeline."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from glitch_matrix._errors import (
    HttpStatusError,
    InvalidAddressError,
    SerializationError,
    ServerError,
    TransportError,
)
from glitch_matrix._request import BuiltRequest
from glitch_matrix._response import asend_request, handle_response, send_request
from glitch_matrix.replies import SendReply


class MockResponse:
    """Mock httpx.Response for testing."""

    def __init__(self, content: bytes | str = b"", *, status_code: int = 200):
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._content = content
        self.status_code = status_code
        self.closed = False

    def read(self) -> bytes:
        return self._content

    def close(self) -> None:
        self.closed = True


class MockAsyncResponse:
    """Mock httpx.Response for async testing."""

    def __init__(self, content: bytes | str = b"", *, status_code: int = 200):
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._content = content
        self.status_code = status_code
        self.closed = False

    async def aread(self) -> bytes:
        return self._content

    async def aclose(self) -> None:
        self.closed = True


BUILT = BuiltRequest(
    method="GET",
    url="https://hs.example/_matrix/client/r0/sync?access_token=secret",
)


def setup_mock_client(response: MockResponse) -> MagicMock:
    mock_client = MagicMock(spec=httpx.Client)
    mock_client.build_request.return_value = MagicMock()
    mock_client.send.return_value = response
    return mock_client


class TestHandleResponse:
    """Tests for status classification and decoding."""

    def test_success_returns_parsed_json(self) -> None:
        assert handle_response(200, b'{"a": 1}') == {"a": 1}

    def test_success_with_decoder(self) -> None:
        reply = handle_response(
            200, b'{"event_id": "$e"}', decode=SendReply.model_validate
        )
        assert reply.event_id == "$e"

    def test_discard_skips_parsing(self) -> None:
        assert handle_response(200, b"not json", discard=True) is None

    def test_server_error(self) -> None:
        with pytest.raises(ServerError) as exc_info:
            handle_response(403, b'{"errcode":"M_FORBIDDEN","error":"x"}')
        assert exc_info.value.errcode == "M_FORBIDDEN"
        assert exc_info.value.status == 403

    def test_error_status_wins_over_discard(self) -> None:
        with pytest.raises(ServerError):
            handle_response(404, b'{"errcode":"M_NOT_FOUND"}', discard=True)

    def test_non_matrix_error_body(self) -> None:
        with pytest.raises(HttpStatusError) as exc_info:
            handle_response(502, b"Bad Gateway")
        assert exc_info.value.status == 502

    def test_invalid_json(self) -> None:
        with pytest.raises(SerializationError):
            handle_response(200, b"{oops")

    def test_wrong_shape(self) -> None:
        with pytest.raises(SerializationError) as exc_info:
            handle_response(200, b'{"other": 1}', decode=SendReply.model_validate)
        assert exc_info.value.__cause__ is not None

    def test_key_error_in_decoder_is_wrapped(self) -> None:
        with pytest.raises(SerializationError):
            handle_response(200, b"{}", decode=lambda d: d["missing"])


class TestSendRequest:
    """Tests for send_request() with a mocked client."""

    def test_uses_streaming_send_and_closes(self) -> None:
        response = MockResponse(b'{"ok": true}')
        mock_client = setup_mock_client(response)

        result = send_request(mock_client, BUILT)

        assert result == {"ok": True}
        assert response.closed
        args, kwargs = mock_client.build_request.call_args
        assert args == ("GET", BUILT.url)
        assert kwargs["content"] is None
        assert mock_client.send.call_args[1]["stream"] is True

    def test_timeout_override(self) -> None:
        mock_client = setup_mock_client(MockResponse(b"{}"))
        send_request(mock_client, BUILT, timeout=40.0)
        assert mock_client.build_request.call_args[1]["timeout"] == 40.0

    def test_error_status(self) -> None:
        response = MockResponse(b'{"errcode":"M_UNKNOWN_TOKEN"}', status_code=401)
        mock_client = setup_mock_client(response)
        with pytest.raises(ServerError) as exc_info:
            send_request(mock_client, BUILT)
        assert exc_info.value.errcode == "M_UNKNOWN_TOKEN"
        assert response.closed

    def test_connect_error_becomes_transport_error(self) -> None:
        mock_client = setup_mock_client(MockResponse())
        mock_client.send.side_effect = httpx.ConnectError("refused")
        with pytest.raises(TransportError) as exc_info:
            send_request(mock_client, BUILT)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout_becomes_transport_error(self) -> None:
        mock_client = setup_mock_client(MockResponse())
        mock_client.send.side_effect = httpx.ReadTimeout("slow")
        with pytest.raises(TransportError, match="timed out"):
            send_request(mock_client, BUILT)

    def test_transport_error_hides_token(self) -> None:
        mock_client = setup_mock_client(MockResponse())
        mock_client.send.side_effect = httpx.ConnectError("refused")
        with pytest.raises(TransportError) as exc_info:
            send_request(mock_client, BUILT)
        assert "secret" not in str(exc_info.value)

    def test_invalid_url_becomes_invalid_address(self) -> None:
        mock_client = setup_mock_client(MockResponse())
        mock_client.build_request.side_effect = httpx.InvalidURL("bad")
        with pytest.raises(InvalidAddressError):
            send_request(mock_client, BUILT)


class TestAsendRequest:
    """Tests for asend_request()."""

    @pytest.mark.anyio
    async def test_success(self) -> None:
        response = MockAsyncResponse(b'{"event_id": "$e"}')
        mock_client = MagicMock(spec=httpx.AsyncClient)
        mock_client.build_request.return_value = MagicMock()
        mock_client.send = AsyncMock(return_value=response)

        reply = await asend_request(
            mock_client, BUILT, decode=SendReply.model_validate
        )

        assert reply.event_id == "$e"
        assert response.closed
        assert mock_client.send.call_args[1]["stream"] is True

    @pytest.mark.anyio
    async def test_error_status(self) -> None:
        mock_client = MagicMock(spec=httpx.AsyncClient)
        mock_client.build_request.return_value = MagicMock()
        mock_client.send = AsyncMock(
            return_value=MockAsyncResponse(b"oops", status_code=500)
        )
        with pytest.raises(HttpStatusError):
            await asend_request(mock_client, BUILT)

    @pytest.mark.anyio
    async def test_network_error(self) -> None:
        mock_client = MagicMock(spec=httpx.AsyncClient)
        mock_client.build_request.return_value = MagicMock()
        mock_client.send = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(TransportError):
            await asend_request(mock_client, BUILT)
