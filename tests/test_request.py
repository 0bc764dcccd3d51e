"""Tests for the typed request builder."""

from __future__ import annotations

import json

import pytest

from glitch_matrix import _endpoints
from glitch_matrix._errors import InvalidAddressError, SerializationError
from glitch_matrix._request import MatrixRequest
from glitch_matrix._types import Room
from glitch_matrix.messages import TextMessage
from glitch_matrix.session import Session


def make_session(**kwargs) -> Session:
    defaults = {
        "base_url": "https://hs.example",
        "access_token": "tok",
        "user_id": "@bot:hs.example",
    }
    defaults.update(kwargs)
    return Session(**defaults)


class TestUrlConstruction:
    """Tests for URL building."""

    def test_client_api_prefix_and_token(self) -> None:
        built = MatrixRequest("GET", "/sync").build(make_session())
        assert built.url == "https://hs.example/_matrix/client/r0/sync?access_token=tok"

    def test_media_api_prefix(self) -> None:
        built = MatrixRequest("POST", "/upload", api="media").build(make_session())
        assert built.url.startswith("https://hs.example/_matrix/media/r0/upload?")

    def test_trailing_slash_on_base_url(self) -> None:
        built = MatrixRequest("GET", "/sync").build(
            make_session(base_url="https://hs.example/")
        )
        assert "example/_matrix/client/r0/sync" in built.url
        assert "//_matrix" not in built.url

    def test_params_follow_token(self) -> None:
        req = MatrixRequest("GET", "/sync", params={"since": "s 1", "timeout": 30000})
        built = req.build(make_session())
        assert built.url.endswith("?access_token=tok&since=s%201&timeout=30000")

    def test_none_params_dropped(self) -> None:
        req = MatrixRequest("GET", "/x", params={"a": None, "b": "1"})
        built = req.build(make_session())
        assert built.url.endswith("?access_token=tok&b=1")

    def test_no_token_before_login(self) -> None:
        session = make_session(access_token=None, user_id=None)
        built = _endpoints.login("bot", "pw").build(session)
        assert built.url == "https://hs.example/_matrix/client/r0/login"

    def test_appservice_adds_user_id(self) -> None:
        session = make_session(is_appservice=True, user_id="@bridge_1:hs.example")
        built = MatrixRequest("GET", "/sync", params={"x": "1"}).build(session)
        query = built.url.split("?", 1)[1]
        assert query == "access_token=tok&user_id=%40bridge_1%3Ahs.example&x=1"

    def test_regular_session_has_no_user_id_param(self) -> None:
        built = MatrixRequest("GET", "/sync").build(make_session())
        assert "user_id=" not in built.url


class TestInvalidAddress:
    """Tests for malformed base URLs."""

    @pytest.mark.parametrize("base_url", ["not a url", "ftp://hs.example", ""])
    def test_rejected(self, base_url: str) -> None:
        with pytest.raises(InvalidAddressError):
            MatrixRequest("GET", "/sync").build(make_session(base_url=base_url))


class TestBody:
    """Tests for body serialization."""

    def test_empty_object_means_no_body(self) -> None:
        built = MatrixRequest("POST", "/x", body={}).build(make_session())
        assert built.content is None
        assert "Content-Type" not in built.headers

    def test_json_body(self) -> None:
        built = MatrixRequest("POST", "/x", body={"a": 1}).build(make_session())
        assert json.loads(built.content) == {"a": 1}
        assert built.headers["Content-Type"] == "application/json"

    def test_raw_content(self) -> None:
        built = _endpoints.upload(b"\x89PNG", "image/png").build(make_session())
        assert built.content == b"\x89PNG"
        assert built.headers["Content-Type"] == "image/png"
        assert "/_matrix/media/r0/upload" in built.url

    def test_unserializable_body(self) -> None:
        with pytest.raises(SerializationError):
            MatrixRequest("POST", "/x", body={"a": {1, 2}}).build(make_session())


class TestEndpoints:
    """Tests for the endpoint factories."""

    def test_login_body(self) -> None:
        built = _endpoints.login("bot", "pw").build(make_session(access_token=None))
        assert built.method == "POST"
        assert json.loads(built.content) == {
            "type": "m.login.password",
            "user": "bot",
            "password": "pw",
        }

    def test_send_event(self) -> None:
        req = _endpoints.send_event(
            Room("!r:hs.example"), "m.room.message", "t1", TextMessage(body="hi")
        )
        built = req.build(make_session())
        assert built.method == "PUT"
        assert "/rooms/!r:hs.example/send/m.room.message/t1?" in built.url
        assert json.loads(built.content) == {"msgtype": "m.text", "body": "hi"}

    def test_join_alias_is_escaped(self) -> None:
        built = _endpoints.join("#lobby:hs.example").build(make_session())
        assert "/join/%23lobby:hs.example?" in built.url

    def test_read_receipt(self) -> None:
        built = _endpoints.read_receipt(Room("!r:x"), "$e:x").build(make_session())
        assert built.method == "POST"
        assert "/rooms/!r:x/receipt/m.read/$e:x?" in built.url
        assert built.content is None

    def test_state_paths(self) -> None:
        room = Room("!r:x")
        built = _endpoints.get_state(room, "m.room.power_levels").build(make_session())
        assert "/rooms/!r:x/state/m.room.power_levels/?" in built.url
        req = _endpoints.get_state(room, "m.room.member", "@a:x")
        built = req.build(make_session())
        assert "/rooms/!r:x/state/m.room.member/@a:x?" in built.url

    def test_messages_params(self) -> None:
        req = _endpoints.messages(Room("!r:x"), "t0", backward=False, limit=10)
        built = req.build(make_session())
        assert built.url.endswith("access_token=tok&from=t0&dir=f&limit=10")

    def test_redact_without_reason_has_no_body(self) -> None:
        built = _endpoints.redact(Room("!r:x"), "$e", "t9").build(make_session())
        assert built.method == "PUT"
        assert "/rooms/!r:x/redact/$e/t9?" in built.url
        assert built.content is None

    def test_typing(self) -> None:
        req = _endpoints.typing(Room("!r:x"), "@bot:x", True, 5000)
        built = req.build(make_session())
        assert "/rooms/!r:x/typing/@bot:x?" in built.url
        assert json.loads(built.content) == {"typing": True, "timeout": 5000}

    def test_stop_typing_omits_timeout(self) -> None:
        built = _endpoints.typing(Room("!r:x"), "@bot:x", False, 5000).build(
            make_session()
        )
        assert json.loads(built.content) == {"typing": False}

    def test_kick_body(self) -> None:
        req = _endpoints.membership(Room("!r:x"), "kick", user_id="@a:x", reason="spam")
        built = req.build(make_session())
        assert "/rooms/!r:x/kick?" in built.url
        assert json.loads(built.content) == {"user_id": "@a:x", "reason": "spam"}

    def test_leave_has_no_body(self) -> None:
        built = _endpoints.membership(Room("!r:x"), "leave").build(make_session())
        assert built.content is None
