"""Tests for reply models and the sync snapshot."""

from __future__ import annotations

import json

import pytest
from conftest import ROOM_ID, message_event, sync_body

from glitch_matrix._errors import SerializationError
from glitch_matrix._types import Room
from glitch_matrix.replies import (
    JoinedMembersReply,
    JoinReply,
    LoginReply,
    MessagesReply,
    RoomAliasReply,
    RoomCreationOptions,
    SyncReply,
)


class TestRoom:
    """Tests for the Room newtype."""

    def test_equality_and_hash(self) -> None:
        assert Room("!a:x") == Room("!a:x")
        assert hash(Room("!a:x")) == hash(Room("!a:x"))
        assert Room("!a:x") != Room("!b:x")

    def test_ordering(self) -> None:
        assert sorted([Room("!b:x"), Room("!a:x")]) == [Room("!a:x"), Room("!b:x")]

    def test_str(self) -> None:
        assert str(Room("!a:x")) == "!a:x"

    def test_model_round_trip_as_bare_string(self) -> None:
        reply = JoinReply.model_validate({"room_id": "!a:x"})
        assert reply.room == Room("!a:x")
        assert reply.model_dump(mode="json", by_alias=True) == {"room_id": "!a:x"}

    def test_rejects_non_string(self) -> None:
        with pytest.raises(ValueError):
            JoinReply.model_validate({"room_id": 5})


class TestSimpleReplies:
    """Tests for small reply models."""

    def test_login_reply(self) -> None:
        reply = LoginReply.model_validate(
            {"user_id": "@bot:x", "access_token": "t", "device_id": "D", "extra": 1}
        )
        assert reply.user_id == "@bot:x"
        assert reply.device_id == "D"

    def test_alias_reply(self) -> None:
        reply = RoomAliasReply.model_validate({"room_id": "!r:x", "servers": ["x"]})
        assert reply.room == Room("!r:x")
        assert reply.servers == ["x"]

    def test_messages_reply(self) -> None:
        reply = MessagesReply.model_validate(
            {"start": "t0", "end": "t1", "chunk": [message_event("old")]}
        )
        events = reply.events(room=Room("!r:x"))
        assert len(events) == 1
        assert events[0].room == Room("!r:x")

    def test_joined_members(self) -> None:
        reply = JoinedMembersReply.model_validate(
            {"joined": {"@a:x": {"display_name": "A", "avatar_url": None}}}
        )
        assert reply.joined["@a:x"].display_name == "A"

    def test_room_creation_options_omit_unset(self) -> None:
        options = RoomCreationOptions(name="Lobby", preset="public_chat")
        body = json.loads(options.model_dump_json(exclude_none=True))
        assert body == {
            "name": "Lobby",
            "preset": "public_chat",
            "invite": [],
            "creation_content": {},
            "is_direct": False,
        }


class TestSyncReply:
    """Tests for SyncReply.from_dict()."""

    def test_joined_room_timeline(self) -> None:
        data = sync_body("s1", timeline=[message_event("hello")])
        reply = SyncReply.from_dict(data)

        assert reply.next_batch == "s1"
        room = Room(ROOM_ID)
        joined = reply.rooms.join[room]
        assert joined.timeline.prev_batch == "p0"
        assert joined.timeline.limited is False
        assert joined.unread_notifications.notification_count == 1
        assert joined.timeline.events[0].room == room

    def test_iter_events(self) -> None:
        data = sync_body(
            "s1",
            timeline=[
                message_event("a", event_id="$1"),
                message_event("b", event_id="$2"),
            ],
        )
        pairs = list(SyncReply.from_dict(data).iter_events())
        seen = [(str(r), e.event_id) for r, e in pairs]
        assert seen == [(ROOM_ID, "$1"), (ROOM_ID, "$2")]

    def test_empty_sections(self) -> None:
        reply = SyncReply.from_dict({"next_batch": "s0"})
        assert dict(reply.rooms.join) == {}
        assert reply.presence == ()
        assert list(reply.iter_events()) == []

    def test_invite_and_leave(self) -> None:
        data = {
            "next_batch": "s2",
            "rooms": {
                "invite": {
                    "!inv:x": {
                        "invite_state": {
                            "events": [
                                {
                                    "type": "m.room.member",
                                    "state_key": "@bot:x",
                                    "sender": "@a:x",
                                    "content": {"membership": "invite"},
                                }
                            ]
                        }
                    }
                },
                "leave": {"!old:x": {"timeline": {"events": []}}},
            },
        }
        reply = SyncReply.from_dict(data)
        invited = reply.rooms.invite[Room("!inv:x")]
        assert invited.invite_state[0].shape == "minimal"
        assert Room("!old:x") in reply.rooms.leave

    def test_global_sections(self) -> None:
        data = {
            "next_batch": "s3",
            "presence": {
                "events": [
                    {
                        "type": "m.presence",
                        "sender": "@a:x",
                        "content": {"presence": "online"},
                    }
                ]
            },
            "account_data": {
                "events": [{"type": "m.direct", "content": {"@a:x": ["!r:x"]}}]
            },
        }
        reply = SyncReply.from_dict(data)
        assert reply.presence[0].event_type == "m.presence"
        assert reply.account_data[0].event_type == "m.direct"

    def test_snapshot_is_immutable(self) -> None:
        reply = SyncReply.from_dict(sync_body("s1"))
        with pytest.raises(TypeError):
            reply.rooms.join[Room("!new:x")] = None  # type: ignore[index]

    def test_missing_next_batch(self) -> None:
        with pytest.raises(SerializationError):
            SyncReply.from_dict({"rooms": {}})

    def test_not_an_object(self) -> None:
        with pytest.raises(SerializationError):
            SyncReply.from_dict([])

    def test_strict_propagates(self) -> None:
        bad = message_event("x")
        bad["content"] = {"msgtype": "m.image", "body": "no url"}
        data = sync_body("s1", timeline=[bad])
        assert SyncReply.from_dict(data).rooms.join[Room(ROOM_ID)]
        with pytest.raises(SerializationError):
            SyncReply.from_dict(data, strict=True)
