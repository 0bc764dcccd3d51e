"""
Typed request bodies and replies for the client-server API.

Small replies are pydantic models; the sync snapshot is a tree of frozen
dataclasses holding decoded events.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from glitch_matrix._errors import SerializationError
from glitch_matrix._types import Room, SyncToken
from glitch_matrix.events import Event, decode_events


class _Reply(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class LoginReply(_Reply):
    user_id: str
    access_token: str
    device_id: str | None = None
    home_server: str | None = None


class SendReply(_Reply):
    event_id: str


class SetStateReply(_Reply):
    event_id: str


class JoinReply(_Reply):
    room: Room = Field(alias="room_id")


class UploadReply(_Reply):
    content_uri: str


class WhoamiReply(_Reply):
    user_id: str


class RoomAliasReply(_Reply):
    room: Room = Field(alias="room_id")
    servers: list[str] = Field(default_factory=list)


class MessagesReply(_Reply):
    """
    A page of room history.

    ``chunk`` holds raw event objects; use ``events()`` to decode them.
    """

    start: str
    end: str | None = None
    chunk: list[dict[str, Any]] = Field(default_factory=list)

    def events(
        self, *, strict: bool = False, room: Room | None = None
    ) -> list[Event]:
        return decode_events(self.chunk, strict=strict, room=room)


class RoomMember(_Reply):
    display_name: str | None = None
    avatar_url: str | None = None


class JoinedMembersReply(_Reply):
    joined: dict[str, RoomMember] = Field(default_factory=dict)


class RoomCreationOptions(BaseModel):
    """Body of ``POST /createRoom``. Unset fields are not sent."""

    model_config = ConfigDict(extra="forbid")

    visibility: Literal["public", "private"] | None = None
    room_alias_name: str | None = None
    name: str | None = None
    topic: str | None = None
    invite: list[str] = Field(default_factory=list)
    creation_content: dict[str, Any] = Field(default_factory=dict)
    preset: Literal["private_chat", "public_chat", "trusted_private_chat"] | None = None
    is_direct: bool = False


# === /sync ===


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SerializationError(f"Sync field {key!r} must be an object")
    return value


def _events_of(
    data: Mapping[str, Any], key: str, *, strict: bool, room: Room | None
) -> tuple[Event, ...]:
    events = _section(data, key).get("events")
    return tuple(decode_events(events, strict=strict, room=room))


@dataclass(frozen=True, slots=True)
class Timeline:
    events: tuple[Event, ...] = ()
    prev_batch: str | None = None
    limited: bool = False

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], *, strict: bool, room: Room
    ) -> Timeline:
        return cls(
            events=tuple(decode_events(data.get("events"), strict=strict, room=room)),
            prev_batch=data.get("prev_batch"),
            limited=bool(data.get("limited", False)),
        )


@dataclass(frozen=True, slots=True)
class UnreadNotifications:
    highlight_count: int = 0
    notification_count: int = 0


@dataclass(frozen=True, slots=True)
class JoinedRoom:
    state: tuple[Event, ...] = ()
    timeline: Timeline = field(default_factory=Timeline)
    ephemeral: tuple[Event, ...] = ()
    account_data: tuple[Event, ...] = ()
    unread_notifications: UnreadNotifications = field(
        default_factory=UnreadNotifications
    )

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], *, strict: bool, room: Room
    ) -> JoinedRoom:
        unread = _section(data, "unread_notifications")
        return cls(
            state=_events_of(data, "state", strict=strict, room=room),
            timeline=Timeline.from_dict(
                _section(data, "timeline"), strict=strict, room=room
            ),
            ephemeral=_events_of(data, "ephemeral", strict=strict, room=room),
            account_data=_events_of(data, "account_data", strict=strict, room=room),
            unread_notifications=UnreadNotifications(
                highlight_count=unread.get("highlight_count") or 0,
                notification_count=unread.get("notification_count") or 0,
            ),
        )


@dataclass(frozen=True, slots=True)
class InvitedRoom:
    invite_state: tuple[Event, ...] = ()

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], *, strict: bool, room: Room
    ) -> InvitedRoom:
        return cls(
            invite_state=_events_of(data, "invite_state", strict=strict, room=room)
        )


@dataclass(frozen=True, slots=True)
class LeftRoom:
    state: tuple[Event, ...] = ()
    timeline: Timeline = field(default_factory=Timeline)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], *, strict: bool, room: Room
    ) -> LeftRoom:
        return cls(
            state=_events_of(data, "state", strict=strict, room=room),
            timeline=Timeline.from_dict(
                _section(data, "timeline"), strict=strict, room=room
            ),
        )


@dataclass(frozen=True, slots=True)
class Rooms:
    join: Mapping[Room, JoinedRoom] = field(default_factory=dict)
    invite: Mapping[Room, InvitedRoom] = field(default_factory=dict)
    leave: Mapping[Room, LeftRoom] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SyncReply:
    """
    One /sync snapshot.

    Attributes:
        next_batch: Cursor to pass as ``since`` on the next poll
        rooms: Per-room updates, split by membership
        account_data: Global account data events
        presence: Presence events
        to_device: Device-to-device events
    """

    next_batch: SyncToken
    rooms: Rooms = field(default_factory=Rooms)
    account_data: tuple[Event, ...] = ()
    presence: tuple[Event, ...] = ()
    to_device: tuple[Event, ...] = ()

    @classmethod
    def from_dict(cls, data: Any, *, strict: bool = False) -> SyncReply:
        """
        Decode a /sync response body.

        Raises:
            SerializationError: If the body is not a sync response
        """
        if not isinstance(data, Mapping):
            raise SerializationError("Sync response must be an object")
        next_batch = data.get("next_batch")
        if not isinstance(next_batch, str):
            raise SerializationError("Sync response is missing 'next_batch'")

        rooms = _section(data, "rooms")
        return cls(
            next_batch=next_batch,
            rooms=Rooms(
                join=_rooms_of(rooms, "join", JoinedRoom, strict=strict),
                invite=_rooms_of(rooms, "invite", InvitedRoom, strict=strict),
                leave=_rooms_of(rooms, "leave", LeftRoom, strict=strict),
            ),
            account_data=_events_of(data, "account_data", strict=strict, room=None),
            presence=_events_of(data, "presence", strict=strict, room=None),
            to_device=_events_of(data, "to_device", strict=strict, room=None),
        )

    def iter_events(self) -> Iterator[tuple[Room, Event]]:
        """Yield (room, event) for every timeline event of every joined room."""
        for room, joined in self.rooms.join.items():
            for event in joined.timeline.events:
                yield room, event


def _rooms_of(
    rooms: Mapping[str, Any], key: str, kind: Any, *, strict: bool
) -> Mapping[Room, Any]:
    out: dict[Room, Any] = {}
    for room_id, data in _section(rooms, key).items():
        if not isinstance(data, Mapping):
            raise SerializationError(f"Sync room {room_id!r} must be an object")
        room = Room(room_id)
        out[room] = kind.from_dict(data, strict=strict, room=room)
    return MappingProxyType(out)
