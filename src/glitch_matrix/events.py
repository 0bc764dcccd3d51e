"""
Event decoding.

An event is recognised by trying shapes in a fixed order:

1. redacted: ``unsigned.redacted_because`` is present. The content is kept
   raw and the redacting event is decoded as a nested Event.
2. full: ``event_id``, ``sender`` and ``origin_server_ts`` are all present.
3. minimal: anything else with a string ``type`` (ephemeral events,
   account data, stripped invite state).

Content is decoded through the table in ``glitch_matrix.content``.
Structural problems with the event itself (not an object, no ``type``,
wrongly-typed id fields) always raise SerializationError; content that does
not validate only raises in strict mode.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from glitch_matrix._errors import SerializationError
from glitch_matrix._types import EventShape, Room
from glitch_matrix.content import (
    Content,
    UnknownContent,
    decode_content,
    encode_content,
)


@dataclass(frozen=True, slots=True)
class UnsignedData:
    """
    Server-added metadata that is not covered by the event signature.

    Attributes:
        age: Milliseconds since the event was sent
        transaction_id: Client transaction id, only for the sender's own events
        prev_content: Previous content of a state event
        prev_sender: Sender of the previous state event
        redacted_because: The redaction event, if this event was redacted
    """

    age: int | None = None
    transaction_id: str | None = None
    prev_content: Content | None = None
    prev_sender: str | None = None
    redacted_because: Event | None = None


@dataclass(frozen=True, slots=True)
class Event:
    """
    A decoded Matrix event.

    An event is a room event when ``event_id``, ``sender`` and
    ``origin_server_ts`` are all set, and a state event when ``state_key``
    is set. Any combination can occur.
    """

    event_type: str
    content: Content
    shape: EventShape
    event_id: str | None = None
    sender: str | None = None
    origin_server_ts: int | None = None
    room: Room | None = None
    state_key: str | None = None
    prev_content: Content | None = None
    unsigned: UnsignedData = field(default_factory=UnsignedData)
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_room_event(self) -> bool:
        return (
            self.event_id is not None
            and self.sender is not None
            and self.origin_server_ts is not None
        )

    @property
    def is_state(self) -> bool:
        return self.state_key is not None

    @property
    def is_redacted(self) -> bool:
        return self.unsigned.redacted_because is not None

    def to_dict(self) -> dict[str, Any]:
        """Encode back to wire JSON."""
        return encode_event(self)


def _field(raw: Mapping[str, Any], key: str, kind: type) -> Any:
    value = raw.get(key)
    if value is None:
        return None
    # bool is an int subclass, but never a valid timestamp
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise SerializationError(
            f"Event field {key!r} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def decode_event(
    raw: Any,
    *,
    strict: bool = False,
    room: Room | None = None,
) -> Event:
    """
    Decode one event.

    Args:
        raw: The event JSON object
        strict: Raise on known content that does not validate
        room: Room to attribute the event to when it has no ``room_id``
            (events inside a sync room section omit it)

    Returns:
        The decoded Event

    Raises:
        SerializationError: If the event is structurally invalid, or in
            strict mode if its content does not validate
    """
    if not isinstance(raw, Mapping):
        raise SerializationError(f"Event must be an object, got {type(raw).__name__}")

    event_type = raw.get("type")
    if not isinstance(event_type, str):
        raise SerializationError("Event is missing a string 'type'")

    content_raw = raw.get("content")
    if not isinstance(content_raw, Mapping):
        raise SerializationError(f"Event {event_type} is missing an object 'content'")

    unsigned_raw = raw.get("unsigned") or {}
    if not isinstance(unsigned_raw, Mapping):
        raise SerializationError(f"Event {event_type} has a non-object 'unsigned'")

    event_id = _field(raw, "event_id", str)
    sender = _field(raw, "sender", str)
    origin_server_ts = _field(raw, "origin_server_ts", int)
    state_key = _field(raw, "state_key", str)
    room_id = _field(raw, "room_id", str)

    shape: EventShape
    redacted_because: Event | None = None
    if unsigned_raw.get("redacted_because") is not None:
        shape = "redacted"
        content: Content = UnknownContent(event_type, dict(content_raw))
        redacted_because = decode_event(
            unsigned_raw["redacted_because"], strict=strict, room=room
        )
    else:
        is_full = (
            event_id is not None
            and sender is not None
            and origin_server_ts is not None
        )
        shape = "full" if is_full else "minimal"
        content = decode_content(event_type, dict(content_raw), strict=strict)

    prev_content = _decode_prev_content(
        event_type, raw.get("prev_content"), strict=strict
    )
    unsigned_prev = _decode_prev_content(
        event_type, unsigned_raw.get("prev_content"), strict=strict
    )

    unsigned = UnsignedData(
        age=_field(unsigned_raw, "age", int),
        transaction_id=(
            _field(unsigned_raw, "transaction_id", str)
            or _field(unsigned_raw, "txn_id", str)
        ),
        prev_content=unsigned_prev,
        prev_sender=_field(unsigned_raw, "prev_sender", str)
        or _field(raw, "prev_sender", str),
        redacted_because=redacted_because,
    )

    return Event(
        event_type=event_type,
        content=content,
        shape=shape,
        event_id=event_id,
        sender=sender,
        origin_server_ts=origin_server_ts,
        room=Room(room_id) if room_id is not None else room,
        state_key=state_key,
        prev_content=prev_content if prev_content is not None else unsigned_prev,
        unsigned=unsigned,
        raw=raw,
    )


def _decode_prev_content(event_type: str, raw: Any, *, strict: bool) -> Content | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise SerializationError(f"Event {event_type} has a non-object 'prev_content'")
    return decode_content(event_type, dict(raw), strict=strict)


def decode_events(
    raw: Any,
    *,
    strict: bool = False,
    room: Room | None = None,
) -> list[Event]:
    """Decode a JSON list of events."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SerializationError(f"Expected a list of events, got {type(raw).__name__}")
    return [decode_event(item, strict=strict, room=room) for item in raw]


def encode_event(event: Event) -> dict[str, Any]:
    """
    Encode an event to wire JSON.

    Fields the decoder does not model (``unsigned`` extras, unknown keys)
    are carried over from the raw JSON.
    """
    out: dict[str, Any] = dict(event.raw)
    out["type"] = event.event_type
    out["content"] = encode_content(event.content)
    for key, value in (
        ("event_id", event.event_id),
        ("sender", event.sender),
        ("origin_server_ts", event.origin_server_ts),
        ("state_key", event.state_key),
    ):
        if value is not None:
            out[key] = value
    return out
