"""
Event content, keyed by event type.

Every known event type maps to a pydantic model through a read-only
dispatch table built at import time. Content for types not in the table, or
content that does not validate, decodes to UnknownContent so that one odd
event never fails a whole sync batch. Pass ``strict=True`` to raise instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, ClassVar, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    TypeAdapter,
    ValidationError,
)

from glitch_matrix._errors import SerializationError
from glitch_matrix._types import ContentModel
from glitch_matrix.messages import MESSAGE_ADAPTER, ImageInfo, Message

logger = logging.getLogger(__name__)

Membership = Literal["invite", "join", "leave", "ban", "knock"]
PresenceState = Literal["online", "offline", "unavailable"]


# === Room state ===


class Aliases(ContentModel):
    event_type: ClassVar[str] = "m.room.aliases"

    aliases: list[str] = Field(default_factory=list)


class Avatar(ContentModel):
    event_type: ClassVar[str] = "m.room.avatar"

    url: str
    info: ImageInfo | None = None


class CanonicalAlias(ContentModel):
    event_type: ClassVar[str] = "m.room.canonical_alias"

    alias: str


class Create(ContentModel):
    event_type: ClassVar[str] = "m.room.create"

    creator: str
    federate: bool = Field(default=True, alias="m.federate")


class GuestAccess(ContentModel):
    event_type: ClassVar[str] = "m.room.guest_access"

    guest_access: Literal["can_join", "forbidden"]


class HistoryVisibility(ContentModel):
    event_type: ClassVar[str] = "m.room.history_visibility"

    history_visibility: Literal["invited", "joined", "shared", "world_readable"]


class JoinRules(ContentModel):
    event_type: ClassVar[str] = "m.room.join_rules"

    join_rule: Literal["public", "invite", "knock", "private"]


class Member(ContentModel):
    """Membership of one user in a room; the user is the event's state_key."""

    event_type: ClassVar[str] = "m.room.member"

    membership: Membership
    displayname: str | None = None
    avatar_url: str | None = None
    is_direct: bool | None = None
    third_party_invite: dict[str, Any] | None = None


class Name(ContentModel):
    event_type: ClassVar[str] = "m.room.name"

    name: str


class PowerLevels(ContentModel):
    """
    Room power levels.

    Missing fields take the protocol defaults.
    """

    event_type: ClassVar[str] = "m.room.power_levels"

    ban: int = 50
    events: dict[str, int] = Field(default_factory=dict)
    events_default: int = 0
    invite: int = 50
    kick: int = 50
    redact: int = 50
    state_default: int = 50
    users: dict[str, int] = Field(default_factory=dict)
    users_default: int = 0

    def user_level(self, user_id: str) -> int:
        """Power level of a user, falling back to ``users_default``."""
        return self.users.get(user_id, self.users_default)


class Redaction(ContentModel):
    event_type: ClassVar[str] = "m.room.redaction"

    reason: str | None = None


class Topic(ContentModel):
    event_type: ClassVar[str] = "m.room.topic"

    topic: str


# === Account data and ephemeral ===


class _MappingContent:
    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(  # type: ignore[attr-defined]
            mode="json", by_alias=True, exclude_none=True
        )

    def __getitem__(self, key: str) -> Any:
        return self.root[key]  # type: ignore[attr-defined]

    def __len__(self) -> int:
        return len(self.root)  # type: ignore[attr-defined]


class Direct(_MappingContent, RootModel[dict[str, list[str]]]):
    """Direct-chat rooms per user: ``{user_id: [room_id, ...]}``."""

    event_type: ClassVar[str] = "m.direct"


class Presence(ContentModel):
    event_type: ClassVar[str] = "m.presence"

    presence: PresenceState
    user_id: str | None = None
    avatar_url: str | None = None
    displayname: str | None = None
    last_active_ago: int | None = None
    currently_active: bool = False


class ReceiptTimestamp(BaseModel):
    ts: int | None = None


class ReceiptData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    read: dict[str, ReceiptTimestamp] = Field(default_factory=dict, alias="m.read")


class Receipt(_MappingContent, RootModel[dict[str, ReceiptData]]):
    """Read receipts per event: ``{event_id: {"m.read": {user_id: {"ts": ...}}}}``."""

    event_type: ClassVar[str] = "m.receipt"


class TagInfo(BaseModel):
    # Servers send numbers or strings here
    order: Any = None


class Tag(ContentModel):
    event_type: ClassVar[str] = "m.tag"

    tags: dict[str, TagInfo] = Field(default_factory=dict)


class Typing(ContentModel):
    event_type: ClassVar[str] = "m.typing"

    user_ids: list[str] = Field(default_factory=list)


# === VoIP ===


class SessionDescription(BaseModel):
    type: str
    sdp: str


class Candidate(BaseModel):
    sdpMid: str
    sdpMLineIndex: int
    candidate: str


class CallInvite(ContentModel):
    event_type: ClassVar[str] = "m.call.invite"

    call_id: str
    offer: SessionDescription
    version: int
    lifetime: int


class CallCandidates(ContentModel):
    event_type: ClassVar[str] = "m.call.candidates"

    call_id: str
    candidates: list[Candidate]
    version: int


class CallAnswer(ContentModel):
    event_type: ClassVar[str] = "m.call.answer"

    call_id: str
    answer: SessionDescription
    version: int


class CallHangup(ContentModel):
    event_type: ClassVar[str] = "m.call.hangup"

    call_id: str
    version: int


@dataclass(frozen=True, slots=True)
class UnknownContent:
    """
    Content the decoder could not type.

    Attributes:
        event_type: The event type the content arrived under
        raw: The payload exactly as received
        error: Validation message when the type is known but the payload
            did not match; None for unknown event types
    """

    event_type: str
    raw: Any
    error: str | None = None

    def to_dict(self) -> Any:
        return self.raw


MESSAGE_EVENT_TYPE = "m.room.message"

_MODELS: tuple[type[Any], ...] = (
    Aliases,
    Avatar,
    CanonicalAlias,
    Create,
    GuestAccess,
    HistoryVisibility,
    JoinRules,
    Member,
    Name,
    PowerLevels,
    Redaction,
    Topic,
    Direct,
    Presence,
    Receipt,
    Tag,
    Typing,
    CallInvite,
    CallCandidates,
    CallAnswer,
    CallHangup,
)

Content = Union[
    Aliases,
    Avatar,
    CanonicalAlias,
    Create,
    GuestAccess,
    HistoryVisibility,
    JoinRules,
    Member,
    Name,
    PowerLevels,
    Redaction,
    Topic,
    Message,
    Direct,
    Presence,
    Receipt,
    Tag,
    Typing,
    CallInvite,
    CallCandidates,
    CallAnswer,
    CallHangup,
    UnknownContent,
]

CONTENT_TYPES: MappingProxyType[str, TypeAdapter[Any]] = MappingProxyType(
    {
        **{model.event_type: TypeAdapter(model) for model in _MODELS},
        MESSAGE_EVENT_TYPE: MESSAGE_ADAPTER,
    }
)


def decode_content(event_type: str, raw: Any, *, strict: bool = False) -> Content:
    """
    Decode event content according to its event type.

    Args:
        event_type: The ``type`` field of the enclosing event
        raw: The ``content`` JSON object
        strict: Raise instead of falling back when a known type does not
            validate

    Returns:
        A typed content model, or UnknownContent

    Raises:
        SerializationError: In strict mode, if known content does not validate
    """
    adapter = CONTENT_TYPES.get(event_type)
    if adapter is None:
        return UnknownContent(event_type, raw)

    try:
        return adapter.validate_python(raw)
    except ValidationError as e:
        if strict:
            raise SerializationError(f"Invalid {event_type} content: {e}") from e
        logger.debug("Falling back to unknown content for %s: %s", event_type, e)
        return UnknownContent(event_type, raw, error=str(e))


def encode_content(content: Any) -> Any:
    """Encode content back to wire JSON."""
    if isinstance(content, UnknownContent) or hasattr(content, "to_dict"):
        return content.to_dict()
    if isinstance(content, BaseModel):
        return content.model_dump(mode="json", by_alias=True, exclude_none=True)
    return content
