"""
Core types and protocol constants for the Matrix client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, GetCoreSchemaHandler
from pydantic_core import core_schema

# API path prefixes
CLIENT_API_PATH = "/_matrix/client/r0"
MEDIA_API_PATH = "/_matrix/media/r0"

# Query parameter names
ACCESS_TOKEN_QUERY_PARAM = "access_token"
USER_ID_QUERY_PARAM = "user_id"
SINCE_QUERY_PARAM = "since"
TIMEOUT_QUERY_PARAM = "timeout"
SET_PRESENCE_QUERY_PARAM = "set_presence"
FILTER_QUERY_PARAM = "filter"
FULL_STATE_QUERY_PARAM = "full_state"

# Default long-poll window for /sync, in milliseconds
DEFAULT_SYNC_TIMEOUT_MS = 30_000

# Which API family a request targets
ApiType = Literal["client", "media"]

API_PATHS: dict[str, str] = {
    "client": CLIENT_API_PATH,
    "media": MEDIA_API_PATH,
}

# HTTP methods used by the client-server API
Method = Literal["GET", "POST", "PUT", "DELETE"]

# Opaque sync cursor returned by the server as next_batch
SyncToken = str

# How an event was recognised by the decoder
EventShape = Literal["redacted", "full", "minimal"]


@dataclass(frozen=True, slots=True, order=True)
class Room:
    """
    A Matrix room identifier such as ``!abc:example.org``.

    Rooms compare, hash and sort by their id and serialize as a bare string,
    including when used as a mapping key or a pydantic model field.

    Attributes:
        id: The room id
    """

    id: str

    def __str__(self) -> str:
        return self.id

    @classmethod
    def _validate(cls, value: Any) -> Room:
        if isinstance(value, Room):
            return value
        if isinstance(value, str):
            return cls(value)
        raise ValueError(f"room id must be a string, got {type(value).__name__}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


class ContentModel(BaseModel):
    """Base for event content models."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_dict(self) -> dict[str, Any]:
        """Encode to wire JSON, omitting absent optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
