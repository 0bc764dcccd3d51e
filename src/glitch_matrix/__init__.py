"""
glitch-matrix: a Python client for the Matrix client-server protocol.

This package provides both synchronous and asynchronous APIs for logging in,
long-polling /sync, and acting on rooms.

Example usage:
    >>> from glitch_matrix import MatrixClient
    >>>
    >>> with MatrixClient.login("https://matrix.example.org", "bot", "pw") as mx:
    ...     for reply in mx.sync_stream():
    ...         for room, event in reply.iter_events():
    ...             print(room, event.event_type)
"""

from importlib.metadata import PackageNotFoundError, version

from glitch_matrix._errors import (
    HttpStatusError,
    InvalidAddressError,
    MatrixError,
    SerializationError,
    ServerError,
    TransportError,
)
from glitch_matrix._request import BuiltRequest, MatrixRequest
from glitch_matrix._types import (
    CLIENT_API_PATH,
    MEDIA_API_PATH,
    ApiType,
    EventShape,
    Room,
    SyncToken,
)
from glitch_matrix.amatrix_client import AsyncMatrixClient, AsyncRoomClient
from glitch_matrix.async_sync_stream import AsyncSyncStream
from glitch_matrix.content import (
    CONTENT_TYPES,
    Content,
    PowerLevels,
    UnknownContent,
    decode_content,
    encode_content,
)
from glitch_matrix.events import (
    Event,
    UnsignedData,
    decode_event,
    decode_events,
    encode_event,
)
from glitch_matrix.matrix_client import MatrixClient, RoomClient
from glitch_matrix.messages import (
    AudioMessage,
    EmoteMessage,
    FileMessage,
    ImageMessage,
    LocationMessage,
    Message,
    NoticeMessage,
    TextMessage,
    VideoMessage,
    decode_message,
)
from glitch_matrix.replies import (
    InvitedRoom,
    JoinedRoom,
    LeftRoom,
    LoginReply,
    MessagesReply,
    RoomAliasReply,
    RoomCreationOptions,
    SyncReply,
    Timeline,
)
from glitch_matrix.session import Session, TransactionIdGenerator
from glitch_matrix.sync_stream import SyncStream

__all__ = [
    # Types
    "ApiType",
    "EventShape",
    "Room",
    "SyncToken",
    "CLIENT_API_PATH",
    "MEDIA_API_PATH",
    # Errors
    "MatrixError",
    "TransportError",
    "SerializationError",
    "InvalidAddressError",
    "HttpStatusError",
    "ServerError",
    # Requests
    "MatrixRequest",
    "BuiltRequest",
    # Content and events
    "CONTENT_TYPES",
    "Content",
    "PowerLevels",
    "UnknownContent",
    "decode_content",
    "encode_content",
    "Event",
    "UnsignedData",
    "decode_event",
    "decode_events",
    "encode_event",
    # Messages
    "Message",
    "TextMessage",
    "NoticeMessage",
    "EmoteMessage",
    "ImageMessage",
    "FileMessage",
    "AudioMessage",
    "VideoMessage",
    "LocationMessage",
    "decode_message",
    # Replies
    "LoginReply",
    "MessagesReply",
    "RoomAliasReply",
    "RoomCreationOptions",
    "SyncReply",
    "JoinedRoom",
    "InvitedRoom",
    "LeftRoom",
    "Timeline",
    # Sessions and clients
    "Session",
    "TransactionIdGenerator",
    "SyncStream",
    "AsyncSyncStream",
    "MatrixClient",
    "RoomClient",
    "AsyncMatrixClient",
    "AsyncRoomClient",
]

# Use importlib.metadata for version (works with installed package)
# Fall back to hard-coded version for editable installs
try:
    __version__ = version("glitch-matrix")
except PackageNotFoundError:
    __version__ = "0.1.0"
