"""
SyncStream - iterator over /sync long-poll results.

Each step issues one GET /sync, waits for the server to return (or for the
long-poll window to expire), decodes the snapshot and advances the cursor.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx

from glitch_matrix import _endpoints
from glitch_matrix._request import MatrixRequest
from glitch_matrix._response import send_request
from glitch_matrix._types import (
    DEFAULT_SYNC_TIMEOUT_MS,
    FILTER_QUERY_PARAM,
    FULL_STATE_QUERY_PARAM,
    SET_PRESENCE_QUERY_PARAM,
    SINCE_QUERY_PARAM,
    TIMEOUT_QUERY_PARAM,
    SyncToken,
)
from glitch_matrix.replies import SyncReply
from glitch_matrix.session import Session

logger = logging.getLogger(__name__)

# Extra seconds the HTTP client waits beyond the server-side long-poll window
LONG_POLL_GRACE_SECONDS = 10.0

StreamState = Literal["idle", "awaiting"]


class _SyncStreamBase:
    """State and request building shared by SyncStream and AsyncSyncStream."""

    def __init__(
        self,
        session: Session,
        *,
        timeout: int = DEFAULT_SYNC_TIMEOUT_MS,
        set_presence: bool = True,
        since: SyncToken | None = None,
        filter: str | None = None,
        full_state: bool = False,
        strict: bool = False,
    ) -> None:
        self._session = session
        self._timeout = timeout
        self._set_presence = set_presence
        self._since = since
        self._filter = filter
        self._full_state = full_state
        self._strict = strict
        self._state: StreamState = "idle"

    @property
    def state(self) -> StreamState:
        """``"awaiting"`` while a poll is outstanding, otherwise ``"idle"``."""
        return self._state

    @property
    def since(self) -> SyncToken | None:
        """Cursor of the last successful poll (None before the first one)."""
        return self._since

    @since.setter
    def since(self, value: SyncToken | None) -> None:
        self._ensure_idle()
        self._since = value

    @property
    def is_initial(self) -> bool:
        """True if the next poll is the initial, full-state sync."""
        return self._since is None

    @property
    def timeout(self) -> int:
        """Long-poll window in milliseconds."""
        return self._timeout

    @timeout.setter
    def timeout(self, value: int) -> None:
        self._timeout = value

    @property
    def set_presence(self) -> bool:
        """Whether polling marks the user online (True) or offline (False)."""
        return self._set_presence

    @set_presence.setter
    def set_presence(self, value: bool) -> None:
        self._set_presence = value

    def build_request(self) -> MatrixRequest:
        """
        Build the next /sync request without sending it.

        ``since`` and ``timeout`` are only sent once a cursor exists; the
        initial sync returns immediately with the full state.
        """
        params: dict[str, Any] = {
            SET_PRESENCE_QUERY_PARAM: "online" if self._set_presence else "offline",
        }
        if self._since is not None:
            params[SINCE_QUERY_PARAM] = self._since
            params[TIMEOUT_QUERY_PARAM] = self._timeout
        if self._filter is not None:
            params[FILTER_QUERY_PARAM] = self._filter
        if self._full_state:
            params[FULL_STATE_QUERY_PARAM] = True
        return _endpoints.sync(params)

    def _http_timeout(self) -> float:
        return self._timeout / 1000 + LONG_POLL_GRACE_SECONDS

    def _decode(self, data: Any) -> SyncReply:
        return SyncReply.from_dict(data, strict=self._strict)

    def _ensure_idle(self) -> None:
        if self._state != "idle":
            raise RuntimeError("A /sync poll is already in flight on this stream")

    def _advance(self, reply: SyncReply) -> SyncReply:
        logger.debug("Sync cursor %s -> %s", self._since, reply.next_batch)
        self._since = reply.next_batch
        return reply


class SyncStream(_SyncStreamBase):
    """
    Synchronous iterator of SyncReply snapshots.

    The first item is the initial sync; every later item holds only what
    changed since the previous one. The cursor advances only after a reply
    has been decoded successfully. On error the exception propagates, the
    cursor is left unchanged, and iterating again retries the same poll.

    Example:
        >>> stream = client.sync_stream()
        >>> for reply in stream:
        ...     for room, event in reply.iter_events():
        ...         print(room, event.event_type)
    """

    def __init__(
        self,
        client: httpx.Client,
        session: Session,
        **kwargs: Any,
    ) -> None:
        super().__init__(session, **kwargs)
        self._client = client

    def poll(self) -> SyncReply:
        """
        Run one /sync round trip.

        Returns:
            The decoded snapshot

        Raises:
            MatrixError: Any pipeline error; the cursor is unchanged
            RuntimeError: If a poll is already in flight
        """
        self._ensure_idle()
        built = self.build_request().build(self._session)
        self._state = "awaiting"
        try:
            reply = send_request(
                self._client,
                built,
                decode=self._decode,
                timeout=self._http_timeout(),
            )
            return self._advance(reply)
        finally:
            self._state = "idle"

    def __iter__(self) -> SyncStream:
        return self

    def __next__(self) -> SyncReply:
        return self.poll()
