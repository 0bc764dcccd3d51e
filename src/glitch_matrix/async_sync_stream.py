"""
AsyncSyncStream - async iterator over /sync long-poll results.

The async counterpart of SyncStream; no thread is blocked while the server
holds the long-poll open.
"""

from __future__ import annotations

from typing import Any

import httpx

from glitch_matrix._response import asend_request
from glitch_matrix.replies import SyncReply
from glitch_matrix.session import Session
from glitch_matrix.sync_stream import _SyncStreamBase


class AsyncSyncStream(_SyncStreamBase):
    """
    Asynchronous iterator of SyncReply snapshots.

    Only one poll may be outstanding: pulling again while a poll is awaiting
    raises RuntimeError. Cancelling a poll returns the stream to idle with
    the cursor unchanged.

    Example:
        >>> async for reply in client.sync_stream():
        ...     for room, event in reply.iter_events():
        ...         print(room, event.event_type)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        session: Session,
        **kwargs: Any,
    ) -> None:
        super().__init__(session, **kwargs)
        self._client = client

    async def poll(self) -> SyncReply:
        """Async version of SyncStream.poll."""
        self._ensure_idle()
        built = self.build_request().build(self._session)
        self._state = "awaiting"
        try:
            reply = await asend_request(
                self._client,
                built,
                decode=self._decode,
                timeout=self._http_timeout(),
            )
            return self._advance(reply)
        finally:
            self._state = "idle"

    def __aiter__(self) -> AsyncSyncStream:
        return self

    async def __anext__(self) -> SyncReply:
        return await self.poll()
