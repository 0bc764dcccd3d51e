"""
AsyncMatrixClient - asynchronous client bound to one credentialed session.

This provides login, the /sync stream, and room operations through
AsyncRoomClient handles.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import anyio
import httpx

from glitch_matrix import _endpoints
from glitch_matrix._errors import MatrixError, ServerError
from glitch_matrix._request import MatrixRequest
from glitch_matrix._response import asend_request
from glitch_matrix._types import DEFAULT_SYNC_TIMEOUT_MS, Room, SyncToken
from glitch_matrix.async_sync_stream import AsyncSyncStream
from glitch_matrix.content import MESSAGE_EVENT_TYPE, PowerLevels, decode_content
from glitch_matrix.messages import Message, NoticeMessage, TextMessage, html_notice
from glitch_matrix.replies import (
    JoinedMembersReply,
    JoinReply,
    LoginReply,
    MessagesReply,
    RoomAliasReply,
    RoomCreationOptions,
    SendReply,
    SetStateReply,
    UploadReply,
    WhoamiReply,
)
from glitch_matrix.session import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0

# Seconds a best-effort logout may take before teardown moves on
LOGOUT_TIMEOUT = 5.0


class AsyncMatrixClient:
    """
    An asynchronous Matrix client.

    Owns a Session and an httpx.AsyncClient. A client passed in by the caller
    is never closed by this class.

    Example:
        >>> mx = await AsyncMatrixClient.login(url, "bot", "pw")
        >>> async with mx:
        ...     room = await mx.join("#lobby:example.org")
        ...     await mx.room(room).send_text("hello")
    """

    def __init__(
        self,
        session: Session,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        strict: bool = False,
    ) -> None:
        """
        Create a client for an existing session.

        No network IO is performed by the constructor.

        Args:
            session: Credentials to act with
            client: Optional httpx.AsyncClient to use
            timeout: Default request timeout (ignored if ``client`` is given)
            strict: Raise on known event content that does not validate
        """
        self._session = session
        self._strict = strict

        # Client management
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or DEFAULT_TIMEOUT
        )

    @property
    def session(self) -> Session:
        return self._session

    @property
    def user_id(self) -> str | None:
        return self._session.user_id

    @property
    def strict(self) -> bool:
        return self._strict

    async def aclose(self, *, logout: bool = False) -> None:
        """
        Close the client and release resources.

        Args:
            logout: Invalidate the access token first (best-effort)
        """
        try:
            if logout:
                await self.logout()
        finally:
            if self._own_client:
                # Still runs when the logout was cancelled
                with anyio.CancelScope(shield=True):
                    await self._client.aclose()

    async def __aenter__(self) -> AsyncMatrixClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    # === Factory methods ===

    @classmethod
    async def login(
        cls,
        base_url: str,
        username: str,
        password: str,
        *,
        device_id: str | None = None,
        initial_device_display_name: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        strict: bool = False,
    ) -> AsyncMatrixClient:
        """
        Log in with a username and password.

        Args:
            base_url: Homeserver URL
            username: Localpart or full user id
            password: Account password
            device_id: Reuse an existing device id
            initial_device_display_name: Display name for a new device
            client: Optional httpx.AsyncClient
            timeout: Request timeout
            strict: Raise on content that does not validate

        Returns:
            A client holding the new session

        Raises:
            ServerError: If the homeserver rejects the credentials
        """
        mx = cls(Session(base_url), client=client, timeout=timeout, strict=strict)
        try:
            reply: LoginReply = await mx.request(
                _endpoints.login(
                    username,
                    password,
                    device_id=device_id,
                    initial_device_display_name=initial_device_display_name,
                ),
                decode=LoginReply.model_validate,
            )
        except Exception:
            await mx.aclose()
            raise
        mx._session.access_token = reply.access_token
        mx._session.user_id = reply.user_id
        mx._session.device_id = reply.device_id
        logger.info("Logged in as %s", reply.user_id)
        return mx

    @classmethod
    async def from_token(
        cls,
        base_url: str,
        access_token: str,
        user_id: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        strict: bool = False,
    ) -> AsyncMatrixClient:
        """
        Reuse an existing access token.

        If ``user_id`` is not given it is looked up with whoami.
        """
        session = Session(base_url, access_token=access_token, user_id=user_id)
        mx = cls(session, client=client, timeout=timeout, strict=strict)
        if user_id is None:
            try:
                session.user_id = await mx.whoami()
            except Exception:
                await mx.aclose()
                raise
        return mx

    @classmethod
    def appservice(
        cls,
        base_url: str,
        as_token: str,
        user_id: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | httpx.Timeout | None = None,
        strict: bool = False,
    ) -> AsyncMatrixClient:
        """Act as ``user_id`` using an application-service token."""
        session = Session(
            base_url,
            access_token=as_token,
            user_id=user_id,
            is_appservice=True,
        )
        return cls(session, client=client, timeout=timeout, strict=strict)

    def act_as(self, user_id: str) -> None:
        """Switch the user an application service acts as."""
        if not self._session.is_appservice:
            raise ValueError("act_as() is only available to application services")
        self._session.user_id = user_id

    async def register_appservice_user(self, user: str) -> None:
        """Register a user in the application service's namespace."""
        if not self._session.is_appservice:
            raise ValueError(
                "register_appservice_user() is only available to application services"
            )
        await self.discarding_request(_endpoints.register_appservice_user(user))

    # === Generic requests ===

    async def request(
        self,
        req: MatrixRequest,
        decode: Callable[[Any], T] | None = None,
        *,
        timeout: float | None = None,
    ) -> T | Any:
        """
        Send a request and decode the JSON reply.

        Args:
            req: The request to send
            decode: Decoder for the reply (default: return parsed JSON)
            timeout: Per-request timeout in seconds (default: the client's)

        Raises:
            MatrixError: On any failure
        """
        return await asend_request(
            self._client, req.build(self._session), decode=decode, timeout=timeout
        )

    async def discarding_request(
        self, req: MatrixRequest, *, timeout: float | None = None
    ) -> None:
        """Send a request, ignoring the body of a successful reply."""
        await asend_request(
            self._client, req.build(self._session), discard=True, timeout=timeout
        )

    def sync_stream(
        self,
        *,
        timeout: int = DEFAULT_SYNC_TIMEOUT_MS,
        set_presence: bool = True,
        since: SyncToken | None = None,
        filter: str | None = None,
        full_state: bool = False,
    ) -> AsyncSyncStream:
        """
        Create a /sync stream.

        Args:
            timeout: Long-poll window in milliseconds
            set_presence: Mark the user online while polling
            since: Resume from a saved cursor
            filter: Filter id or inline JSON filter
            full_state: Request full state on the first poll

        Returns:
            An AsyncSyncStream bound to this client
        """
        return AsyncSyncStream(
            self._client,
            self._session,
            timeout=timeout,
            set_presence=set_presence,
            since=since,
            filter=filter,
            full_state=full_state,
            strict=self._strict,
        )

    # === Account and rooms ===

    async def whoami(self) -> str:
        """Return the user id the access token belongs to."""
        reply: WhoamiReply = await self.request(
            _endpoints.whoami(), decode=WhoamiReply.model_validate
        )
        return reply.user_id

    async def logout(self) -> bool:
        """
        Invalidate the access token.

        Failures are logged, never raised. The session is considered logged
        out either way.

        Returns:
            True if the server confirmed the logout
        """
        if not self._session.is_logged_in:
            return False
        try:
            await self.discarding_request(_endpoints.logout(), timeout=LOGOUT_TIMEOUT)
        except (MatrixError, RuntimeError) as e:
            logger.warning("Logout failed: %s", e)
            return False
        finally:
            self._session.access_token = None
        return True

    async def join(self, room_id_or_alias: str | Room) -> Room:
        """Join a room by id or alias and return its id."""
        reply: JoinReply = await self.request(
            _endpoints.join(room_id_or_alias), decode=JoinReply.model_validate
        )
        return reply.room

    async def create_room(
        self, options: RoomCreationOptions | None = None
    ) -> Room:
        """Create a room and return its id."""
        reply: JoinReply = await self.request(
            _endpoints.create_room(options or RoomCreationOptions()),
            decode=JoinReply.model_validate,
        )
        return reply.room

    async def resolve_alias(self, alias: str) -> RoomAliasReply:
        """Look up the room id (and servers) for an alias."""
        return await self.request(
            _endpoints.resolve_alias(alias), decode=RoomAliasReply.model_validate
        )

    async def upload(self, data: bytes, content_type: str) -> str:
        """
        Upload media.

        Returns:
            The ``mxc://`` content URI
        """
        reply: UploadReply = await self.request(
            _endpoints.upload(data, content_type), decode=UploadReply.model_validate
        )
        return reply.content_uri

    def room(self, room: Room | str) -> AsyncRoomClient:
        """Return a handle for operations on one room."""
        return AsyncRoomClient(self, room if isinstance(room, Room) else Room(room))


class AsyncRoomClient:
    """
    A room bound to an AsyncMatrixClient.

    This is a lightweight handle; creating it performs no network IO.
    """

    def __init__(self, client: AsyncMatrixClient, room: Room) -> None:
        self._client = client
        self._room = room

    @property
    def room(self) -> Room:
        return self._room

    @property
    def client(self) -> AsyncMatrixClient:
        return self._client

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._room.id!r})"

    def _user_id(self) -> str:
        user_id = self._client.user_id
        if user_id is None:
            raise RuntimeError("Session has no user id")
        return user_id

    # === Sending ===

    async def send_event(self, event_type: str, content: Any) -> str:
        """
        Send a message event with a fresh transaction id.

        Returns:
            The new event id
        """
        txn_id = self._client.session.next_txn_id()
        reply: SendReply = await self._client.request(
            _endpoints.send_event(self._room, event_type, txn_id, content),
            decode=SendReply.model_validate,
        )
        return reply.event_id

    async def send(self, message: Message) -> str:
        """Send an ``m.room.message`` and return its event id."""
        return await self.send_event(MESSAGE_EVENT_TYPE, message)

    async def send_text(self, body: str) -> str:
        return await self.send(TextMessage(body=body))

    async def send_notice(self, body: str) -> str:
        return await self.send(NoticeMessage(body=body))

    async def send_html(self, body: str, html: str) -> str:
        """Send a notice with an HTML rendition; ``body`` is the plain fallback."""
        return await self.send(html_notice(body, html))

    async def read_receipt(self, event_id: str) -> None:
        await self._client.discarding_request(
            _endpoints.read_receipt(self._room, event_id)
        )

    async def redact(self, event_id: str, reason: str | None = None) -> str:
        """Redact an event and return the id of the redaction event."""
        txn_id = self._client.session.next_txn_id()
        reply: SendReply = await self._client.request(
            _endpoints.redact(self._room, event_id, txn_id, reason),
            decode=SendReply.model_validate,
        )
        return reply.event_id

    async def typing(self, typing: bool, timeout: int | None = None) -> None:
        """Set or clear the typing notification (``timeout`` in ms)."""
        await self._client.discarding_request(
            _endpoints.typing(self._room, self._user_id(), typing, timeout)
        )

    # === State ===

    async def get_state(
        self,
        event_type: str,
        state_key: str = "",
        decode: Callable[[Any], T] | None = None,
    ) -> T | Any:
        """
        Fetch the content of a state event.

        Args:
            event_type: State event type, e.g. ``m.room.topic``
            state_key: State key (empty for most room state)
            decode: Decoder for the content; by default the content table is
                used, yielding a typed model or UnknownContent

        Raises:
            ServerError: ``M_NOT_FOUND`` if the state is not set
        """
        strict = self._client.strict
        decoder = decode or (
            lambda data: decode_content(event_type, data, strict=strict)
        )
        return await self._client.request(
            _endpoints.get_state(self._room, event_type, state_key), decode=decoder
        )

    async def set_state(
        self, event_type: str, content: Any, state_key: str = ""
    ) -> str:
        """Set a state event and return its event id."""
        reply: SetStateReply = await self._client.request(
            _endpoints.set_state(self._room, event_type, content, state_key),
            decode=SetStateReply.model_validate,
        )
        return reply.event_id

    async def get_user_power_level(self, user_id: str) -> int:
        """
        Return a user's power level in this room.

        Users without an explicit entry get ``users_default``; a room without
        a power-levels event gives everyone level 0.
        """
        try:
            levels: PowerLevels = await self.get_state(
                PowerLevels.event_type, decode=PowerLevels.model_validate
            )
        except ServerError as e:
            if e.is_not_found:
                return 0
            raise
        return levels.user_level(user_id)

    # === History and members ===

    async def messages(
        self,
        from_token: str,
        *,
        to: str | None = None,
        backward: bool = True,
        limit: int | None = None,
    ) -> MessagesReply:
        """Fetch a page of room history starting at ``from_token``."""
        return await self._client.request(
            _endpoints.messages(
                self._room, from_token, to=to, backward=backward, limit=limit
            ),
            decode=MessagesReply.model_validate,
        )

    async def joined_members(self) -> JoinedMembersReply:
        return await self._client.request(
            _endpoints.joined_members(self._room),
            decode=JoinedMembersReply.model_validate,
        )

    # === Membership ===

    async def join(self) -> None:
        await self._client.discarding_request(
            _endpoints.membership(self._room, "join")
        )

    async def leave(self) -> None:
        await self._client.discarding_request(
            _endpoints.membership(self._room, "leave")
        )

    async def forget(self) -> None:
        """Forget the room; only possible after leaving it."""
        await self._client.discarding_request(
            _endpoints.membership(self._room, "forget")
        )

    async def invite(self, user_id: str) -> None:
        await self._client.discarding_request(
            _endpoints.membership(self._room, "invite", user_id=user_id)
        )

    async def kick(self, user_id: str, reason: str | None = None) -> None:
        await self._client.discarding_request(
            _endpoints.membership(self._room, "kick", user_id=user_id, reason=reason)
        )

    async def ban(self, user_id: str, reason: str | None = None) -> None:
        await self._client.discarding_request(
            _endpoints.membership(self._room, "ban", user_id=user_id, reason=reason)
        )

    async def unban(self, user_id: str) -> None:
        await self._client.discarding_request(
            _endpoints.membership(self._room, "unban", user_id=user_id)
        )
