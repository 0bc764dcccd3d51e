"""
Request factories for every client-server API call the library makes.

Each function returns a MatrixRequest and performs no I/O, so the sync and
async clients share exactly the same wire behaviour.
"""

from __future__ import annotations

from typing import Any

from glitch_matrix._request import MatrixRequest
from glitch_matrix._types import Room
from glitch_matrix._util import join_path
from glitch_matrix.replies import RoomCreationOptions

PASSWORD_LOGIN_TYPE = "m.login.password"
APPSERVICE_LOGIN_TYPE = "m.login.application_service"
READ_RECEIPT_TYPE = "m.read"


def _without_none(**fields: Any) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


# === Session ===


def login(
    user: str,
    password: str,
    *,
    device_id: str | None = None,
    initial_device_display_name: str | None = None,
) -> MatrixRequest:
    body = _without_none(
        type=PASSWORD_LOGIN_TYPE,
        user=user,
        password=password,
        device_id=device_id,
        initial_device_display_name=initial_device_display_name,
    )
    return MatrixRequest("POST", "/login", body=body)


def logout() -> MatrixRequest:
    return MatrixRequest("POST", "/logout")


def register_appservice_user(user: str) -> MatrixRequest:
    body = {"type": APPSERVICE_LOGIN_TYPE, "user": user}
    return MatrixRequest("POST", "/register", body=body)


def whoami() -> MatrixRequest:
    return MatrixRequest("GET", "/account/whoami")


def sync(params: dict[str, Any]) -> MatrixRequest:
    return MatrixRequest("GET", "/sync", params=params)


# === Client-level ===


def join(room_id_or_alias: str | Room) -> MatrixRequest:
    return MatrixRequest("POST", join_path("join", room_id_or_alias))


def create_room(options: RoomCreationOptions) -> MatrixRequest:
    return MatrixRequest("POST", "/createRoom", body=options)


def resolve_alias(alias: str) -> MatrixRequest:
    return MatrixRequest("GET", join_path("directory", "room", alias))


def upload(data: bytes, content_type: str) -> MatrixRequest:
    return MatrixRequest(
        "POST",
        "/upload",
        api="media",
        content=data,
        content_type=content_type,
    )


# === Room-level ===


def send_event(room: Room, event_type: str, txn_id: str, content: Any) -> MatrixRequest:
    return MatrixRequest(
        "PUT",
        join_path("rooms", room, "send", event_type, txn_id),
        body=content,
    )


def read_receipt(room: Room, event_id: str) -> MatrixRequest:
    return MatrixRequest(
        "POST", join_path("rooms", room, "receipt", READ_RECEIPT_TYPE, event_id)
    )


def get_state(room: Room, event_type: str, state_key: str = "") -> MatrixRequest:
    return MatrixRequest(
        "GET", join_path("rooms", room, "state", event_type, state_key)
    )


def set_state(
    room: Room, event_type: str, content: Any, state_key: str = ""
) -> MatrixRequest:
    return MatrixRequest(
        "PUT",
        join_path("rooms", room, "state", event_type, state_key),
        body=content,
    )


def messages(
    room: Room,
    from_token: str,
    *,
    to: str | None = None,
    backward: bool = True,
    limit: int | None = None,
) -> MatrixRequest:
    params = _without_none(
        **{"from": from_token},
        to=to,
        dir="b" if backward else "f",
        limit=limit,
    )
    return MatrixRequest("GET", join_path("rooms", room, "messages"), params=params)


def redact(
    room: Room, event_id: str, txn_id: str, reason: str | None = None
) -> MatrixRequest:
    return MatrixRequest(
        "PUT",
        join_path("rooms", room, "redact", event_id, txn_id),
        body=_without_none(reason=reason),
    )


def typing(
    room: Room, user_id: str, typing: bool, timeout: int | None = None
) -> MatrixRequest:
    return MatrixRequest(
        "PUT",
        join_path("rooms", room, "typing", user_id),
        body=_without_none(typing=typing, timeout=timeout if typing else None),
    )


def joined_members(room: Room) -> MatrixRequest:
    return MatrixRequest("GET", join_path("rooms", room, "joined_members"))


def membership(
    room: Room,
    action: str,
    *,
    user_id: str | None = None,
    reason: str | None = None,
) -> MatrixRequest:
    """
    Build one of the room membership calls.

    Args:
        room: Target room
        action: One of join, leave, forget, invite, kick, ban, unban
        user_id: Target user for invite/kick/ban/unban
        reason: Optional reason for kick/ban
    """
    return MatrixRequest(
        "POST",
        join_path("rooms", room, action),
        body=_without_none(user_id=user_id, reason=reason),
    )
