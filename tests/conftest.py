"""
Pytest configuration and shared fixtures for glitch-matrix tests.

All tests run against mocked httpx clients; no homeserver is needed.
"""

from __future__ import annotations

from typing import Any

import pytest

BASE_URL = "https://matrix.example.org"
ROOM_ID = "!room:example.org"
USER_ID = "@bot:example.org"


def message_event(
    body: str,
    *,
    event_id: str = "$ev1",
    sender: str = "@alice:example.org",
    msgtype: str = "m.text",
) -> dict[str, Any]:
    """A full m.room.message event as it appears in a sync timeline."""
    return {
        "type": "m.room.message",
        "event_id": event_id,
        "sender": sender,
        "origin_server_ts": 1_700_000_000_000,
        "content": {"msgtype": msgtype, "body": body},
        "unsigned": {"age": 42},
    }


def sync_body(
    next_batch: str,
    *,
    timeline: list[dict[str, Any]] | None = None,
    room_id: str = ROOM_ID,
) -> dict[str, Any]:
    """A minimal /sync response with one joined room."""
    return {
        "next_batch": next_batch,
        "rooms": {
            "join": {
                room_id: {
                    "timeline": {
                        "events": timeline or [],
                        "prev_batch": "p0",
                        "limited": False,
                    },
                    "state": {"events": []},
                    "ephemeral": {"events": []},
                    "account_data": {"events": []},
                    "unread_notifications": {
                        "highlight_count": 0,
                        "notification_count": 1,
                    },
                }
            },
            "invite": {},
            "leave": {},
        },
        "presence": {"events": []},
        "account_data": {"events": []},
    }


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
