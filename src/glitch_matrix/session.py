"""
Session credentials and transaction ids.
"""

from __future__ import annotations

import itertools
import secrets
import threading
from dataclasses import dataclass, field


class TransactionIdGenerator:
    """
    Thread-safe source of transaction ids.

    Ids are a random per-generator prefix plus a strictly increasing counter,
    so they never repeat within one generator, and two generators sharing an
    access token (e.g. after a restart) do not collide either.
    """

    def __init__(self, prefix: str | None = None) -> None:
        self._prefix = prefix if prefix is not None else secrets.token_hex(4)
        self._counter = itertools.count()
        self._lock = threading.Lock()

    @property
    def prefix(self) -> str:
        return self._prefix

    def next_id(self) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{self._prefix}.{n}"

    __call__ = next_id


@dataclass
class Session:
    """
    Credentials for one logged-in user on one homeserver.

    Attributes:
        base_url: Homeserver URL, e.g. ``https://matrix.example.org``
        access_token: Access token; None before login
        user_id: Fully-qualified user id, e.g. ``@bot:example.org``
        device_id: Device id assigned at login
        is_appservice: Whether the token is an application-service token
            acting as ``user_id``
        txn_ids: Transaction id source for sends
    """

    base_url: str
    access_token: str | None = None
    user_id: str | None = None
    device_id: str | None = None
    is_appservice: bool = False
    txn_ids: TransactionIdGenerator = field(
        default_factory=TransactionIdGenerator, repr=False
    )

    def __repr__(self) -> str:
        # Omits the access token
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url!r}, "
            f"user_id={self.user_id!r}, "
            f"device_id={self.device_id!r}, "
            f"is_appservice={self.is_appservice!r})"
        )

    @property
    def is_logged_in(self) -> bool:
        return self.access_token is not None

    def next_txn_id(self) -> str:
        """Return a fresh transaction id for a send."""
        return self.txn_ids.next_id()
