#!/usr/bin/env python3
"""
Echo bot.

Logs in, skips the backlog delivered by the initial sync, then repeats
every text message written by someone else back into the room as a notice
and marks it as read.

Usage:
    python examples/echo.py https://matrix.example.org echobot [password]
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys

from glitch_matrix import MatrixClient, MatrixError, TextMessage

logger = logging.getLogger("echo")


def main() -> int:
    parser = argparse.ArgumentParser(description="Echo text messages as notices")
    parser.add_argument("server", help="homeserver URL")
    parser.add_argument("username", help="user to log in as")
    parser.add_argument("password", nargs="?", help="password (prompted if omitted)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    password = args.password or getpass.getpass(f"Password for {args.username}: ")

    try:
        mx = MatrixClient.login(args.server, args.username, password)
    except MatrixError as e:
        logger.error("Login failed: %s", e)
        return 1

    with mx:
        stream = mx.sync_stream()
        skip = stream.is_initial
        try:
            for reply in stream:
                if skip:
                    skip = False
                    continue
                for room, event in reply.iter_events():
                    if event.sender == mx.user_id:
                        continue
                    if not isinstance(event.content, TextMessage):
                        continue
                    logger.info("%s <%s> %s", room, event.sender, event.content.body)
                    handle = mx.room(room)
                    handle.send_notice(event.content.body)
                    if event.event_id is not None:
                        handle.read_receipt(event.event_id)
        except KeyboardInterrupt:
            pass
        except MatrixError as e:
            logger.error("Stopping: %s", e)
            return 1
        finally:
            mx.logout()
    return 0


if __name__ == "__main__":
    sys.exit(main())
