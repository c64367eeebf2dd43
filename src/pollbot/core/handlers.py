"""Ready-made handlers for common chain steps.

    router.add_route(Route.default(), log_handler)
    router.add_route(Route.message(), AuthHandler(["alice", "bob"]))
    router.add_route(Route.message(Matcher.exact("ping")), ping)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from pollbot.models.update import UpdateKind
from pollbot.utils.async_helpers import UnauthorizedError, UpdateError

from .event import Event
from .handler import Action
from .state import State

log = structlog.get_logger()


async def log_handler(event: Event, state: State[Any]) -> Action:
    """Log the sender and text of every message or callback, then continue."""
    update = event.update
    kind = update.kind

    if kind is UpdateKind.CALLBACK_QUERY:
        query = update.get_callback_query()
        log.info(
            "callback_received",
            chat_id=query.message.chat.id if query.message else 0,
            sender=query.from_user.first_name,
            data=query.data or "",
        )
        return Action.next()

    if kind is UpdateKind.INLINE_QUERY or kind is UpdateKind.UNRECOGNIZED:
        raise UpdateError(f"Unknown message type: {kind}")

    message = update.get_message()
    log.info(
        "message_received",
        chat_id=message.chat.id,
        sender=message.from_user.first_name if message.from_user else "",
        text=message.text or "",
    )
    return Action.next()


async def done_handler(event: Event, state: State[Any]) -> Action:
    """Stop the chain."""
    return Action.done()


class AuthHandler:
    """Stop the chain with ``UnauthorizedError`` unless the sender is allowed.

    Users are identified by username; senders without one are rejected.
    """

    def __init__(self, authorized_users: Iterable[str]) -> None:
        self.authorized_users = frozenset(u.lstrip("@") for u in authorized_users)

    async def __call__(self, event: Event, state: State[Any]) -> Action:
        username = event.update.from_user.username
        if username is None:
            raise UnauthorizedError("No username")
        if username not in self.authorized_users:
            raise UnauthorizedError(f"Unauthorized user: {username}")
        return Action.next()

    def __repr__(self) -> str:
        return f"AuthHandler({sorted(self.authorized_users)})"
