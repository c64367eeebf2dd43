"""Tests for the ready-made handlers."""

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest
from structlog.testing import capture_logs

from pollbot.core.api import API
from pollbot.core.event import Event
from pollbot.core.handler import Action
from pollbot.core.handlers import AuthHandler, done_handler, log_handler
from pollbot.core.state import State
from pollbot.models.update import Update
from pollbot.utils.async_helpers import UnauthorizedError, UpdateError


def event_for(update: Update) -> Event:
    return Event(MagicMock(spec=API), update)


class TestLogHandler:
    """Test the logging step."""

    async def test_logs_message_and_continues(
        self, make_message_update: Callable[..., Update]
    ) -> None:
        with capture_logs() as logs:
            action = await log_handler(event_for(make_message_update(42, "hello")), State(None))

        assert action == Action.next()
        assert logs[0]["event"] == "message_received"
        assert logs[0]["chat_id"] == 42
        assert logs[0]["sender"] == "alice"
        assert logs[0]["text"] == "hello"

    async def test_logs_callback_and_continues(self, make_update: Callable[..., Update]) -> None:
        update = make_update("callback_query", chat_id=3, data="vote:up")
        with capture_logs() as logs:
            action = await log_handler(event_for(update), State(None))

        assert action == Action.next()
        assert logs[0]["event"] == "callback_received"
        assert logs[0]["data"] == "vote:up"
        assert logs[0]["chat_id"] == 3

    async def test_callback_without_message_logs_zero_chat(
        self, make_update: Callable[..., Update]
    ) -> None:
        with capture_logs() as logs:
            await log_handler(event_for(make_update("callback_query", data="x")), State(None))

        assert logs[0]["chat_id"] == 0

    async def test_inline_query_rejected(self, make_update: Callable[..., Update]) -> None:
        with pytest.raises(UpdateError, match="Unknown message type"):
            await log_handler(event_for(make_update("inline_query", query="q")), State(None))


class TestDoneHandler:
    async def test_stops_chain(self, make_message_update: Callable[..., Update]) -> None:
        action = await done_handler(event_for(make_message_update(1, "x")), State(None))
        assert action == Action.done()


class TestAuthHandler:
    """Test the username allow-list."""

    async def test_allowed_user_continues(
        self, make_message_update: Callable[..., Update]
    ) -> None:
        auth = AuthHandler(["alice", "bob"])
        action = await auth(event_for(make_message_update(1, "x")), State(None))
        assert action == Action.next()

    async def test_leading_at_sign_ignored(
        self, make_message_update: Callable[..., Update]
    ) -> None:
        auth = AuthHandler(["@alice"])
        assert await auth(event_for(make_message_update(1, "x")), State(None)) == Action.next()

    async def test_unknown_user_rejected(self, make_message_update: Callable[..., Update]) -> None:
        auth = AuthHandler(["bob"])
        with pytest.raises(UnauthorizedError, match="Unauthorized user: mallory"):
            await auth(event_for(make_message_update(1, "x", username="mallory")), State(None))

    async def test_missing_username_rejected(
        self, make_message_update: Callable[..., Update]
    ) -> None:
        update = make_message_update(
            1, "x", **{"from": {"id": 1, "is_bot": False, "first_name": "anon"}}
        )
        with pytest.raises(UnauthorizedError, match="No username"):
            await AuthHandler(["alice"])(event_for(update), State(None))

    async def test_checks_callback_sender(self, make_update: Callable[..., Update]) -> None:
        """Test button presses are authorized by the presser."""
        auth = AuthHandler(["alice"])
        update = make_update("callback_query", chat_id=3, data="x")
        assert await auth(event_for(update), State(None)) == Action.next()
