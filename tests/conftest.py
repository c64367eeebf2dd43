"""Shared test fixtures for pollbot."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from pollbot.adapters.fake import FakeServer
from pollbot.config.schema import ApiConfig, BotConfig
from pollbot.core.api import API
from pollbot.models.update import Update

# Syntactically valid, never issued
TEST_TOKEN = "123456789:AAFakeTokenForTestsOnly_0123456789abc"


@pytest.fixture
def test_token() -> str:
    """Return a bot token that passes format validation."""
    return TEST_TOKEN


@pytest.fixture
def bot_config() -> BotConfig:
    """Create a minimal bot configuration."""
    return BotConfig(api=ApiConfig(token=TEST_TOKEN))


@pytest.fixture
def fake_server() -> FakeServer:
    """Create an in-memory remote service."""
    return FakeServer()


@pytest.fixture
def fake_api(fake_server: FakeServer) -> API:
    """Create an API client talking to the fake server."""
    return API(fake_server)


def _user(user_id: int, username: str = "alice") -> dict[str, Any]:
    return {"id": user_id, "is_bot": False, "first_name": username, "username": username}


def _message(chat_id: int, text: str | None = None, **extra: Any) -> dict[str, Any]:
    message: dict[str, Any] = {
        "message_id": extra.pop("message_id", 1),
        "date": 0,
        "chat": {"id": chat_id, "type": "private"},
        "from": _user(chat_id, extra.pop("username", "alice")),
    }
    if text is not None:
        message["text"] = text
    message.update(extra)
    return message


@pytest.fixture
def make_message_update() -> Callable[..., Update]:
    """Factory for new-message updates: ``make_message_update(chat_id, text, update_id=1)``."""

    def factory(chat_id: int, text: str | None = None, update_id: int = 1, **extra: Any) -> Update:
        return Update.model_validate(
            {"update_id": update_id, "message": _message(chat_id, text, **extra)}
        )

    return factory


@pytest.fixture
def make_update() -> Callable[..., Update]:
    """Factory for updates of any kind: ``make_update("edited_message", chat_id=7, text="x")``.

    Supported kinds are the four message families, ``callback_query``
    (``data``, optional ``chat_id``) and ``inline_query`` (``user_id``,
    ``query``).
    """

    def factory(kind: str, update_id: int = 1, **fields: Any) -> Update:
        if kind in ("message", "edited_message", "channel_post", "edited_channel_post"):
            payload: dict[str, Any] = _message(
                fields.pop("chat_id", 42), fields.pop("text", None), **fields
            )
        elif kind == "callback_query":
            chat_id = fields.pop("chat_id", None)
            payload = {
                "id": "cb-1",
                "from": _user(chat_id or 7),
                "data": fields.pop("data", None),
            }
            if chat_id is not None:
                payload["message"] = _message(chat_id, message_id=fields.pop("message_id", 5))
        elif kind == "inline_query":
            payload = {
                "id": "iq-1",
                "from": _user(fields.pop("user_id", 7)),
                "query": fields.pop("query", ""),
                "offset": "",
            }
        else:
            raise ValueError(f"unsupported update kind: {kind}")
        return Update.model_validate({"update_id": update_id, kind: payload})

    return factory
