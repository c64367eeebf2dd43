"""Tests for the typed API client."""

from __future__ import annotations

from typing import Any

import pytest

from pollbot.core.api import API
from pollbot.models.message import (
    ChatAction,
    EditMessageTextRequest,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    Message,
    ParseMode,
    SendChatActionRequest,
    SendMessageRequest,
)
from pollbot.models.query import AnswerInlineQueryRequest
from pollbot.models.update import GetUpdatesRequest
from pollbot.utils.async_helpers import ApiError, TransportError


class StubTransport:
    """Answers every call with the next canned response."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    async def post(self, method: str, body: dict[str, Any]) -> Any:
        self.requests.append((method, body))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


def message_json(chat_id: int = 42, text: str = "hi") -> dict[str, Any]:
    return {
        "message_id": 9,
        "date": 0,
        "chat": {"id": chat_id, "type": "private"},
        "from": {"id": 1, "is_bot": True, "first_name": "bot"},
        "text": text,
    }


class TestRequestSerialization:
    """Test request bodies handed to the transport."""

    async def test_none_fields_omitted(self) -> None:
        """Test unset optional fields never reach the wire."""
        transport = StubTransport({"ok": True, "result": message_json()})
        await API(transport).send_message(SendMessageRequest(chat_id=42, text="hi"))

        assert transport.requests == [("sendMessage", {"chat_id": 42, "text": "hi"})]

    async def test_enums_and_nested_models(self) -> None:
        """Test enums serialize to their values and keyboards to nested lists."""
        transport = StubTransport({"ok": True, "result": message_json()})
        keyboard = InlineKeyboardMarkup(
            inline_keyboard=[[InlineKeyboardButton(text="Yes", callback_data="vote:yes")]]
        )
        await API(transport).send_message(
            SendMessageRequest(
                chat_id=42,
                text="*vote*",
                parse_mode=ParseMode.MARKDOWN_V2,
                reply_markup=keyboard,
            )
        )

        _, body = transport.requests[0]
        assert body["parse_mode"] == "MarkdownV2"
        assert body["reply_markup"] == {
            "inline_keyboard": [[{"text": "Yes", "callback_data": "vote:yes"}]]
        }

    async def test_get_updates_body(self) -> None:
        transport = StubTransport({"ok": True, "result": []})
        await API(transport).get_updates(GetUpdatesRequest(offset=5, limit=10, timeout=30))

        assert transport.requests == [("getUpdates", {"offset": 5, "limit": 10, "timeout": 30})]

    async def test_no_request_sends_empty_body(self) -> None:
        transport = StubTransport({"ok": True, "result": {"id": 1, "is_bot": True}})
        await API(transport).get_me()

        assert transport.requests == [("getMe", {})]

    async def test_inline_answer_article(self) -> None:
        """Test the single-article helper builds the expected result list."""
        transport = StubTransport({"ok": True, "result": True})
        request = AnswerInlineQueryRequest(inline_query_id="iq-1").with_article_text(
            "Weather", "Sunny"
        )
        assert await API(transport).answer_inline_query(request) is True

        _, body = transport.requests[0]
        assert body["results"] == [
            {
                "type": "article",
                "id": "0",
                "title": "Weather",
                "input_message_content": {"message_text": "Sunny"},
            }
        ]


class TestResponseHandling:
    """Test envelope validation."""

    async def test_result_parsed_into_model(self) -> None:
        transport = StubTransport({"ok": True, "result": message_json(text="pong")})
        message = await API(transport).send_message(SendMessageRequest(chat_id=42, text="x"))

        assert isinstance(message, Message)
        assert message.text == "pong"
        assert message.from_user is not None
        assert message.from_user.is_bot

    async def test_updates_parsed(self) -> None:
        transport = StubTransport(
            {"ok": True, "result": [{"update_id": 3, "message": message_json(text="ping")}]}
        )
        [update] = await API(transport).get_updates(GetUpdatesRequest())

        assert update.update_id == 3
        assert update.text == "ping"

    async def test_ok_false_raises_api_error(self) -> None:
        """Test the service's description is surfaced."""
        transport = StubTransport(
            {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"}
        )
        with pytest.raises(ApiError, match="chat not found") as exc_info:
            await API(transport).send_message(SendMessageRequest(chat_id=1, text="x"))

        assert exc_info.value.error_code == 400

    async def test_ok_false_without_description(self) -> None:
        transport = StubTransport({"ok": False})
        with pytest.raises(ApiError, match="No error description"):
            await API(transport).get_me()

    async def test_missing_result_raises(self) -> None:
        transport = StubTransport({"ok": True})
        with pytest.raises(ApiError, match="getMe returned no result"):
            await API(transport).get_me()

    async def test_malformed_envelope_raises(self) -> None:
        transport = StubTransport(["not", "an", "envelope"])
        with pytest.raises(ApiError, match="malformed response envelope"):
            await API(transport).get_me()

    async def test_unexpected_result_shape_raises(self) -> None:
        transport = StubTransport({"ok": True, "result": "yes"})
        with pytest.raises(ApiError, match="unexpected result for sendMessage"):
            await API(transport).send_message(SendMessageRequest(chat_id=1, text="x"))

    async def test_edit_may_return_true(self) -> None:
        """Test edits of inline messages answer with a bare true."""
        transport = StubTransport({"ok": True, "result": True})
        result = await API(transport).edit_message_text(
            EditMessageTextRequest(inline_message_id="im-1", text="x")
        )
        assert result is True

    async def test_transport_errors_propagate(self) -> None:
        transport = StubTransport(TransportError("sendChatAction failed"))
        with pytest.raises(TransportError):
            await API(transport).send_chat_action(
                SendChatActionRequest(chat_id=1, action=ChatAction.TYPING)
            )

    async def test_close_closes_transport(self) -> None:
        transport = StubTransport()
        await API(transport).close()
        assert transport.closed
