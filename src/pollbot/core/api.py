"""Typed client for the remote Bot API.

Each method serializes a request model, hands it to the configured
``Transport`` and validates the ``result`` of the response envelope into
the matching model. A response with ``ok: false`` raises ``ApiError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from pollbot.models.message import (
    DeleteMessageRequest,
    EditMessageReplyMarkupRequest,
    EditMessageTextRequest,
    File,
    GetFileRequest,
    Message,
    SendChatActionRequest,
    SendMessageRequest,
    SendStickerRequest,
    User,
)
from pollbot.models.query import AnswerCallbackQueryRequest, AnswerInlineQueryRequest
from pollbot.models.update import ApiResponse, GetUpdatesRequest, Update
from pollbot.utils.async_helpers import ApiError

if TYPE_CHECKING:
    from pollbot.interfaces.transport import Transport

log = structlog.get_logger()

R = TypeVar("R")

_UPDATES = TypeAdapter(list[Update])
_BOOL = TypeAdapter(bool)
_MESSAGE = TypeAdapter(Message)
_MESSAGE_OR_BOOL = TypeAdapter(Message | bool)


class API:
    """Remote API methods used by the router, events and applications.

    Example:
        api = API(HttpTransport(token))
        me = await api.get_me()
        await api.send_message(SendMessageRequest(chat_id=42, text="hello"))
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    async def call(
        self,
        method: str,
        request: BaseModel | dict[str, Any] | None,
        result: TypeAdapter[R],
    ) -> R:
        """Invoke ``method`` and validate the envelope's result.

        Args:
            method: API method name.
            request: Request model or raw body.
            result: Adapter describing the expected result type.

        Raises:
            ApiError: If the service reports failure or returns a malformed result.
            TransportError: If the service cannot be reached.
        """
        if request is None:
            body: dict[str, Any] = {}
        elif isinstance(request, BaseModel):
            body = request.model_dump(mode="json", exclude_none=True, by_alias=True)
        else:
            body = request

        raw = await self._transport.post(method, body)

        try:
            envelope = ApiResponse.model_validate(raw)
        except ValidationError as e:
            raise ApiError(f"malformed response envelope for {method}: {e}") from e

        if not envelope.ok:
            log.debug(
                "api_call_rejected",
                method=method,
                description=envelope.description,
                error_code=envelope.error_code,
            )
            raise ApiError(
                envelope.description or "No error description",
                error_code=envelope.error_code,
            )

        if envelope.result is None:
            raise ApiError(f"{method} returned no result")

        try:
            return result.validate_python(envelope.result)
        except ValidationError as e:
            raise ApiError(f"unexpected result for {method}: {e}") from e

    async def get_me(self) -> User:
        return await self.call("getMe", None, TypeAdapter(User))

    async def get_updates(self, request: GetUpdatesRequest) -> list[Update]:
        """Long-poll for updates. See ``GetUpdatesRequest`` for the offset rules."""
        return await self.call("getUpdates", request, _UPDATES)

    async def send_message(self, request: SendMessageRequest) -> Message:
        return await self.call("sendMessage", request, _MESSAGE)

    async def send_sticker(self, request: SendStickerRequest) -> Message:
        return await self.call("sendSticker", request, _MESSAGE)

    async def edit_message_text(self, request: EditMessageTextRequest) -> Message | bool:
        """Edit a message's text.

        Returns ``True`` instead of a message when an inline message was edited.
        """
        return await self.call("editMessageText", request, _MESSAGE_OR_BOOL)

    async def edit_message_reply_markup(
        self, request: EditMessageReplyMarkupRequest
    ) -> Message | bool:
        return await self.call("editMessageReplyMarkup", request, _MESSAGE_OR_BOOL)

    async def delete_message(self, request: DeleteMessageRequest) -> bool:
        return await self.call("deleteMessage", request, _BOOL)

    async def answer_callback_query(self, request: AnswerCallbackQueryRequest) -> bool:
        return await self.call("answerCallbackQuery", request, _BOOL)

    async def answer_inline_query(self, request: AnswerInlineQueryRequest) -> bool:
        return await self.call("answerInlineQuery", request, _BOOL)

    async def send_chat_action(self, request: SendChatActionRequest) -> bool:
        return await self.call("sendChatAction", request, _BOOL)

    async def get_file(self, request: GetFileRequest) -> File:
        return await self.call("getFile", request, TypeAdapter(File))

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()
