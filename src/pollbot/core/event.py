"""Context handed to every handler: the update plus helpers to answer it."""

from __future__ import annotations

from dataclasses import dataclass

from pollbot.models.message import (
    ChatAction,
    DeleteMessageRequest,
    EditMessageReplyMarkupRequest,
    EditMessageTextRequest,
    InlineKeyboardMarkup,
    Message,
    ParseMode,
    SendChatActionRequest,
    SendMessageRequest,
    SendStickerRequest,
)
from pollbot.models.query import AnswerCallbackQueryRequest, AnswerInlineQueryRequest
from pollbot.models.update import Update

from .api import API


@dataclass(frozen=True)
class Event:
    """An update as seen by a handler.

    The helpers address the chat (and message, or query) the update came
    from. They raise ``UpdateError`` when the update lacks what they need,
    e.g. ``send_text`` on an inline query.
    """

    api: API
    update: Update

    async def send_text(self, text: str) -> Message:
        return await self.api.send_message(
            SendMessageRequest(chat_id=self.update.chat_id, text=text)
        )

    async def send_markdown(self, text: str) -> Message:
        """Send a MarkdownV2 message. ``text`` must already be escaped."""
        return await self.api.send_message(
            SendMessageRequest(
                chat_id=self.update.chat_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN_V2,
            )
        )

    async def send_sticker(self, file_id: str) -> Message:
        return await self.api.send_sticker(
            SendStickerRequest(chat_id=self.update.chat_id, sticker=file_id)
        )

    async def edit_message(self, message_id: int, text: str) -> Message | bool:
        return await self.api.edit_message_text(
            EditMessageTextRequest(chat_id=self.update.chat_id, message_id=message_id, text=text)
        )

    async def edit_last_message(self, text: str) -> Message | bool:
        """Edit the message this update refers to."""
        return await self.edit_message(self.update.message_id, text)

    async def delete_message(self, message_id: int) -> bool:
        return await self.api.delete_message(
            DeleteMessageRequest(chat_id=self.update.chat_id, message_id=message_id)
        )

    async def delete_last_message(self) -> bool:
        return await self.delete_message(self.update.message_id)

    async def acknowledge_callback(self, text: str | None = None) -> bool:
        """Answer the callback query, optionally showing ``text`` to the user."""
        return await self.api.answer_callback_query(
            AnswerCallbackQueryRequest(callback_query_id=self.update.query_id, text=text)
        )

    async def remove_inline_keyboard(self) -> Message | bool:
        return await self.api.edit_message_reply_markup(
            EditMessageReplyMarkupRequest(
                chat_id=self.update.chat_id,
                message_id=self.update.message_id,
                reply_markup=InlineKeyboardMarkup(inline_keyboard=[[]]),
            )
        )

    async def send_chat_action(self, action: ChatAction = ChatAction.TYPING) -> bool:
        return await self.api.send_chat_action(
            SendChatActionRequest(chat_id=self.update.chat_id, action=action)
        )

    async def answer_inline_query(self, title: str, text: str) -> bool:
        """Answer the inline query with a single text article."""
        request = AnswerInlineQueryRequest(
            inline_query_id=self.update.get_inline_query().id
        ).with_article_text(title, text)
        return await self.api.answer_inline_query(request)
