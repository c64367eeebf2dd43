"""Data models for incoming updates and the response envelope."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pollbot.utils.async_helpers import UpdateError

from .message import Document, Message, PhotoSize, RequestModel, User, WireModel
from .query import CallbackQuery, InlineQuery


class UpdateKind(StrEnum):
    """Which payload an update carries."""

    NEW_MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    EDITED_CHANNEL_POST = "edited_channel_post"
    CALLBACK_QUERY = "callback_query"
    INLINE_QUERY = "inline_query"
    UNRECOGNIZED = "unrecognized"


class Update(WireModel):
    """One inbound notification from the remote service.

    Exactly one payload field is expected to be populated; ``kind`` reports
    which. Updates the framework does not know about parse fine and report
    ``UpdateKind.UNRECOGNIZED``.

    The accessor methods raise ``UpdateError`` when the payload lacks the
    requested field, so handlers can let the error policy report it.
    """

    update_id: int
    message: Message | None = None
    edited_message: Message | None = None
    channel_post: Message | None = None
    edited_channel_post: Message | None = None
    callback_query: CallbackQuery | None = None
    inline_query: InlineQuery | None = None

    @property
    def kind(self) -> UpdateKind:
        if self.message is not None:
            return UpdateKind.NEW_MESSAGE
        if self.edited_message is not None:
            return UpdateKind.EDITED_MESSAGE
        if self.channel_post is not None:
            return UpdateKind.CHANNEL_POST
        if self.edited_channel_post is not None:
            return UpdateKind.EDITED_CHANNEL_POST
        if self.callback_query is not None:
            return UpdateKind.CALLBACK_QUERY
        if self.inline_query is not None:
            return UpdateKind.INLINE_QUERY
        return UpdateKind.UNRECOGNIZED

    def get_message(self) -> Message:
        """Return the message this update is about.

        For callback queries this is the message carrying the pressed button.

        Raises:
            UpdateError: If the update has no message.
        """
        message = (
            self.message
            or self.edited_message
            or self.channel_post
            or self.edited_channel_post
            or (self.callback_query.message if self.callback_query else None)
        )
        if message is None:
            raise UpdateError(f"{self.kind} update has no message")
        return message

    def get_callback_query(self) -> CallbackQuery:
        if self.callback_query is None:
            raise UpdateError(f"{self.kind} update is not a callback query")
        return self.callback_query

    def get_inline_query(self) -> InlineQuery:
        if self.inline_query is None:
            raise UpdateError(f"{self.kind} update is not an inline query")
        return self.inline_query

    @property
    def chat_id(self) -> int:
        return self.get_message().chat.id

    @property
    def message_id(self) -> int:
        return self.get_message().message_id

    @property
    def query_id(self) -> str:
        """Identifier of the callback or inline query."""
        if self.callback_query is not None:
            return self.callback_query.id
        return self.get_inline_query().id

    @property
    def text(self) -> str:
        """Text of the message, or the text typed for an inline query."""
        if self.inline_query is not None:
            return self.inline_query.query
        text = self.get_message().text
        if text is None:
            raise UpdateError("message has no text")
        return text

    @property
    def data(self) -> str:
        """Data attached to the pressed callback button."""
        data = self.get_callback_query().data
        if data is None:
            raise UpdateError("callback query has no data")
        return data

    @property
    def photo(self) -> list[PhotoSize]:
        photo = self.get_message().photo
        if not photo:
            raise UpdateError("message has no photo")
        return photo

    @property
    def document(self) -> Document:
        document = self.get_message().document
        if document is None:
            raise UpdateError("message has no document")
        return document

    @property
    def from_user(self) -> User:
        """Sender of the message or query."""
        if self.callback_query is not None:
            return self.callback_query.from_user
        if self.inline_query is not None:
            return self.inline_query.from_user
        user = self.get_message().from_user
        if user is None:
            raise UpdateError("message has no sender")
        return user


class GetUpdatesRequest(RequestModel):
    """Long-poll request for updates newer than ``offset - 1``."""

    offset: int | None = None
    limit: int | None = None
    timeout: int | None = None
    allowed_updates: list[str] | None = None


class ApiResponse(BaseModel):
    """Envelope wrapped around every response of the remote service.

    If ``ok`` is true, ``result`` holds the payload; otherwise
    ``description`` explains the failure.
    """

    model_config = ConfigDict(extra="ignore")

    ok: bool
    result: Any = None
    description: str | None = None
    error_code: int | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
