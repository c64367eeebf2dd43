"""Data models for callback queries and inline queries."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from .message import Message, RequestModel, User, WireModel


class CallbackQuery(WireModel):
    """A press on an inline keyboard button."""

    id: str
    from_user: User = Field(alias="from")
    message: Message | None = None
    inline_message_id: str | None = None
    data: str | None = None


class InlineQuery(WireModel):
    """A query typed after the bot's username in any chat."""

    id: str
    from_user: User = Field(alias="from")
    query: str = ""
    offset: str = ""


class InputTextMessageContent(RequestModel):
    message_text: str


class InlineQueryResultArticle(RequestModel):
    """A link to an article or text answer."""

    type: Literal["article"] = "article"
    id: str
    title: str
    input_message_content: InputTextMessageContent


class AnswerCallbackQueryRequest(RequestModel):
    callback_query_id: str
    text: str | None = None
    show_alert: bool | None = None
    url: str | None = None
    cache_time: int | None = None


class AnswerInlineQueryRequest(RequestModel):
    inline_query_id: str
    results: list[InlineQueryResultArticle] = Field(default_factory=list)
    cache_time: int | None = None
    is_personal: bool | None = None
    next_offset: str | None = None

    def with_article_text(self, title: str, text: str) -> AnswerInlineQueryRequest:
        """Return a copy answering with a single text article."""
        article = InlineQueryResultArticle(
            id="0",
            title=title,
            input_message_content=InputTextMessageContent(message_text=text),
        )
        return self.model_copy(update={"results": [article]})
