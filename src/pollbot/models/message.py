"""Data models for messages and the requests that create or change them."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for objects received from the remote service.

    Unknown fields are ignored so that new platform fields never break parsing,
    and instances are frozen once constructed.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class RequestModel(BaseModel):
    """Base for request bodies sent to the remote service."""

    model_config = ConfigDict(populate_by_name=True)


class User(WireModel):
    """A user or bot account."""

    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None


class Chat(WireModel):
    """A private chat, group or channel."""

    id: int
    type: str = "private"
    title: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class PhotoSize(WireModel):
    """One size of a photo or thumbnail."""

    file_id: str
    file_unique_id: str = ""
    width: int = 0
    height: int = 0
    file_size: int | None = None


class Document(WireModel):
    """A general file."""

    file_id: str
    file_unique_id: str = ""
    file_name: str | None = None
    mime_type: str | None = None
    file_size: int | None = None


class Sticker(WireModel):
    """A sticker."""

    file_id: str
    file_unique_id: str = ""
    width: int = 0
    height: int = 0
    is_animated: bool = False
    emoji: str | None = None
    set_name: str | None = None


class File(WireModel):
    """A file ready to be downloaded via ``file_path``."""

    file_id: str
    file_unique_id: str = ""
    file_size: int | None = None
    file_path: str | None = None


class InlineKeyboardButton(RequestModel):
    """One button of an inline keyboard."""

    text: str
    callback_data: str | None = None
    url: str | None = None


class InlineKeyboardMarkup(RequestModel):
    """An inline keyboard attached to a message."""

    inline_keyboard: list[list[InlineKeyboardButton]] = Field(default_factory=list)


class Message(WireModel):
    """A message sent in a chat: text, photo, document, sticker, etc."""

    message_id: int
    chat: Chat
    date: int = 0
    from_user: User | None = Field(default=None, alias="from")
    text: str | None = None
    caption: str | None = None
    photo: list[PhotoSize] | None = None
    document: Document | None = None
    sticker: Sticker | None = None
    reply_to_message: Message | None = None
    reply_markup: InlineKeyboardMarkup | None = None


class ParseMode(StrEnum):
    """Text formatting modes understood by the remote service."""

    MARKDOWN_V2 = "MarkdownV2"
    MARKDOWN = "Markdown"
    HTML = "HTML"


class ChatAction(StrEnum):
    """Activity indicators shown to the other side of a chat."""

    TYPING = "typing"
    UPLOAD_PHOTO = "upload_photo"
    UPLOAD_DOCUMENT = "upload_document"
    CHOOSE_STICKER = "choose_sticker"


class SendMessageRequest(RequestModel):
    chat_id: int
    text: str
    parse_mode: ParseMode | None = None
    reply_to_message_id: int | None = None
    reply_markup: InlineKeyboardMarkup | None = None


class SendStickerRequest(RequestModel):
    chat_id: int
    sticker: str


class EditMessageTextRequest(RequestModel):
    """Edit the text of a message identified by chat and message id."""

    chat_id: int | None = None
    message_id: int | None = None
    inline_message_id: str | None = None
    text: str
    parse_mode: ParseMode | None = None
    reply_markup: InlineKeyboardMarkup | None = None


class EditMessageReplyMarkupRequest(RequestModel):
    chat_id: int | None = None
    message_id: int | None = None
    inline_message_id: str | None = None
    reply_markup: InlineKeyboardMarkup | None = None


class DeleteMessageRequest(RequestModel):
    chat_id: int
    message_id: int


class SendChatActionRequest(RequestModel):
    chat_id: int
    action: ChatAction


class GetFileRequest(RequestModel):
    file_id: str
