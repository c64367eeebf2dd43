"""Data models and transfer objects."""

from .message import (
    Chat,
    ChatAction,
    DeleteMessageRequest,
    Document,
    EditMessageReplyMarkupRequest,
    EditMessageTextRequest,
    File,
    GetFileRequest,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    Message,
    ParseMode,
    PhotoSize,
    SendChatActionRequest,
    SendMessageRequest,
    SendStickerRequest,
    Sticker,
    User,
)
from .query import (
    AnswerCallbackQueryRequest,
    AnswerInlineQueryRequest,
    CallbackQuery,
    InlineQuery,
    InlineQueryResultArticle,
    InputTextMessageContent,
)
from .update import ApiResponse, GetUpdatesRequest, Update, UpdateKind

__all__ = [
    # Message models
    "Chat",
    "ChatAction",
    "Document",
    "File",
    "InlineKeyboardButton",
    "InlineKeyboardMarkup",
    "Message",
    "ParseMode",
    "PhotoSize",
    "Sticker",
    "User",
    # Query models
    "CallbackQuery",
    "InlineQuery",
    "InlineQueryResultArticle",
    "InputTextMessageContent",
    # Update models
    "ApiResponse",
    "Update",
    "UpdateKind",
    # Requests
    "AnswerCallbackQueryRequest",
    "AnswerInlineQueryRequest",
    "DeleteMessageRequest",
    "EditMessageReplyMarkupRequest",
    "EditMessageTextRequest",
    "GetFileRequest",
    "GetUpdatesRequest",
    "SendChatActionRequest",
    "SendMessageRequest",
    "SendStickerRequest",
]
