"""In-memory stand-in for the remote Bot API.

``FakeServer`` implements the Transport protocol without any network:
updates injected through ``FakeChat`` objects are served to ``getUpdates``,
and messages the bot sends come back out of the addressed chat's
``recv()``. It lets tests drive a real ``Router`` end to end:

    server = FakeServer()
    chat = await server.create_chat("alice")
    router = Router(API(server), poll_timeout=1)
    ...
    await chat.send_text("ping")
    reply = await chat.recv(timeout=5)
    assert reply.text == "pong(1): ping"
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from pollbot.models.message import (
    Chat,
    EditMessageTextRequest,
    File,
    GetFileRequest,
    Message,
    SendMessageRequest,
    SendStickerRequest,
    Sticker,
    User,
)
from pollbot.models.update import GetUpdatesRequest, Update
from pollbot.utils.async_helpers import with_timeout

log = structlog.get_logger()

MethodHandler = Callable[[dict[str, Any]], Awaitable[Any]]


def _dump(model: Message | User | File) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class FakeChat:
    """One private chat between a simulated user and the bot.

    The chat id doubles as the user id, as it does for private chats on the
    real service.
    """

    def __init__(
        self, server: FakeServer, chat_id: int, username: str, queue_size: int = 100
    ) -> None:
        self.server = server
        self.chat_id = chat_id
        self.username = username
        self.user = User(id=chat_id, first_name=username, username=username)
        self.chat = Chat(id=chat_id, type="private", username=username, first_name=username)
        self._outbox: asyncio.Queue[Update] = asyncio.Queue(maxsize=queue_size)

    def _message(self, message_id: int, text: str | None = None) -> dict[str, Any]:
        return _dump(
            Message(
                message_id=message_id,
                chat=self.chat,
                date=int(time.time()),
                from_user=self.user,
                text=text,
            )
        )

    async def send_text(self, text: str) -> int:
        """Send a text message to the bot. Returns the new message's id."""
        message_id = self.server.next_message_id()
        await self.server.inject({"message": self._message(message_id, text)})
        return message_id

    async def edit_text(self, message_id: int, text: str) -> None:
        """Edit a message this user sent earlier."""
        await self.server.inject({"edited_message": self._message(message_id, text)})

    async def send_callback(self, data: str, message_id: int | None = None) -> str:
        """Press an inline keyboard button carrying ``data``.

        The callback is attached to ``message_id`` in this chat, or to a new
        message id when none is given. Returns the callback query id.
        """
        query_id = str(self.server.next_message_id())
        if message_id is None:
            message_id = self.server.next_message_id()
        await self.server.inject(
            {
                "callback_query": {
                    "id": query_id,
                    "from": _dump(self.user),
                    "message": self._message(message_id),
                    "data": data,
                }
            }
        )
        return query_id

    async def send_inline_query(self, query: str) -> str:
        """Type ``query`` after the bot's username. Returns the inline query id."""
        query_id = str(self.server.next_message_id())
        await self.server.inject(
            {
                "inline_query": {
                    "id": query_id,
                    "from": _dump(self.user),
                    "query": query,
                    "offset": "",
                }
            }
        )
        return query_id

    async def deliver(self, update: Update) -> None:
        """Hand ``update`` to the user; blocks while the chat's queue is full."""
        await self._outbox.put(update)

    async def recv(self, timeout: float | None = None) -> Update:
        """Next update produced by the bot for this chat.

        Raises:
            TimeoutError: If nothing arrives within ``timeout`` seconds.
        """
        if timeout is None:
            return await self._outbox.get()
        return await with_timeout(
            self._outbox.get(),
            timeout,
            f"No message for chat {self.chat_id} within {timeout}s",
        )

    def __repr__(self) -> str:
        return f"FakeChat(chat_id={self.chat_id}, username={self.username!r})"


class FakeServer:
    """Transport that simulates the remote service in memory.

    Attributes:
        calls: Every ``(method, body)`` posted, in order.
        offsets: The ``offset`` of every ``getUpdates`` call, in order.
        queue_size: Capacity of the inbound update queue and of each
            chat's outbox. Sends to a full chat wait until the user reads.
    """

    FIRST_CHAT_ID = 1001

    def __init__(self, bot_name: str = "pollbot", queue_size: int = 100) -> None:
        self.bot_name = bot_name
        self.queue_size = queue_size
        self.bot_user = User(id=1, is_bot=True, first_name=bot_name, username=bot_name)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.offsets: list[int | None] = []

        self._inbound: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=queue_size)
        self._chats: dict[int, FakeChat] = {}
        self._chat_ids = itertools.count(self.FIRST_CHAT_ID)
        self._message_ids = itertools.count(1)
        self._update_ids = itertools.count(1)
        self._outbound_ids = itertools.count(1)

        self._methods: dict[str, MethodHandler] = {
            "getUpdates": self._get_updates,
            "getMe": self._get_me,
            "sendMessage": self._send_message,
            "sendSticker": self._send_sticker,
            "editMessageText": self._edit_message_text,
            "deleteMessage": self._acknowledge,
            "answerCallbackQuery": self._acknowledge,
            "answerInlineQuery": self._acknowledge,
            "editMessageReplyMarkup": self._acknowledge,
            "sendChatAction": self._acknowledge,
            "getFile": self._get_file,
        }

    async def create_chat(self, name: str) -> FakeChat:
        chat = FakeChat(self, next(self._chat_ids), name, self.queue_size)
        self._chats[chat.chat_id] = chat
        log.debug("fake_chat_created", chat_id=chat.chat_id, username=name)
        return chat

    def next_message_id(self) -> int:
        return next(self._message_ids)

    async def inject(self, payload: dict[str, Any]) -> None:
        """Queue an update payload for ``getUpdates``; blocks while the queue is full."""
        await self._inbound.put(payload)

    @property
    def pending(self) -> int:
        """Injected updates not yet served."""
        return self._inbound.qsize()

    async def post(self, method: str, body: dict[str, Any]) -> Any:
        self.calls.append((method, body))

        handler = self._methods.get(method)
        if handler is None:
            log.warning("fake_unknown_method", method=method)
            return {"ok": False, "description": f"Unknown method: {method}"}

        return {"ok": True, "result": await handler(body)}

    async def close(self) -> None:
        return None

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        """Bodies of every call to ``method``."""
        return [body for name, body in self.calls if name == method]

    async def _get_updates(self, body: dict[str, Any]) -> list[dict[str, Any]]:
        request = GetUpdatesRequest.model_validate(body)
        self.offsets.append(request.offset)
        limit = request.limit or 100

        if request.timeout:
            try:
                first = await asyncio.wait_for(self._inbound.get(), timeout=request.timeout)
            except asyncio.TimeoutError:
                return []
        elif self._inbound.empty():
            return []
        else:
            first = self._inbound.get_nowait()

        batch = [first]
        while len(batch) < limit and not self._inbound.empty():
            batch.append(self._inbound.get_nowait())

        return [{"update_id": next(self._update_ids), **payload} for payload in batch]

    async def _get_me(self, body: dict[str, Any]) -> dict[str, Any]:
        return _dump(self.bot_user)

    def _bot_message(self, chat_id: int, message_id: int | None = None, **fields: Any) -> Message:
        chat = self._chats.get(chat_id)
        return Message(
            message_id=message_id if message_id is not None else self.next_message_id(),
            chat=chat.chat if chat else Chat(id=chat_id),
            date=int(time.time()),
            from_user=self.bot_user,
            **fields,
        )

    async def _deliver(self, chat_id: int, **payload: Message) -> None:
        chat = self._chats.get(chat_id)
        if chat is None:
            log.warning("fake_chat_not_found", chat_id=chat_id)
            return
        await chat.deliver(Update(update_id=next(self._outbound_ids), **payload))

    async def _send_message(self, body: dict[str, Any]) -> dict[str, Any]:
        request = SendMessageRequest.model_validate(body)
        message = self._bot_message(
            request.chat_id,
            text=request.text,
            reply_markup=request.reply_markup,
        )
        await self._deliver(request.chat_id, message=message)
        return _dump(message)

    async def _send_sticker(self, body: dict[str, Any]) -> dict[str, Any]:
        request = SendStickerRequest.model_validate(body)
        message = self._bot_message(request.chat_id, sticker=Sticker(file_id=request.sticker))
        await self._deliver(request.chat_id, message=message)
        return _dump(message)

    async def _edit_message_text(self, body: dict[str, Any]) -> dict[str, Any] | bool:
        request = EditMessageTextRequest.model_validate(body)
        if request.chat_id is None or request.message_id is None:
            return True

        message = self._bot_message(request.chat_id, request.message_id, text=request.text)
        await self._deliver(request.chat_id, edited_message=message)
        return _dump(message)

    async def _acknowledge(self, body: dict[str, Any]) -> bool:
        return True

    async def _get_file(self, body: dict[str, Any]) -> dict[str, Any]:
        request = GetFileRequest.model_validate(body)
        return _dump(
            File(
                file_id=request.file_id,
                file_unique_id=f"unique-{request.file_id}",
                file_path=f"files/{request.file_id}",
            )
        )
