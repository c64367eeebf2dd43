"""Handlers and the actions they return."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .state import State

if TYPE_CHECKING:
    from .event import Event

T = TypeVar("T")

HandlerFunc = Callable[["Event", State[Any]], Awaitable["Action"]]


class ActionKind(StrEnum):
    """What the router does after a handler returns."""

    NEXT = "next"
    DONE = "done"
    REPLY_TEXT = "reply_text"
    REPLY_MARKDOWN = "reply_markdown"
    REPLY_STICKER = "reply_sticker"


@dataclass(frozen=True)
class Action:
    """Result of one handler.

    ``NEXT`` continues with the next matching handler of the chain, ``DONE``
    stops the chain, and the reply kinds stop the chain after sending one
    message (or sticker) to the session's chat.
    """

    kind: ActionKind
    payload: str | None = None

    @classmethod
    def next(cls) -> Action:
        return cls(ActionKind.NEXT)

    @classmethod
    def done(cls) -> Action:
        return cls(ActionKind.DONE)

    @classmethod
    def reply_text(cls, text: str) -> Action:
        return cls(ActionKind.REPLY_TEXT, text)

    @classmethod
    def reply_markdown(cls, text: str) -> Action:
        return cls(ActionKind.REPLY_MARKDOWN, text)

    @classmethod
    def reply_sticker(cls, file_id: str) -> Action:
        return cls(ActionKind.REPLY_STICKER, file_id)

    @property
    def is_reply(self) -> bool:
        return self.kind in (
            ActionKind.REPLY_TEXT,
            ActionKind.REPLY_MARKDOWN,
            ActionKind.REPLY_STICKER,
        )


class Handler(Generic[T]):
    """An async callable plus the initial state of its sessions.

    The first update of each session gets a deep copy of ``initial_state``;
    later updates of that session see whatever earlier handlers left there.

    Example:
        async def count(event: Event, state: State[Counter]) -> Action:
            async with state.write() as counter:
                counter.value += 1
            return Action.next()

        handler = Handler(count, Counter())
    """

    def __init__(self, func: HandlerFunc, state: State[T] | T | None = None) -> None:
        if not callable(func):
            raise TypeError(f"handler must be callable, got {type(func).__name__}")
        self.func = func
        self.initial_state: State[Any] = state if isinstance(state, State) else State(state)

    def with_state(self, state: State[T] | T) -> Handler[T]:
        """Same callable with a different initial state."""
        return Handler(self.func, state)

    async def run(self, event: Event, state: State[T]) -> Action:
        """Invoke the handler.

        Raises:
            TypeError: If the handler returns something other than an ``Action``.
        """
        action = await self.func(event, state)
        if not isinstance(action, Action):
            raise TypeError(
                f"handler {self.name} returned {type(action).__name__}, expected Action"
            )
        return action

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", type(self.func).__name__)

    def __repr__(self) -> str:
        return f"Handler({self.name})"
