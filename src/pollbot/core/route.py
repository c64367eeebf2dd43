"""Routes and matchers: deciding which handlers apply to an update.

A ``Route`` pairs a coarse update category (``RouteFamily``) with a
``Matcher`` tested against the update's text or content. Routes compare
structurally, so ``Route.any(route)`` (the family with the wildcard matcher)
serves as the key of a handler chain in the router's registry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from functools import lru_cache

from pollbot.models.message import Message
from pollbot.models.update import Update
from pollbot.utils.async_helpers import ClassificationError


class MatcherKind(StrEnum):
    ANY = "any"
    EXACT = "exact"
    PREFIX = "prefix"
    REGEX = "regex"
    COMMAND = "command"
    PHOTO = "photo"
    DOCUMENT = "document"


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


@dataclass(frozen=True)
class Matcher:
    """Predicate over an update's text payload or content kind.

    Build one with the class methods rather than the constructor:

        Matcher.exact("ping")
        Matcher.regex(r"[Pp]ing")
        Matcher.command("start")   # matches "/start", "/start now", ...
    """

    kind: MatcherKind = MatcherKind.ANY
    value: str | None = None

    def __post_init__(self) -> None:
        needs_value = self.kind in (
            MatcherKind.EXACT,
            MatcherKind.PREFIX,
            MatcherKind.REGEX,
            MatcherKind.COMMAND,
        )
        if needs_value and self.value is None:
            raise ValueError(f"{self.kind} matcher needs a value")
        if not needs_value and self.value is not None:
            raise ValueError(f"{self.kind} matcher takes no value")
        if self.kind is MatcherKind.REGEX:
            try:
                _compile(self.value)  # type: ignore[arg-type]
            except re.error as e:
                raise ValueError(f"Invalid matcher pattern {self.value!r}: {e}") from e

    @classmethod
    def any(cls) -> Matcher:
        return cls(MatcherKind.ANY)

    @classmethod
    def exact(cls, text: str) -> Matcher:
        return cls(MatcherKind.EXACT, text)

    @classmethod
    def prefix(cls, text: str) -> Matcher:
        return cls(MatcherKind.PREFIX, text)

    @classmethod
    def regex(cls, pattern: str) -> Matcher:
        return cls(MatcherKind.REGEX, pattern)

    @classmethod
    def command(cls, name: str) -> Matcher:
        return cls(MatcherKind.COMMAND, name.lstrip("/"))

    @classmethod
    def photo(cls) -> Matcher:
        return cls(MatcherKind.PHOTO)

    @classmethod
    def document(cls) -> Matcher:
        return cls(MatcherKind.DOCUMENT)

    def match_str(self, text: str) -> bool:
        """Test a text payload. Content-kind matchers never match text."""
        match self.kind:
            case MatcherKind.ANY:
                return True
            case MatcherKind.EXACT:
                return text == self.value
            case MatcherKind.PREFIX:
                return text.startswith(self.value)  # type: ignore[arg-type]
            case MatcherKind.REGEX:
                return _compile(self.value).search(text) is not None  # type: ignore[arg-type]
            case MatcherKind.COMMAND:
                return text.startswith(f"/{self.value}")
            case _:
                return False

    def match_message(self, message: Message) -> bool:
        """Test a message by content kind, or by its text for text matchers."""
        match self.kind:
            case MatcherKind.ANY:
                return True
            case MatcherKind.PHOTO:
                return bool(message.photo)
            case MatcherKind.DOCUMENT:
                return message.document is not None
            case _:
                return message.text is not None and self.match_str(message.text)


class RouteFamily(StrEnum):
    """Coarse update categories a handler chain can be registered for."""

    ANY = "any"
    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    EDITED_CHANNEL_POST = "edited_channel_post"
    CALLBACK_QUERY = "callback_query"
    INLINE_QUERY = "inline_query"


_MESSAGE_FAMILIES = {
    RouteFamily.MESSAGE: "message",
    RouteFamily.EDITED_MESSAGE: "edited_message",
    RouteFamily.CHANNEL_POST: "channel_post",
    RouteFamily.EDITED_CHANNEL_POST: "edited_channel_post",
}


@dataclass(frozen=True)
class Route:
    """An update category plus the matcher its handler requires."""

    family: RouteFamily
    matcher: Matcher = field(default_factory=Matcher.any)

    @classmethod
    def default(cls) -> Route:
        """The catch-all route, used when a family has no chain of its own."""
        return cls(RouteFamily.ANY)

    @classmethod
    def any_event(cls, matcher: Matcher | None = None) -> Route:
        return cls(RouteFamily.ANY, matcher or Matcher.any())

    @classmethod
    def message(cls, matcher: Matcher | None = None) -> Route:
        return cls(RouteFamily.MESSAGE, matcher or Matcher.any())

    @classmethod
    def edited_message(cls, matcher: Matcher | None = None) -> Route:
        return cls(RouteFamily.EDITED_MESSAGE, matcher or Matcher.any())

    @classmethod
    def channel_post(cls, matcher: Matcher | None = None) -> Route:
        return cls(RouteFamily.CHANNEL_POST, matcher or Matcher.any())

    @classmethod
    def edited_channel_post(cls, matcher: Matcher | None = None) -> Route:
        return cls(RouteFamily.EDITED_CHANNEL_POST, matcher or Matcher.any())

    @classmethod
    def callback_query(cls, matcher: Matcher | None = None) -> Route:
        return cls(RouteFamily.CALLBACK_QUERY, matcher or Matcher.any())

    @classmethod
    def inline_query(cls, matcher: Matcher | None = None) -> Route:
        return cls(RouteFamily.INLINE_QUERY, matcher or Matcher.any())

    @staticmethod
    def any(route: Route) -> Route:
        """Strip the matcher, leaving the family's registry key."""
        return Route(route.family)

    def with_matcher(self, matcher: Matcher) -> Route:
        return Route(self.family, matcher)

    def match_update(self, update: Update) -> bool:
        """Test whether ``update`` belongs to this family and passes the matcher."""
        if self.family is RouteFamily.ANY:
            return self._match_any(update)

        if self.family in _MESSAGE_FAMILIES:
            message = getattr(update, _MESSAGE_FAMILIES[self.family])
            return message is not None and self.matcher.match_message(message)

        if self.family is RouteFamily.CALLBACK_QUERY:
            query = update.callback_query
            if query is None:
                return False
            if self.matcher.kind is MatcherKind.ANY:
                return True
            return query.data is not None and self.matcher.match_str(query.data)

        inline = update.inline_query
        return inline is not None and self.matcher.match_str(inline.query)

    def _match_any(self, update: Update) -> bool:
        matcher = self.matcher
        for attr in _MESSAGE_FAMILIES.values():
            message = getattr(update, attr)
            if message is not None and matcher.match_message(message):
                return True
        query = update.callback_query
        if query is not None and (
            matcher.kind is MatcherKind.ANY
            or (query.data is not None and matcher.match_str(query.data))
        ):
            return True
        inline = update.inline_query
        return inline is not None and matcher.match_str(inline.query)

    def __str__(self) -> str:
        if self.matcher.value is None:
            return f"{self.family}({self.matcher.kind})"
        return f"{self.family}({self.matcher.kind}:{self.matcher.value})"


def classify(update: Update) -> tuple[int, Route]:
    """Map an update to its session key and route family.

    Message and post families are keyed by chat id, callback queries by the
    chat of the attached message (0 when there is none), and inline queries
    by the requesting user's id.

    Raises:
        ClassificationError: If the update carries no known payload.
    """
    if update.message is not None:
        return update.message.chat.id, Route.message()
    if update.edited_message is not None:
        return update.edited_message.chat.id, Route.edited_message()
    if update.channel_post is not None:
        return update.channel_post.chat.id, Route.channel_post()
    if update.edited_channel_post is not None:
        return update.edited_channel_post.chat.id, Route.edited_channel_post()
    if update.callback_query is not None:
        message = update.callback_query.message
        return (message.chat.id if message else 0), Route.callback_query()
    if update.inline_query is not None:
        return update.inline_query.from_user.id, Route.inline_query()
    raise ClassificationError(f"Unknown update type (update_id={update.update_id})")
