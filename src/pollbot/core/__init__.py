"""Core dispatch engine components.

This module exports the main building blocks of a bot:
- Router: Long-poll loop and dispatch engine
- Route, Matcher: Which handlers apply to an update
- Handler, Action: Handler wrapper and its results
- State, SessionStore: Per-session state cells
- API, Event: Remote API client and the handler-facing context
"""

from pollbot.core.api import API
from pollbot.core.event import Event
from pollbot.core.handler import Action, ActionKind, Handler, HandlerFunc
from pollbot.core.handlers import AuthHandler, done_handler, log_handler
from pollbot.core.route import Matcher, MatcherKind, Route, RouteFamily, classify
from pollbot.core.router import ErrorHandler, Router, ShutdownHandle, default_error_handler
from pollbot.core.state import RWLock, SessionStore, State

__all__ = [
    "API",
    "Action",
    "ActionKind",
    "AuthHandler",
    "ErrorHandler",
    "Event",
    "Handler",
    "HandlerFunc",
    "Matcher",
    "MatcherKind",
    "RWLock",
    "Route",
    "RouteFamily",
    "Router",
    "SessionStore",
    "ShutdownHandle",
    "State",
    "classify",
    "default_error_handler",
    "done_handler",
    "log_handler",
]
