"""Concrete implementations of the Transport interface."""

from .fake import FakeChat, FakeServer
from .http import HttpTransport

__all__ = [
    "FakeChat",
    "FakeServer",
    "HttpTransport",
]
