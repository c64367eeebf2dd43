"""Protocol definitions for pluggable adapters."""

from .transport import Transport

__all__ = ["Transport"]
