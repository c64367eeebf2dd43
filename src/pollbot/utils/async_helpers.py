"""Async utility functions and the bot error hierarchy.

This module provides:
- Custom exceptions shared by the router, API client and transports
- Retry decorators with exponential backoff for transport calls
- Timeout wrappers for async operations
"""

from __future__ import annotations

import asyncio
import builtins
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


# =============================================================================
# Custom Exceptions
# =============================================================================


class BotError(Exception):
    """Base exception for all bot framework errors."""


class TransportError(BotError):
    """Failed to reach the remote service."""


class ApiError(BotError):
    """The remote service answered with ``ok: false``.

    Attributes:
        description: Error description returned by the service.
        error_code: Numeric error code, if the service sent one.
    """

    def __init__(self, description: str, error_code: int | None = None) -> None:
        super().__init__(f"API error: {description}")
        self.description = description
        self.error_code = error_code


class UpdateError(BotError):
    """An update does not carry the requested payload."""


class ClassificationError(UpdateError):
    """An update could not be mapped to a session and route."""


class RoutingError(BotError):
    """No handler chain is installed for a route."""


class RouterError(BotError):
    """The router was used incorrectly (e.g. routes added after start)."""


class UnauthorizedError(BotError):
    """The sender is not allowed to talk to the bot."""


class TimeoutError(BotError):
    """Operation timed out."""


# =============================================================================
# Retry Decorator
# =============================================================================


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempts for debugging."""
    if retry_state.outcome is None:
        return

    exception = retry_state.outcome.exception()
    if exception:
        log.warning(
            "retrying_operation",
            attempt=retry_state.attempt_number,
            exception_type=type(exception).__name__,
            wait_time=retry_state.next_action.sleep if retry_state.next_action else 0,
        )


RETRYABLE_HTTP_ERRORS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def create_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_on: tuple[type[Exception], ...] = RETRYABLE_HTTP_ERRORS,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Create a customized retry decorator.

    Args:
        max_attempts: Maximum number of attempts, including the first one.
        min_wait: Minimum wait time between retries (seconds).
        max_wait: Maximum wait time between retries (seconds).
        retry_on: Tuple of exception types to retry on.

    Returns:
        A retry decorator configured with the given parameters.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    )


# =============================================================================
# Timeout Utilities
# =============================================================================


async def with_timeout(
    coro: Awaitable[T],
    timeout: float,
    error_message: str | None = None,
) -> T:
    """Execute an awaitable with a timeout.

    Args:
        coro: The coroutine to execute.
        timeout: Timeout in seconds.
        error_message: Custom error message for timeout.

    Returns:
        The result of the coroutine.

    Raises:
        TimeoutError: If the operation times out.
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except builtins.TimeoutError as e:
        msg = error_message or f"Operation timed out after {timeout}s"
        log.warning("operation_timeout", timeout=timeout)
        raise TimeoutError(msg) from e
