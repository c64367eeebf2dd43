"""HTTP transport for the remote Bot API using httpx.

This module implements the Transport protocol by POSTing JSON bodies to
``{base_url}/bot{token}/{method}``.

Features:
- Shared connection pool through one ``httpx.AsyncClient``
- Read timeout stretched by the long-poll timeout of ``getUpdates`` calls
- Retries with exponential backoff on network errors and timeouts
- Bot token redacted from every error message
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from ..utils.async_helpers import RETRYABLE_HTTP_ERRORS, TransportError, create_retry
from ..utils.security import SecretRedactor

if TYPE_CHECKING:
    from ..config.schema import ApiConfig, RetryConfig


log = structlog.get_logger()


class HttpTransport:
    """Transport implementation backed by ``httpx.AsyncClient``.

    Example:
        transport = HttpTransport(token="123456:AAE...")
        envelope = await transport.post("getMe", {})
        await transport.close()
    """

    DEFAULT_BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        request_timeout: float = 10.0,
        max_attempts: int = 3,
        min_wait: float = 1.0,
        max_wait: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            token: Bot API token.
            base_url: API root, without trailing slash.
            request_timeout: Per-request timeout in seconds, excluding long-poll time.
            max_attempts: Attempts per call on network errors and timeouts.
            min_wait: Minimum backoff between attempts.
            max_wait: Maximum backoff between attempts.
            client: Pre-built httpx client (tests inject one with a mock transport).
        """
        self._base_url = f"{base_url.rstrip('/')}/bot{token}"
        self._request_timeout = request_timeout
        self._client = client or httpx.AsyncClient(timeout=request_timeout)
        self._redactor = SecretRedactor()
        self._retry = create_retry(
            max_attempts=max_attempts,
            min_wait=min_wait,
            max_wait=max_wait,
            retry_on=RETRYABLE_HTTP_ERRORS,
        )

    @classmethod
    def from_config(cls, api: ApiConfig, retry: RetryConfig) -> HttpTransport:
        """Build a transport from the ``api`` and ``retry`` config sections."""
        return cls(
            token=api.token,
            base_url=api.base_url,
            request_timeout=api.request_timeout,
            max_attempts=retry.max_attempts,
            min_wait=retry.initial_delay,
            max_wait=retry.max_delay,
        )

    def _timeout_for(self, body: dict[str, Any]) -> httpx.Timeout:
        poll_timeout = body.get("timeout") or 0
        return httpx.Timeout(self._request_timeout, read=self._request_timeout + poll_timeout)

    async def _send(self, method: str, body: dict[str, Any]) -> httpx.Response:
        return await self._client.post(
            f"{self._base_url}/{method}",
            json=body,
            timeout=self._timeout_for(body),
        )

    async def post(self, method: str, body: dict[str, Any]) -> Any:
        """Invoke an API method and return the decoded envelope.

        Error statuses that still carry a JSON envelope (e.g. 400 with
        ``{"ok": false, ...}``) are returned as-is for the API layer to raise.

        Raises:
            TransportError: On network failure after retries, or a non-JSON body.
        """
        try:
            response = await self._retry(self._send)(method, body)
        except httpx.HTTPError as e:
            message = self._redactor.redact(str(e))
            log.warning(
                "transport_request_failed",
                method=method,
                error_type=type(e).__name__,
                error=message,
            )
            raise TransportError(f"{method} failed: {message}") from None

        try:
            envelope = response.json()
        except json.JSONDecodeError:
            log.warning(
                "transport_invalid_response",
                method=method,
                status_code=response.status_code,
            )
            raise TransportError(
                f"{method} returned non-JSON response (HTTP {response.status_code})"
            ) from None

        log.debug("transport_response", method=method, status_code=response.status_code)
        return envelope

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
