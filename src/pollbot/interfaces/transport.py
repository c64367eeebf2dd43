"""Abstract interface for the remote service's request/response surface."""

from typing import Any, Protocol


class Transport(Protocol):
    """Sends one API method call and returns the decoded response envelope.

    Implementations include the HTTP transport used in production and the
    in-memory simulated backend used by tests. The dispatch engine only ever
    talks to the remote service through this one method.
    """

    async def post(self, method: str, body: dict[str, Any]) -> Any:
        """
        Invoke an API method.

        Args:
            method: API method name (e.g. "getUpdates", "sendMessage")
            body: JSON-serializable request body

        Returns:
            The decoded JSON envelope: a mapping with ``ok`` and either
            ``result`` or ``description``.

        Raises:
            TransportError: If the remote service could not be reached
        """
        ...

    async def close(self) -> None:
        """
        Release network resources held by the transport.
        """
        ...
