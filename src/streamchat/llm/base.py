from abc import ABC, abstractmethod
from typing import Any

from .models import StreamingResponse


class CompletionClient(ABC):
    """Abstract base class for streaming completion clients.

    This module hides the design decision of how a prompt reaches the
    completion API and how the response bytes become chunks.
    Implementations must handle:
    - Request construction and bearer authentication
    - SSE framing across arbitrary delivery boundaries
    - Translating transport and HTTP failures into streamchat errors

    Supports async context manager protocol for proper resource cleanup:
        async with client:
            response = await client.stream("Hello")
            async for chunk in response:
                ...
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Default model name sent with each request."""

    @abstractmethod
    async def stream(self, prompt: str, model: str | None = None) -> StreamingResponse:
        """Start a streaming completion for a single user prompt.

        The request is only issued when the returned response is first
        iterated, so creating it never blocks.

        Args:
            prompt: The user prompt, sent as the only message
            model: Model to use (None uses the client's default)

        Returns:
            StreamingResponse yielding chunks up to and including the terminal one

        Raises:
            TransportError: While iterating, on connection/DNS/TLS failure
            ProtocolError: While iterating, on a non-2xx response
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
