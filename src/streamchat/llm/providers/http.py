import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ...errors import ProtocolError, TransportError
from ..base import CompletionClient
from ..models import CompletionRequest, StreamChunk, StreamingResponse
from ..sse import SSEDecoder

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class HTTPCompletionClient(CompletionClient):
    """Streaming chat completions over plain HTTP with our own SSE decoder.

    Hidden design decisions:
    - httpx client setup and bearer authentication
    - Request body layout
    - Byte-level SSE framing (see ``SSEDecoder``)
    - Mapping httpx failures and HTTP status codes to streamchat errors

    No read timeout is applied by default: a stream runs until the server
    closes it, the terminal sentinel arrives, or the caller cancels.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4",
        base_url: str = DEFAULT_BASE_URL,
        timeout: httpx.Timeout | float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **client_kwargs: Any
    ):
        """Initialize the HTTP client.

        Args:
            api_key: API key sent as ``Authorization: Bearer``; not validated here
            model: Default model to use
            base_url: API base URL; requests go to ``{base_url}/chat/completions``
            timeout: httpx timeout (None disables it)
            transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests
            **client_kwargs: Additional kwargs for httpx.AsyncClient
        """
        self._model = model
        self._url = base_url.rstrip("/") + "/chat/completions"
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "text/event-stream",
            },
            timeout=timeout,
            transport=transport,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def url(self) -> str:
        return self._url

    async def stream(self, prompt: str, model: str | None = None) -> StreamingResponse:
        request = CompletionRequest.for_prompt(prompt, model or self._model)
        return StreamingResponse(self._stream_generator(request))

    async def _stream_generator(self, request: CompletionRequest) -> AsyncIterator[StreamChunk]:
        """Issue the request and yield chunks as byte blocks arrive."""
        decoder = SSEDecoder()
        body = request.model_dump(mode="json")

        try:
            async with self._client.stream("POST", self._url, json=body) as response:
                if not response.is_success:
                    detail = (await response.aread()).decode("utf-8", errors="replace")
                    raise ProtocolError(response.status_code, detail)

                logger.debug("Stream opened: %s (model=%s)", self._url, request.model)
                async for data in response.aiter_bytes():
                    for chunk in decoder.feed(data):
                        yield chunk
                        if chunk.is_terminal:
                            return

                for chunk in decoder.flush():
                    yield chunk
                    if chunk.is_terminal:
                        return

        except httpx.TransportError as e:
            raise TransportError(str(e) or type(e).__name__) from e

        logger.debug("Stream closed by server without a terminal chunk")

    async def close(self) -> None:
        await self._client.aclose()
