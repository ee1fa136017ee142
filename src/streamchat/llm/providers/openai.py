import json
from collections.abc import AsyncIterator
from typing import Any

import openai
from openai import AsyncOpenAI

from ...errors import ProtocolError, TransportError
from ..base import CompletionClient
from ..models import CompletionRequest, StreamChunk, StreamingResponse


class OpenAICompletionClient(CompletionClient):
    """Streaming chat completions through the official OpenAI SDK.

    Hidden design decisions:
    - AsyncOpenAI client initialization
    - SDK chunk objects to ``StreamChunk`` conversion
    - SDK exception to streamchat error mapping

    The SDK consumes the ``[DONE]`` sentinel itself, so this client emits
    the terminal chunk when the SDK stream ends.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4",
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Default model to use
            base_url: Optional custom API base URL
            organization: Optional organization ID
            **client_kwargs: Additional kwargs for AsyncOpenAI client. The SDK
                defaults are overridden with ``max_retries=0`` and
                ``timeout=None``: a failed request is reported, never resent,
                and a stream runs until the server ends it.
        """
        client_kwargs.setdefault("max_retries", 0)
        client_kwargs.setdefault("timeout", None)
        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        return self._model

    async def stream(self, prompt: str, model: str | None = None) -> StreamingResponse:
        request = CompletionRequest.for_prompt(prompt, model or self._model)
        return StreamingResponse(self._stream_generator(request))

    async def _stream_generator(self, request: CompletionRequest) -> AsyncIterator[StreamChunk]:
        """Internal generator mapping SDK chunks to StreamChunk."""
        try:
            stream = await self._client.chat.completions.create(
                model=request.model,
                messages=[message.model_dump() for message in request.messages],
                stream=True,
            )
            async for chunk in stream:
                delta = ""
                if chunk.choices and chunk.choices[0].delta.content:
                    delta = chunk.choices[0].delta.content
                raw = StreamChunk.DATA_PREFIX + json.dumps(chunk.model_dump(exclude_none=True))
                yield StreamChunk(raw_line=raw, delta_text=delta)

        except openai.APIStatusError as e:
            raise ProtocolError(e.status_code, e.message) from e
        except openai.APIConnectionError as e:
            raise TransportError(str(e)) from e

        yield StreamChunk.terminal()

    async def close(self) -> None:
        await self._client.close()
