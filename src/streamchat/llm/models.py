import asyncio
from collections.abc import AsyncIterator
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


class StreamChunk(BaseModel):
    """One server-sent event payload from a streaming completion."""

    model_config = ConfigDict(frozen=True)

    DATA_PREFIX: ClassVar[str] = "data: "
    DONE_SENTINEL: ClassVar[str] = "[DONE]"

    raw_line: str = Field(description="The full event line, including the data prefix")
    is_terminal: bool = Field(default=False, description="True for the [DONE] sentinel")
    delta_text: str = Field(
        default="",
        description="Content fragment; empty for role-only or unparseable payloads"
    )

    @classmethod
    def terminal(cls) -> "StreamChunk":
        """Build the end-of-stream chunk."""
        return cls(raw_line=cls.DATA_PREFIX + cls.DONE_SENTINEL, is_terminal=True)


class ChatMessage(BaseModel):
    """A message in a completion request."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str = Field(description="Content of the message")


class CompletionRequest(BaseModel):
    """JSON body of a streaming chat completion request."""

    model_config = ConfigDict(frozen=True)

    model: str
    messages: list[ChatMessage]
    stream: bool = True

    @classmethod
    def for_prompt(cls, prompt: str, model: str) -> "CompletionRequest":
        """Build a request carrying only the latest user prompt."""
        return cls(model=model, messages=[ChatMessage(role="user", content=prompt)])


class StreamingResponse:
    """Cancellable async iterator over the chunks of one completion.

    Yields every chunk the provider decodes, including the terminal one,
    then stops. After ``cancel()`` no further chunks are returned, even if
    the transport had already delivered them.

    Usage:
        response = await client.stream("Hello")
        async for chunk in response:
            print(chunk.delta_text, end="")
    """

    def __init__(self, chunks: AsyncIterator[StreamChunk]):
        """Initialize with the provider's chunk iterator.

        Args:
            chunks: Async iterator (usually an async generator) yielding chunks
        """
        self._iter = chunks
        self._cancelled = False
        self._finished = False
        self._chunks_received = 0
        self._reader: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        """True once the terminal chunk was seen or the transport closed."""
        return self._finished

    @property
    def chunks_received(self) -> int:
        return self._chunks_received

    def __aiter__(self) -> "StreamingResponse":
        return self

    async def __anext__(self) -> StreamChunk:
        if self._cancelled or self._finished:
            await self.aclose()
            raise StopAsyncIteration

        self._reader = asyncio.current_task()
        try:
            chunk = await self._iter.__anext__()
        except StopAsyncIteration:
            self._finished = True
            raise
        finally:
            self._reader = None

        if self._cancelled:
            # Delivered while cancel() was pending
            await self.aclose()
            raise StopAsyncIteration

        self._chunks_received += 1
        if chunk.is_terminal:
            self._finished = True
        return chunk

    async def cancel(self) -> None:
        """Stop the stream and release the transport connection.

        If another task is waiting for the next chunk, that task is
        cancelled so the pending read unwinds and the connection closes
        before this returns.
        """
        if self._cancelled:
            return
        self._cancelled = True

        reader = self._reader
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
            await asyncio.wait({reader})
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying iterator unless it is mid-step.

        A generator that is awaiting the network is unwound by ``cancel()``.
        """
        aclose: Any = getattr(self._iter, "aclose", None)
        if aclose is None or getattr(self._iter, "ag_running", False):
            return
        await aclose()
