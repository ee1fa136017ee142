"""Pytest configuration and shared fixtures."""
import asyncio
import json
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field

import httpx
import pytest

from streamchat.llm import CompletionClient, StreamChunk, StreamingResponse
from streamchat.transcript import ChatTranscript
from streamchat.transcript.in_memory import InMemoryKeyValueStore


def sse_line(delta: str | None = None, role: str | None = None) -> str:
    """Build one ``data:`` line the way the completions API sends it."""
    payload: dict = {}
    if role is not None:
        payload["role"] = role
    if delta is not None:
        payload["content"] = delta
    body = {"id": "chatcmpl-1", "choices": [{"index": 0, "delta": payload}]}
    return StreamChunk.DATA_PREFIX + json.dumps(body, ensure_ascii=False)


def sse_body(*deltas: str, done: bool = True) -> bytes:
    """Full response body for the given deltas."""
    lines = [sse_line(role="assistant")]
    lines += [sse_line(delta) for delta in deltas]
    if done:
        lines.append(StreamChunk.DATA_PREFIX + StreamChunk.DONE_SENTINEL)
    return "".join(line + "\n\n" for line in lines).encode("utf-8")


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate()`` holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0)


def streaming_transport(
    blocks: Iterable[bytes],
    status_code: int = 200,
    requests: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    """Mock transport delivering the body in the given byte blocks."""
    blocks = list(blocks)

    async def body() -> AsyncIterator[bytes]:
        for block in blocks:
            await asyncio.sleep(0)
            yield block

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(
            status_code,
            headers={"Content-Type": "text/event-stream"},
            content=body(),
        )

    return httpx.MockTransport(handler)


@dataclass
class Script:
    """What one scripted stream does."""

    deltas: list[str] = field(default_factory=list)
    error: Exception | None = None
    hang: bool = False
    terminal: bool = True
    after_terminal: list[str] = field(default_factory=list)


class ScriptedClient(CompletionClient):
    """Completion client replaying scripts, one per ``stream`` call."""

    def __init__(self, *scripts: Script):
        self._scripts = list(scripts)
        self.prompts: list[str] = []
        self.models: list[str | None] = []
        self.responses: list[StreamingResponse] = []
        self.closed = False

    @property
    def model(self) -> str:
        return "test-model"

    async def stream(self, prompt: str, model: str | None = None) -> StreamingResponse:
        self.prompts.append(prompt)
        self.models.append(model)
        script = self._scripts.pop(0) if self._scripts else Script()
        response = StreamingResponse(self._generate(script))
        self.responses.append(response)
        return response

    async def _generate(self, script: Script) -> AsyncIterator[StreamChunk]:
        for delta in script.deltas:
            await asyncio.sleep(0)
            yield StreamChunk(raw_line=sse_line(delta), delta_text=delta)
        if script.hang:
            await asyncio.Event().wait()
        if script.error is not None:
            raise script.error
        if script.terminal:
            yield StreamChunk.terminal()
        for delta in script.after_terminal:
            yield StreamChunk(raw_line=sse_line(delta), delta_text=delta)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def memory_store():
    """Return an empty in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def transcript(memory_store):
    """Return an empty transcript backed by the in-memory store."""
    return ChatTranscript(memory_store)
