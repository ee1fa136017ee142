"""State of a single in-flight completion."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..llm.models import StreamingResponse
from ..transcript import Message


class StreamErrorPolicy(str, Enum):
    """What to do with partial assistant text when a stream fails."""

    KEEP_PARTIAL = "keep_partial"  # leave the degraded output in place
    ROLLBACK = "rollback"  # remove the entry, back to the last good state


class SessionState(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class StreamingSession:
    """Transient state of one prompt's completion.

    Created when a prompt is submitted; finished when the stream completes,
    fails, or is superseded by the next prompt.
    """

    prompt: str
    user_message: Message | None = None
    user_index: int | None = None
    accumulated_text: str = ""
    assistant_index: int | None = None
    state: SessionState = SessionState.PENDING
    error: Exception | None = None
    response: StreamingResponse | None = None
    task: "asyncio.Task[None] | None" = None
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def is_active(self) -> bool:
        return self.state in (SessionState.PENDING, SessionState.STREAMING)

    @property
    def elapsed(self) -> float:
        """Seconds since the prompt was submitted."""
        return (datetime.now() - self.started_at).total_seconds()

    def __repr__(self) -> str:
        return (
            f"StreamingSession(prompt={self.prompt[:30]!r}, state={self.state.value}, "
            f"chars={len(self.accumulated_text)})"
        )
