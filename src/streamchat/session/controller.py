"""Prompt-to-transcript orchestration.

Hides how a submitted prompt turns into transcript updates: validation,
superseding an in-flight stream, merging deltas into the live assistant
entry, and the failure policy. Everything runs on the event loop that
calls ``send_prompt``, so transcript writes never interleave.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from ..errors import StreamChatError
from ..llm.base import CompletionClient
from ..rendering import render_transcript
from ..transcript import ChatTranscript, Message, Role
from .models import SessionState, StreamErrorPolicy, StreamingSession

logger = logging.getLogger(__name__)

Renderer = Callable[[Iterable[Message]], Any]


class ChatSessionController:
    """Drives one conversation: prompt in, streamed answer into the transcript.

    At most one streaming session is active. Submitting a new prompt cancels
    the previous session first; its partial answer stays as it was.

    UI hooks:
        on_transcript_changed(rendered): called after every visible change
            with ``renderer(transcript.messages)``
        on_stream_error(reason): called when a stream ends with an error
    """

    def __init__(
        self,
        client: CompletionClient,
        transcript: ChatTranscript,
        *,
        model: str | None = None,
        error_policy: StreamErrorPolicy | str = StreamErrorPolicy.KEEP_PARTIAL,
        on_transcript_changed: Callable[[Any], None] | None = None,
        on_stream_error: Callable[[str], None] | None = None,
        renderer: Renderer = render_transcript,
    ) -> None:
        self._client = client
        self._transcript = transcript
        self._model = model
        self._error_policy = StreamErrorPolicy(error_policy)
        self.on_transcript_changed = on_transcript_changed
        self.on_stream_error = on_stream_error
        self._renderer = renderer
        self._session: StreamingSession | None = None
        self._last_session: StreamingSession | None = None

    @property
    def transcript(self) -> ChatTranscript:
        return self._transcript

    @property
    def error_policy(self) -> StreamErrorPolicy:
        return self._error_policy

    @property
    def active_session(self) -> StreamingSession | None:
        return self._session

    @property
    def last_session(self) -> StreamingSession | None:
        """The most recently started session, active or finished."""
        return self._last_session

    @property
    def is_streaming(self) -> bool:
        return self._session is not None and self._session.is_active

    def render(self) -> Any:
        """Render the current transcript with the configured renderer."""
        return self._renderer(self._transcript.messages)

    def last_response(self) -> str | None:
        """Content of the most recent assistant entry."""
        for message in reversed(self._transcript.messages):
            if message.role is Role.ASSISTANT:
                return message.content
        return None

    def send_prompt(self, text: str) -> StreamingSession | None:
        """Submit a prompt.

        Must be called from a running event loop. The user message is in the
        transcript when this returns; the answer streams in a background task.

        Returns:
            The new session, or None for an empty/whitespace prompt (no
            transcript change, no request)
        """
        prompt = text.strip()
        if not prompt:
            logger.debug("Ignoring empty prompt")
            return None

        loop = asyncio.get_running_loop()
        self._cancel_active()

        message = Message.user(prompt)
        index = self._transcript.append(message)
        self._emit_transcript()

        session = StreamingSession(prompt=prompt, user_message=message, user_index=index)
        self._session = session
        self._last_session = session
        session.task = loop.create_task(self._run(session))
        return session

    async def cancel(self) -> None:
        """Cancel the active session, if any, and wait for it to unwind."""
        session = self._cancel_active()
        if session is not None and session.task is not None:
            await asyncio.wait({session.task})

    async def clear(self) -> None:
        """Cancel streaming, then empty the transcript and re-render."""
        await self.cancel()
        self._transcript.clear()
        self._emit_transcript()

    async def wait(self) -> StreamingSession | None:
        """Wait for the active session to finish. Returns it."""
        session = self._session
        if session is not None and session.task is not None:
            await asyncio.wait({session.task})
        return session

    async def aclose(self) -> None:
        """Cancel streaming, close the client and flush the transcript."""
        await self.cancel()
        await self._client.close()
        await self._transcript.flush()

    def _cancel_active(self) -> StreamingSession | None:
        session = self._session
        if session is None or not session.is_active:
            return None

        session.state = SessionState.CANCELLED
        if session.task is not None and not session.task.done():
            session.task.cancel()
        self._session = None
        logger.warning("Cancelled streaming session after %d chars", len(session.accumulated_text))
        return session

    async def _run(self, session: StreamingSession) -> None:
        session.state = SessionState.STREAMING
        logger.info("Streaming answer for prompt %r", session.prompt[:50])

        try:
            session.response = await self._client.stream(session.prompt, model=self._model)
            async for chunk in session.response:
                if session.state is not SessionState.STREAMING or chunk.is_terminal:
                    break
                if not chunk.delta_text:
                    continue
                if self._transcript_moved(session):
                    session.state = SessionState.CANCELLED
                    logger.warning("Transcript changed while streaming; dropping the rest of the answer")
                    break
                self._apply_delta(session, chunk.delta_text)

        except asyncio.CancelledError:
            session.state = SessionState.CANCELLED
            raise
        except StreamChatError as e:
            self._fail(session, e)
            logger.error("Stream failed: %s", e)
        except Exception as e:
            self._fail(session, e)
            logger.exception("Unexpected error while streaming")
        else:
            if session.state is SessionState.STREAMING:
                session.state = SessionState.COMPLETED
                logger.info(
                    "Stream complete: %d chunk(s), %d chars in %.1fs",
                    session.response.chunks_received, len(session.accumulated_text), session.elapsed
                )
        finally:
            if session.response is not None:
                await session.response.aclose()
            if self._session is session:
                self._session = None

    def _transcript_moved(self, session: StreamingSession) -> bool:
        """True if the prompt or live answer is no longer where the session left it."""
        index = session.user_index
        if index is None or index >= len(self._transcript) or self._transcript[index] is not session.user_message:
            return True
        return (
            session.assistant_index is not None
            and session.assistant_index != self._transcript.trailing_assistant_index()
        )

    def _apply_delta(self, session: StreamingSession, delta: str) -> None:
        session.accumulated_text += delta
        if session.assistant_index is None:
            session.assistant_index = self._transcript.replace_trailing_assistant(
                session.accumulated_text
            )
        else:
            self._transcript.update_assistant(session.assistant_index, session.accumulated_text)
        self._emit_transcript()

    def _fail(self, session: StreamingSession, error: Exception) -> None:
        session.state = SessionState.FAILED
        session.error = error

        if (
            self._error_policy is StreamErrorPolicy.ROLLBACK
            and session.assistant_index is not None
            and not self._transcript_moved(session)
        ):
            self._transcript.discard_trailing_assistant()
            session.assistant_index = None
            self._emit_transcript()

        if self.on_stream_error is not None:
            self.on_stream_error(str(error))

    def _emit_transcript(self) -> None:
        if self.on_transcript_changed is not None:
            self.on_transcript_changed(self.render())
