"""Unit tests for the chat session controller."""
import asyncio
import logging

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import Script, ScriptedClient, wait_for
from streamchat.errors import ProtocolError, TransportError
from streamchat.session import (
    ChatSessionController,
    SessionState,
    StreamErrorPolicy,
)
from streamchat.transcript import ChatTranscript, Message, Role
from streamchat.transcript.in_memory import InMemoryKeyValueStore


def _pairs(messages):
    return [(m.role, m.content) for m in messages]


def _controller(client, transcript, **kwargs) -> tuple[ChatSessionController, list]:
    """Controller whose renderer records (role, content) snapshots."""
    renders: list = []
    controller = ChatSessionController(
        client,
        transcript,
        renderer=_pairs,
        on_transcript_changed=renders.append,
        **kwargs
    )
    return controller, renders


class TestSendPrompt:
    """Tests for the normal prompt-to-answer flow."""

    @pytest.mark.asyncio
    async def test_hello_example(self, transcript):
        """Test that streamed deltas build one assistant entry."""
        client = ScriptedClient(Script(deltas=["Hi", " there", "!"]))
        controller, renders = _controller(client, transcript)

        session = controller.send_prompt("Hello")
        await controller.wait()

        assert transcript.pairs() == [(Role.USER, "Hello"), (Role.ASSISTANT, "Hi there!")]
        assert session.state is SessionState.COMPLETED
        assert session.accumulated_text == "Hi there!"
        assert client.prompts == ["Hello"]

    @pytest.mark.asyncio
    async def test_intermediate_renders(self, transcript):
        """Test that every delta re-renders the growing answer."""
        client = ScriptedClient(Script(deltas=["Hi", " there", "!"]))
        controller, renders = _controller(client, transcript)

        controller.send_prompt("Hello")
        await controller.wait()

        assert renders == [
            [(Role.USER, "Hello")],
            [(Role.USER, "Hello"), (Role.ASSISTANT, "Hi")],
            [(Role.USER, "Hello"), (Role.ASSISTANT, "Hi there")],
            [(Role.USER, "Hello"), (Role.ASSISTANT, "Hi there!")],
        ]

    @pytest.mark.asyncio
    async def test_user_message_appended_before_streaming(self, transcript):
        """Test that the prompt is in the transcript when send_prompt returns."""
        client = ScriptedClient(Script(deltas=["Hi"]))
        controller, _ = _controller(client, transcript)

        controller.send_prompt("  Hello  ")

        assert transcript.pairs() == [(Role.USER, "Hello")]
        assert controller.is_streaming
        await controller.wait()
        assert not controller.is_streaming

    @pytest.mark.asyncio
    async def test_terminal_chunk_ends_mutation(self, transcript):
        """Test that nothing after [DONE] reaches the transcript."""
        client = ScriptedClient(Script(deltas=["Hi"], after_terminal=["junk"]))
        controller, renders = _controller(client, transcript)

        controller.send_prompt("Hello")
        await controller.wait()

        assert transcript.pairs() == [(Role.USER, "Hello"), (Role.ASSISTANT, "Hi")]
        assert len(renders) == 2

    @pytest.mark.asyncio
    async def test_empty_deltas_do_not_create_entry(self, transcript):
        """Test that role-only chunks never add an empty assistant entry."""
        client = ScriptedClient(Script(deltas=["", ""]))
        controller, _ = _controller(client, transcript)

        controller.send_prompt("Hello")
        await controller.wait()

        assert transcript.pairs() == [(Role.USER, "Hello")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t "])
    async def test_empty_prompt_is_ignored(self, transcript, text):
        """Test that blank prompts change nothing and send nothing."""
        client = ScriptedClient()
        controller, renders = _controller(client, transcript)

        assert controller.send_prompt(text) is None

        assert len(transcript) == 0
        assert client.prompts == []
        assert renders == []
        assert controller.last_session is None

    @pytest.mark.asyncio
    async def test_model_override_is_passed(self, transcript):
        """Test that the configured model reaches the client."""
        client = ScriptedClient(Script(deltas=["ok"]))
        controller, _ = _controller(client, transcript, model="gpt-4o-mini")

        controller.send_prompt("Hello")
        await controller.wait()

        assert client.models == ["gpt-4o-mini"]

    @pytest.mark.asyncio
    async def test_second_prompt_after_completion(self, transcript):
        """Test that consecutive prompts each get their own answer."""
        client = ScriptedClient(Script(deltas=["one"]), Script(deltas=["two"]))
        controller, _ = _controller(client, transcript)

        controller.send_prompt("first")
        await controller.wait()
        controller.send_prompt("second")
        await controller.wait()

        assert transcript.pairs() == [
            (Role.USER, "first"),
            (Role.ASSISTANT, "one"),
            (Role.USER, "second"),
            (Role.ASSISTANT, "two"),
        ]
        assert controller.last_response() == "two"

    @pytest.mark.asyncio
    async def test_completion_logs_elapsed_time(self, transcript, caplog):
        """Test that the finished session reports how long it streamed."""
        client = ScriptedClient(Script(deltas=["Hi"]))
        controller, _ = _controller(client, transcript)

        with caplog.at_level(logging.INFO, logger="streamchat"):
            session = controller.send_prompt("Hello")
            await controller.wait()

        assert session.elapsed >= 0
        assert "Stream complete: 2 chunk(s), 2 chars in" in caplog.text

    @pytest.mark.asyncio
    async def test_answer_is_persisted(self, transcript, memory_store):
        """Test that the finished exchange is written to the store."""
        client = ScriptedClient(Script(deltas=["Hi there!"]))
        controller, _ = _controller(client, transcript)

        controller.send_prompt("Hello")
        await controller.wait()
        await controller.aclose()

        reloaded = ChatTranscript(memory_store)
        await reloaded.load()
        assert reloaded.pairs() == [(Role.USER, "Hello"), (Role.ASSISTANT, "Hi there!")]
        assert client.closed


class TestSupersede:
    """Tests for a new prompt cancelling the one in flight."""

    @pytest.mark.asyncio
    async def test_new_prompt_cancels_previous(self, transcript):
        """Test that A's partial answer stays and B gets a fresh entry."""
        client = ScriptedClient(
            Script(deltas=["partial"], hang=True),
            Script(deltas=["B answer"]),
        )
        controller, _ = _controller(client, transcript)

        first = controller.send_prompt("A")
        await wait_for(lambda: len(transcript) == 2)
        second = controller.send_prompt("B")
        await controller.wait()
        await asyncio.wait({first.task})

        assert transcript.pairs() == [
            (Role.USER, "A"),
            (Role.ASSISTANT, "partial"),
            (Role.USER, "B"),
            (Role.ASSISTANT, "B answer"),
        ]
        assert first.state is SessionState.CANCELLED
        assert second.state is SessionState.COMPLETED
        assert controller.last_session is second

    @pytest.mark.asyncio
    async def test_superseded_before_first_delta(self, transcript):
        """Test superseding a session that has produced nothing yet."""
        client = ScriptedClient(Script(hang=True), Script(deltas=["B answer"]))
        controller, _ = _controller(client, transcript)

        first = controller.send_prompt("A")
        await wait_for(lambda: len(client.prompts) == 1)
        controller.send_prompt("B")
        await controller.wait()
        await asyncio.wait({first.task})

        assert transcript.pairs() == [
            (Role.USER, "A"),
            (Role.USER, "B"),
            (Role.ASSISTANT, "B answer"),
        ]

    @pytest.mark.asyncio
    async def test_cancel(self, transcript):
        """Test that cancel() stops the stream and keeps partial text."""
        client = ScriptedClient(Script(deltas=["par"], hang=True))
        controller, _ = _controller(client, transcript)

        session = controller.send_prompt("Hello")
        await wait_for(lambda: len(transcript) == 2)
        await controller.cancel()

        assert session.state is SessionState.CANCELLED
        assert session.task.done()
        assert not controller.is_streaming
        assert transcript.pairs() == [(Role.USER, "Hello"), (Role.ASSISTANT, "par")]

    @pytest.mark.asyncio
    async def test_cancel_without_session(self, transcript):
        """Test that cancel() with nothing in flight is a no-op."""
        controller, _ = _controller(ScriptedClient(), transcript)
        await controller.cancel()
        assert controller.active_session is None


class TestClear:
    """Tests for clearing the transcript while an answer streams."""

    @pytest.mark.asyncio
    async def test_clear_through_controller(self, transcript):
        """Test that clear() stops the stream and renders an empty transcript."""
        client = ScriptedClient(Script(deltas=["par"], hang=True))
        controller, renders = _controller(client, transcript)

        session = controller.send_prompt("Hello")
        await wait_for(lambda: len(transcript) == 2)
        await controller.clear()

        assert len(transcript) == 0
        assert session.state is SessionState.CANCELLED
        assert not controller.is_streaming
        assert renders[-1] == []

    @pytest.mark.asyncio
    async def test_transcript_cleared_between_deltas(self, transcript):
        """Test that clearing the transcript directly ends the stream quietly."""
        client = ScriptedClient(Script(deltas=["Hi", " there"]))
        errors: list[str] = []
        controller, _ = _controller(client, transcript)
        controller.on_stream_error = errors.append

        def clear_on_answer(rendered):
            if any(role is Role.ASSISTANT for role, _ in rendered):
                transcript.clear()

        controller.on_transcript_changed = clear_on_answer

        session = controller.send_prompt("Hello")
        await controller.wait()

        assert len(transcript) == 0
        assert session.state is SessionState.CANCELLED
        assert session.accumulated_text == "Hi"
        assert errors == []

    @pytest.mark.asyncio
    async def test_transcript_cleared_before_first_delta(self, transcript):
        """Test that no orphan answer is added after the prompt was cleared."""
        client = ScriptedClient(Script(deltas=["Hi"]))
        errors: list[str] = []
        controller, _ = _controller(client, transcript)
        controller.on_stream_error = errors.append

        session = controller.send_prompt("Hello")
        transcript.clear()
        await controller.wait()

        assert len(transcript) == 0
        assert session.state is SessionState.CANCELLED
        assert errors == []

    @pytest.mark.asyncio
    async def test_cleared_and_retyped_prompt_is_not_reused(self, transcript):
        """Test that an equal prompt typed after a clear does not adopt the old stream."""
        client = ScriptedClient(Script(deltas=["Hi"]))
        controller, _ = _controller(client, transcript)

        session = controller.send_prompt("Hello")
        transcript.clear()
        transcript.append(Message.user("Hello"))
        await controller.wait()

        assert transcript.pairs() == [(Role.USER, "Hello")]
        assert session.state is SessionState.CANCELLED


class TestStreamErrors:
    """Tests for failure handling and the partial-text policy."""

    @pytest.mark.asyncio
    async def test_keep_partial(self, transcript):
        """Test that the default policy leaves partial text in place."""
        client = ScriptedClient(
            Script(deltas=["Par", "tial"], error=TransportError("connection reset"))
        )
        errors: list[str] = []
        controller, _ = _controller(client, transcript)
        controller.on_stream_error = errors.append

        session = controller.send_prompt("Hello")
        await controller.wait()

        assert controller.error_policy is StreamErrorPolicy.KEEP_PARTIAL
        assert transcript.pairs() == [(Role.USER, "Hello"), (Role.ASSISTANT, "Partial")]
        assert session.state is SessionState.FAILED
        assert isinstance(session.error, TransportError)
        assert errors == ["Network error: connection reset"]

    @pytest.mark.asyncio
    async def test_rollback(self, transcript):
        """Test that rollback removes the partial answer."""
        client = ScriptedClient(
            Script(deltas=["Par", "tial"], error=TransportError("connection reset"))
        )
        controller, renders = _controller(client, transcript, error_policy="rollback")

        controller.send_prompt("Hello")
        await controller.wait()

        assert transcript.pairs() == [(Role.USER, "Hello")]
        assert renders[-1] == [(Role.USER, "Hello")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("policy", list(StreamErrorPolicy))
    async def test_error_before_first_delta(self, transcript, policy):
        """Test that a rejected request leaves only the user message."""
        client = ScriptedClient(Script(error=ProtocolError(401, "invalid api key")))
        errors: list[str] = []
        controller, _ = _controller(client, transcript, error_policy=policy)
        controller.on_stream_error = errors.append

        session = controller.send_prompt("Hello")
        await controller.wait()

        assert transcript.pairs() == [(Role.USER, "Hello")]
        assert session.state is SessionState.FAILED
        assert errors == ["HTTP 401: invalid api key"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, transcript):
        """Test that a non-streamchat exception also ends the session cleanly."""
        client = ScriptedClient(Script(deltas=["x"], error=RuntimeError("boom")))
        errors: list[str] = []
        controller, _ = _controller(client, transcript)
        controller.on_stream_error = errors.append

        session = controller.send_prompt("Hello")
        await controller.wait()

        assert session.state is SessionState.FAILED
        assert errors == ["boom"]
        assert not controller.is_streaming

    def test_invalid_policy(self, transcript):
        """Test that unknown policy names are rejected."""
        with pytest.raises(ValueError):
            ChatSessionController(ScriptedClient(), transcript, error_policy="retry")


class TestAccumulation:
    """Property tests for delta accumulation."""

    @given(st.lists(st.text(max_size=8), max_size=8))
    @settings(deadline=None)
    def test_answer_is_concatenation_of_deltas(self, deltas: list[str]):
        """Property test: the final answer is exactly the joined deltas."""
        async def scenario() -> list:
            transcript = ChatTranscript(InMemoryKeyValueStore())
            controller = ChatSessionController(ScriptedClient(Script(deltas=deltas)), transcript)
            controller.send_prompt("q")
            await controller.wait()
            await controller.aclose()
            return transcript.pairs()

        pairs = asyncio.run(scenario())

        expected = "".join(deltas)
        if expected:
            assert pairs == [(Role.USER, "q"), (Role.ASSISTANT, expected)]
        else:
            assert pairs == [(Role.USER, "q")]
