"""Main Textual TUI application.

Wires the chat widgets to a ChatSessionController. The controller runs on
Textual's event loop, so every transcript update and re-render happens on
the UI thread.
"""

import asyncio
import contextlib
import logging

from rich.console import RenderableType
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from ..cli.providers import close_transcript, get_client, open_transcript
from ..config import Settings
from ..session import ChatSessionController, SessionState, StreamingSession
from .config import (
    APP_TITLE,
    ERROR_NOTIFY_TIMEOUT,
    INFO_NOTIFY_TIMEOUT,
    THEME_NAME,
    parse_log_level,
)
from .styles import APP_CSS
from .widgets import ChatInputBar, LogPanel, LogPanelHandler, StatusLine, TranscriptView

logger = logging.getLogger(__name__)


class StreamChatApp(App):
    """Textual chat window for a streaming completion API."""

    CSS = APP_CSS
    TITLE = APP_TITLE

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("escape", "cancel_stream", "Cancel"),
        Binding("ctrl+k", "clear_chat", "Clear Chat"),
        Binding("ctrl+r", "copy_last_response", "Copy Response"),
        Binding("ctrl+d", "toggle_log", "Log"),
    ]

    def __init__(self, settings: Settings, log_level: str | None = None) -> None:
        super().__init__()
        self._settings = settings
        self._log_level = log_level
        self._controller: ChatSessionController | None = None
        self._log_handler: LogPanelHandler | None = None

    @property
    def controller(self) -> ChatSessionController | None:
        return self._controller

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield TranscriptView(id="transcript")
        yield LogPanel(id="log-panel")
        yield StatusLine(id="status")
        yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Load history and build the controller."""
        self.theme = THEME_NAME
        self.sub_title = f"{self._settings.model} | {self._settings.store}"

        log_panel = self.query_one("#log-panel", LogPanel)
        self._log_handler = LogPanelHandler(log_panel, self)
        logging.getLogger("streamchat").addHandler(self._log_handler)
        if self._log_level is not None:
            log_panel.log_level = parse_log_level(self._log_level)
            log_panel.show()

        transcript = await open_transcript(self._settings)
        self._controller = ChatSessionController(
            get_client(self._settings),
            transcript,
            error_policy=self._settings.error_policy,
            on_transcript_changed=self._show_transcript,
            on_stream_error=self._show_stream_error,
        )
        self._show_transcript(self._controller.render())
        logger.info("Chat window ready with %d saved message(s)", len(transcript))

        status = self.query_one("#status", StatusLine)
        status.set_model(self._settings.model)
        status.set_state("Ready")
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def _show_transcript(self, rendered: RenderableType) -> None:
        count = len(self._controller.transcript) if self._controller else None
        self.query_one("#transcript", TranscriptView).show(rendered, count)

    def _show_stream_error(self, reason: str) -> None:
        self.query_one("#status", StatusLine).set_state(f"Error: {reason}", error=True)
        self.notify(reason, title="Request failed", severity="error", timeout=ERROR_NOTIFY_TIMEOUT)

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Handle user input submission."""
        if self._controller is None:
            return
        session = self._controller.send_prompt(event.value)
        if session is None:
            return

        self.query_one("#transcript", TranscriptView).set_streaming(True)
        self.query_one("#status", StatusLine).set_state("Streaming...")
        session.task.add_done_callback(lambda _task: self._on_session_done(session))

    def _on_session_done(self, session: StreamingSession) -> None:
        if self._controller is None or self._controller.is_streaming:
            # Superseded by a newer prompt; that session owns the status line
            return
        self.query_one("#transcript", TranscriptView).set_streaming(False)
        status = self.query_one("#status", StatusLine)
        if session.state is SessionState.COMPLETED:
            status.set_state("Ready")
        elif session.state is SessionState.CANCELLED:
            status.set_state("Cancelled")

    async def action_cancel_stream(self) -> None:
        """Stop the answer being streamed."""
        if self._controller is not None and self._controller.is_streaming:
            await self._controller.cancel()
            self.notify("Cancelled", severity="warning", timeout=INFO_NOTIFY_TIMEOUT)

    async def action_clear_chat(self) -> None:
        """Clear the conversation, including the saved copy."""
        if self._controller is None:
            return
        await self._controller.clear()
        self.notify("Chat cleared", timeout=INFO_NOTIFY_TIMEOUT)

    def action_toggle_log(self) -> None:
        """Toggle the log panel visibility."""
        is_visible = self.query_one("#log-panel", LogPanel).toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=INFO_NOTIFY_TIMEOUT)

    def action_copy_last_response(self) -> None:
        """Copy last assistant response to clipboard."""
        response = self._controller.last_response() if self._controller else None
        if response:
            self.copy_to_clipboard(response)
            self.notify("Response copied", timeout=INFO_NOTIFY_TIMEOUT)
        else:
            self.notify("No response to copy", severity="warning")

    async def close_resources(self) -> None:
        """Stop streaming, save the transcript and release resources."""
        if self._log_handler is not None:
            logging.getLogger("streamchat").removeHandler(self._log_handler)
            self._log_handler = None
        if self._controller is not None:
            await self._controller.aclose()
            await close_transcript(self._controller.transcript)
            self._controller = None


async def run_textual_tui(settings: Settings, log_level: str | None = None) -> None:
    """Run the Textual TUI.

    Args:
        settings: Client, store and logging configuration
        log_level: Show the log panel at this level (debug/info/warning/error), None to hide
    """
    app = StreamChatApp(settings, log_level=log_level)
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        with contextlib.suppress(RuntimeError):
            await app.close_resources()
