"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Transcript display and scrolling
- Enter-to-send input handling
- Log panel rendering and level filtering
- Status line formatting
"""

import logging
import threading
from datetime import datetime
from typing import Any

from rich.console import RenderableType
from rich.markup import escape
from textual.app import App
from textual.containers import Horizontal, VerticalScroll
from textual.message import Message
from textual.widgets import Button, RichLog, Static, TextArea

from .config import (
    INPUT_MAX_LINES,
    INPUT_PLACEHOLDER,
    LOG_LEVEL_COLORS,
    LOG_MAX_MESSAGE_LENGTH,
    LOG_TIMESTAMP_FORMAT,
)


class TranscriptView(VerticalScroll):
    """Scrollable view of the rendered transcript."""

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "No messages"
    ALLOW_SELECT = True

    def compose(self):
        yield Static("", id="transcript-content")

    def show(self, rendered: RenderableType, message_count: int | None = None) -> None:
        """Replace the displayed content and keep the newest text in view."""
        self.query_one("#transcript-content", Static).update(rendered)
        if message_count is not None:
            self.border_subtitle = f"{message_count} messages" if message_count else "No messages"
        self.scroll_end(animate=False)

    def set_streaming(self, streaming: bool) -> None:
        self.set_class(streaming, "streaming")


class ChatInput(TextArea):
    """Multi-line input where Enter sends and Shift+Enter / Ctrl+J add a line.

    Most terminals report Shift+Enter as plain Enter; Ctrl+J always works.
    """

    class Submitted(Message):
        """Posted when the user presses Enter."""

    def __init__(self, *args, **kwargs) -> None:
        kwargs.setdefault("show_line_numbers", False)
        kwargs.setdefault("placeholder", INPUT_PLACEHOLDER)
        super().__init__(*args, **kwargs)

    def on_mount(self) -> None:
        self.cursor_blink = False
        self.highlight_cursor_line = False
        self.styles.max_height = INPUT_MAX_LINES

    async def _on_key(self, event) -> None:
        if event.key == "enter":
            event.prevent_default()
            event.stop()
            self.post_message(self.Submitted())
        elif event.key in ("shift+enter", "ctrl+j"):
            event.prevent_default()
            event.stop()
            self.insert("\n")
        else:
            await super()._on_key(event)


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button."""

    class Submitted(Message):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def compose(self):
        yield ChatInput(id="chat-input")
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Send message (Enter)"
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_chat_input_submitted(self, event: ChatInput.Submitted) -> None:
        event.stop()
        self._submit()

    def _submit(self) -> None:
        text_area = self.query_one("#chat-input", ChatInput)
        value = text_area.text
        if value.strip():
            text_area.text = ""
            self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", ChatInput).focus()


class StatusLine(Static):
    """One-line summary: model, session state and last error."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._model = ""
        self._state = "Ready"

    def set_model(self, model: str) -> None:
        self._model = model
        self._refresh_text()

    def set_state(self, state: str, error: bool = False) -> None:
        self._state = state
        self.set_class(error, "error")
        self._refresh_text()

    def _refresh_text(self) -> None:
        parts = [p for p in (self._model, self._state) if p]
        self.update(" | ".join(parts))


class LogPanel(RichLog):
    """Log panel showing records from the ``streamchat`` logger.

    Hidden by default, shown with --log-level or toggled with Ctrl+D.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Hidden"

    def __init__(self, *args, log_level: int = logging.DEBUG, **kwargs) -> None:
        super().__init__(
            *args,
            markup=True,
            highlight=False,
            auto_scroll=True,
            wrap=False,
            **kwargs
        )
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {logging.getLevelName(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        self.display = False

    def write_record(self, record: logging.LogRecord) -> None:
        """Add a log record if it meets the current level threshold."""
        if record.levelno < self._log_level:
            return

        timestamp = datetime.fromtimestamp(record.created).strftime(LOG_TIMESTAMP_FORMAT)
        message = record.getMessage()
        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."
        component = record.name.rsplit(".", 1)[-1]
        color = LOG_LEVEL_COLORS.get(record.levelno, "white")

        self.write(
            f"[dim]{timestamp}[/] "
            f"[{color}]{record.levelname:<7}[/] "
            f"[magenta]\\[{component}][/] {escape(message)}"
        )

    def show(self) -> None:
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        self.display = False
        self._update_subtitle()

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
            return False
        self.show()
        return True


class LogPanelHandler(logging.Handler):
    """Route log records into a LogPanel.

    Records from other threads are handed to the app's thread first.
    """

    def __init__(self, panel: LogPanel, app: App, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.panel = panel
        self.app = app

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._call_thread_safe(self.panel.write_record, record)
        except Exception:
            self.handleError(record)

    def _call_thread_safe(self, func: Any, *args: Any) -> None:
        if self.app._thread_id != threading.get_ident():
            self.app.call_from_thread(func, *args)
        else:
            func(*args)
