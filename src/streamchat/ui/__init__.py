"""Terminal UI module for streamchat.

Provides a Textual-based chat window on top of ChatSessionController.

Module structure (each module hides a design decision):
- config.py: UI constants
- styles.py: CSS styling (layout decisions)
- widgets.py: Transcript view, input bar, status line, log panel
- app.py: Application orchestration (user interaction flow)
"""

from .app import StreamChatApp, run_textual_tui
from .widgets import ChatInputBar, LogPanel, LogPanelHandler, StatusLine, TranscriptView

__all__ = [
    "ChatInputBar",
    "LogPanel",
    "LogPanelHandler",
    "StatusLine",
    "StreamChatApp",
    "TranscriptView",
    "run_textual_tui",
]
