"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
Single column: transcript on top, optional log panel, status line and
input bar at the bottom.
"""

APP_CSS = """
Screen {
    layout: vertical;
    background: $background;
}

/* ============================================
   Transcript Panel - Primary Focus Area
   ============================================ */
#transcript {
    height: 1fr;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-title-align: left;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus-within {
        border: round $primary-lighten-1;
    }

    /* Streaming state */
    &.streaming {
        border: round $warning;
        border-title-color: $warning;
    }
}

#transcript-content {
    width: 100%;
    height: auto;
}

/* ============================================
   Log Panel
   ============================================ */
#log-panel {
    height: auto;
    min-height: 6;
    max-height: 12;
    background: $panel;
    border: round $warning 60%;
    border-title-color: $warning;
    border-title-style: bold;
    border-title-align: left;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    overflow-y: scroll;
    scrollbar-gutter: stable;
}

/* ============================================
   Status line
   ============================================ */
#status {
    height: 1;
    padding: 0 2;
    background: $surface;
    color: $text-muted;

    &.error {
        color: $error;
    }
}

/* ============================================
   Chat Input Bar - Text Entry + Send
   ============================================ */
ChatInputBar {
    height: auto;
    border: round $primary 60%;
    background: $panel;

    &:focus-within {
        border: round $primary;
    }
}

#chat-input {
    width: 1fr;
    height: auto;
    min-height: 1;
    border: none;
    padding: 0 1;
    background: transparent;
}

#send-btn {
    width: 10;
    min-width: 8;
    margin: 0 0 0 1;
    border: tall $success;
    background: $success;
    color: $background;
    text-style: bold;

    &:hover {
        background: $success-lighten-1;
        border: tall $success-lighten-1;
    }
}
"""
