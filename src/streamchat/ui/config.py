"""UI configuration constants.

Centralizes magic numbers and configuration values for the UI module.
"""

import logging

APP_TITLE = "streamchat"
THEME_NAME = "catppuccin-mocha"  # built into Textual

# Input box
INPUT_PLACEHOLDER = "Type your message..."
INPUT_MAX_LINES = 8  # Box grows with content up to this many lines

# Log panel configuration
LOG_TIMESTAMP_FORMAT = "%H:%M:%S"
LOG_MAX_MESSAGE_LENGTH = 500  # Characters before truncating log messages
LOG_LEVEL_COLORS = {
    logging.DEBUG: "dim white",
    logging.INFO: "cyan",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}

# Notifications
ERROR_NOTIFY_TIMEOUT = 6
INFO_NOTIFY_TIMEOUT = 2


def parse_log_level(level_str: str | None) -> int:
    """Convert a level name to a logging level. Returns DEBUG if invalid."""
    if not level_str:
        return logging.DEBUG
    level = logging.getLevelName(level_str.upper())
    return level if isinstance(level, int) else logging.DEBUG
