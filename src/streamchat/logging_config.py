"""Logging setup shared by the CLI and the TUI."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: int | str = logging.WARNING,
    log_file: str | Path | None = None,
    console: bool = True,
) -> logging.Logger:
    """Configure the ``streamchat`` logger once.

    Args:
        level: Log level as int or name ("debug", "info", ...)
        log_file: Optional file that receives every record at ``level``
        console: Attach a RichHandler writing to stderr. The TUI disables
            this because the terminal belongs to Textual.

    Returns:
        The package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logger = logging.getLogger("streamchat")
    logger.setLevel(level)

    if not logger.handlers:
        if console:
            console_handler = RichHandler(
                console=Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
            )
            console_handler.setLevel(level)
            logger.addHandler(console_handler)

        if log_file:
            path = Path(log_file).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path)
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)

    return logger
