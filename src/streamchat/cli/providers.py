"""Provider factory functions for the CLI.

Centralizes creation of the completion client, transcript store and
transcript from settings. Hides configuration details from commands.
"""

import logging

from rich.console import Console

from ..config import Settings
from ..errors import PersistenceError
from ..llm import CompletionClient, create_completion_client
from ..transcript import ChatTranscript, KeyValueStore, create_key_value_store

logger = logging.getLogger(__name__)

# Default console for output
_console = Console()


def get_client(settings: Settings, console: Console | None = None) -> CompletionClient:
    """Create the completion client.

    A missing API key is only a warning: the request itself will fail and
    the error is reported in the chat.
    """
    con = console or _console
    if not settings.api_key:
        con.print("[yellow]Warning: OPENAI_API_KEY not set, requests will be rejected[/yellow]")

    config: dict = {
        "api_key": settings.api_key,
        "model": settings.model,
        "base_url": settings.base_url,
    }
    if settings.provider in ("http", "sse"):
        config["timeout"] = None
    return create_completion_client(settings.provider, **config)


def get_store(settings: Settings) -> KeyValueStore:
    """Create the transcript store backend."""
    if settings.store == "sqlite":
        return create_key_value_store("sqlite", path=settings.db_path)
    return create_key_value_store(settings.store)


async def open_transcript(settings: Settings) -> ChatTranscript:
    """Connect the store and load the persisted transcript.

    If the store cannot be opened the transcript still works in memory.
    """
    store = get_store(settings)
    transcript = ChatTranscript(store, key=settings.transcript_key)
    try:
        await store.connect()
    except PersistenceError as e:
        logger.warning("Transcript store unavailable, history will not be kept: %s", e)
    await transcript.load()
    return transcript


async def close_transcript(transcript: ChatTranscript) -> None:
    """Write pending changes and release the store."""
    await transcript.flush()
    await transcript.store.disconnect()
