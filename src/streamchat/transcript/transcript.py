"""Ordered, persisted log of chat messages.

The transcript is the single source of truth for what the UI shows. Each
mutation is applied in memory at once and then written to the key-value
store in the background; a failed write is logged and picked up again by
the next mutation.
"""

import asyncio
import logging
from collections.abc import Callable, Iterator

from pydantic import ValidationError

from ..config import TRANSCRIPT_KEY
from ..errors import PersistenceError
from .base import KeyValueStore
from .models import Message, Role, TranscriptSnapshot

logger = logging.getLogger(__name__)

TranscriptListener = Callable[["ChatTranscript"], None]


class ChatTranscript:
    """Append-only message log with a replaceable trailing assistant entry.

    Entries are addressed by index, never by scanning rendered text, so a
    user message that happens to contain "Assistant:" cannot confuse the
    lookup of the live entry.

    Not safe for concurrent writers: all mutations must come from the
    event loop that owns the session controller.
    """

    def __init__(self, store: KeyValueStore, key: str = TRANSCRIPT_KEY):
        self._store = store
        self._key = key
        self._messages: list[Message] = []
        self._listeners: list[TranscriptListener] = []
        self._save_task: asyncio.Task | None = None
        self._dirty = False

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def key(self) -> str:
        return self._key

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def has_unsaved_changes(self) -> bool:
        return self._dirty

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def pairs(self) -> list[tuple[Role, str]]:
        """(role, content) for every entry, in order."""
        return [(m.role, m.content) for m in self._messages]

    def trailing_assistant_index(self) -> int | None:
        """Index of the assistant entry after the last user entry, if any."""
        for index in range(len(self._messages) - 1, -1, -1):
            role = self._messages[index].role
            if role == Role.USER:
                return None
            if role == Role.ASSISTANT:
                return index
        return None

    def append(self, message: Message) -> int:
        """Add a message at the end and persist.

        Returns:
            Index of the new entry
        """
        self._messages.append(message)
        self._changed()
        return len(self._messages) - 1

    def replace_trailing_assistant(self, content: str) -> int:
        """Set the content of the live assistant entry, creating it if needed.

        Returns:
            Index of the (possibly new) trailing assistant entry
        """
        index = self.trailing_assistant_index()
        if index is None:
            return self.append(Message.assistant(content))

        self.update_assistant(index, content)
        return index

    def update_assistant(self, index: int, content: str) -> None:
        """Rewrite the assistant entry at ``index``.

        Raises:
            ValueError: If ``index`` is not the trailing assistant entry. Once
                a newer user message exists, earlier answers are frozen.
        """
        if index != self.trailing_assistant_index():
            raise ValueError(f"Message {index} is not the live assistant entry")
        self._messages[index] = self._messages[index].model_copy(update={"content": content})
        self._changed()

    def discard_trailing_assistant(self) -> bool:
        """Remove the live assistant entry. Returns False if there was none."""
        index = self.trailing_assistant_index()
        if index is None:
            return False
        del self._messages[index]
        self._changed()
        return True

    def clear(self) -> None:
        """Drop every message and persist the empty transcript."""
        self._messages.clear()
        self._changed()

    def subscribe(self, listener: TranscriptListener) -> Callable[[], None]:
        """Call ``listener(transcript)`` after every mutation and load.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def load(self) -> bool:
        """Replace the in-memory log with the persisted one.

        A missing key gives an empty transcript. An unreadable store or blob
        is logged and also leaves an empty, usable transcript.

        Returns:
            True if the store was read successfully
        """
        try:
            blob = await self._store.get(self._key)
        except (PersistenceError, OSError) as e:
            logger.warning("Could not load transcript %r: %s", self._key, e)
            return False

        if blob is None:
            self._messages = []
        else:
            try:
                snapshot = TranscriptSnapshot.from_blob(blob)
            except ValidationError as e:
                logger.warning(
                    "Discarding unreadable transcript %r (%d error(s))",
                    self._key, e.error_count()
                )
                return False
            self._messages = list(snapshot.messages)

        logger.debug("Loaded %d message(s) from %s store", len(self._messages), self._store.backend_type)
        self._notify()
        return True

    async def save(self) -> bool:
        """Write the full transcript to the store.

        Returns:
            False if the write failed; the failure is logged, not raised
        """
        self._dirty = False
        blob = TranscriptSnapshot(messages=list(self._messages)).to_blob()
        try:
            await self._store.set(self._key, blob)
        except (PersistenceError, OSError) as e:
            self._dirty = True
            logger.warning("Could not save transcript %r: %s", self._key, e)
            return False
        return True

    async def flush(self) -> None:
        """Wait for background writes, then write any change they missed."""
        if self._save_task is not None and not self._save_task.done():
            await self._save_task
        if self._dirty:
            await self.save()

    def _changed(self) -> None:
        self._notify()
        self._schedule_save()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _schedule_save(self) -> None:
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the next save() or mutation inside a loop writes it
            return
        if self._save_task is None or self._save_task.done():
            self._save_task = loop.create_task(self._save_pending())

    async def _save_pending(self) -> None:
        # One writer at a time; later mutations are folded into the next write
        while self._dirty:
            if not await self.save():
                break
