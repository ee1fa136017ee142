"""SQLite key-value backend.

Provides persistent transcript storage in a single SQLite file.
Uses aiosqlite for async access.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite

from ..errors import PersistenceError
from .base import KeyValueStore


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-backed key-value store.

    One row per key in a ``kv_store`` table; values are opaque text.
    """

    def __init__(self, path: str | Path = "./streamchat.db"):
        self._db_path = Path(path).expanduser()
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database file and create the schema."""
        if self._connection is not None:
            return
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self._db_path)
            await self._connection.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._connection.commit()
        except (OSError, aiosqlite.Error) as e:
            raise PersistenceError(f"cannot open {self._db_path}: {e}") from e

    async def disconnect(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise PersistenceError(f"store at {self._db_path} is not connected")
        return self._connection

    async def get(self, key: str) -> str | None:
        connection = self._require_connection()
        try:
            async with connection.execute(
                "SELECT value FROM kv_store WHERE key = ?",
                (key,)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise PersistenceError(f"read of {key!r} failed: {e}") from e

        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        connection = self._require_connection()
        try:
            await connection.execute("""
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (key, value, datetime.now().isoformat()))
            await connection.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"write of {key!r} failed: {e}") from e

    async def delete(self, key: str) -> None:
        connection = self._require_connection()
        try:
            await connection.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await connection.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"delete of {key!r} failed: {e}") from e

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
