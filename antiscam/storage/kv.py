"""Key-value stores backing persisted state."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import aiosqlite

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """
    Async key-value store holding JSON-serializable values.

    Each get/set is atomic per key. Nothing spans multiple keys, so callers
    must tolerate brief windows where related keys disagree.
    """

    async def connect(self) -> None:
        """Open underlying resources (no-op by default)."""

    async def close(self) -> None:
        """Release underlying resources (no-op by default)."""

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value or default if absent."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key if present."""


class MemoryStore(KeyValueStore):
    """In-process store. Values are copied through JSON like a persistent store would."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        raw = json.dumps(value)
        async with self._lock:
            self._data[key] = raw

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)


class SqliteStore(KeyValueStore):
    """Async SQLite key-value table."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self):
        """Establish database connection and create the table."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        # Best-effort because some SQLite builds/settings may reject these pragmas.
        try:
            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA synchronous=NORMAL")
            await self._connection.execute("PRAGMA busy_timeout=5000")
            await self._connection.commit()
        except aiosqlite.Error as exc:
            logger.debug(f"SQLite pragmas rejected: {exc}")
        await self._create_tables()

    async def close(self):
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _create_tables(self):
        async with self._lock:
            await self._connection.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            await self._connection.commit()

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SqliteStore is not connected; call connect() first")
        return self._connection

    async def get(self, key: str, default: Any = None) -> Any:
        conn = self._require_connection()
        async with self._lock:
            cursor = await conn.execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = await cursor.fetchone()
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except ValueError:
            logger.warning(f"Discarding corrupt value stored under {key}")
            return default

    async def set(self, key: str, value: Any) -> None:
        conn = self._require_connection()
        raw = json.dumps(value)
        async with self._lock:
            await conn.execute(
                """
                INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                """,
                (key, raw),
            )
            await conn.commit()

    async def delete(self, key: str) -> None:
        conn = self._require_connection()
        async with self._lock:
            await conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            await conn.commit()
