"""
SQLite key/value persistence for the dashboard client.

Stores:
- kv_store: string values by key (organization cache, selected org, avatars)
"""

from __future__ import annotations

import os
from datetime import datetime, timezone

import aiosqlite

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class ClientState:
    """Async SQLite key/value store for the client."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self) -> None:
        os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(_SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def get(self, key: str) -> str | None:
        assert self._db
        cursor = await self._db.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        return row["value"] if row else None

    async def set(self, key: str, value: str) -> None:
        assert self._db
        now = datetime.now(timezone.utc).isoformat()
        await self._db.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET value=?, updated_at=?""",
            (key, value, now, value, now),
        )
        await self._db.commit()

    async def delete(self, *keys: str) -> None:
        assert self._db
        await self._db.executemany(
            "DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys]
        )
        await self._db.commit()

    async def keys(self) -> list[str]:
        assert self._db
        cursor = await self._db.execute("SELECT key FROM kv_store ORDER BY key")
        rows = await cursor.fetchall()
        return [r["key"] for r in rows]
