"""aiosqlite database setup: persisted token history."""
import json
from typing import Sequence

import aiosqlite

from jwt_workbench.config import settings
from jwt_workbench.models.token import HistoryEntry
from jwt_workbench.services.history import HISTORY_CAPACITY

_db: aiosqlite.Connection | None = None


async def get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await aiosqlite.connect(settings.database_url)
        _db.row_factory = aiosqlite.Row
        await _create_tables(_db)
    return _db


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def _create_tables(db: aiosqlite.Connection) -> None:
    await db.execute("""
        CREATE TABLE IF NOT EXISTS token_history (
            position INTEGER PRIMARY KEY,
            entry_id TEXT NOT NULL,
            token TEXT NOT NULL,
            header TEXT NOT NULL DEFAULT '{}',
            payload TEXT NOT NULL DEFAULT '{}',
            timestamp TEXT NOT NULL
        )
    """)
    await db.commit()


async def fetch_history() -> list[dict]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM token_history ORDER BY position ASC LIMIT ?",
        (HISTORY_CAPACITY,),
    )
    rows = await cursor.fetchall()
    return [
        {
            "id": r["entry_id"],
            "token": r["token"],
            "header": json.loads(r["header"]),
            "payload": json.loads(r["payload"]),
            "timestamp": r["timestamp"],
        }
        for r in rows
    ]


async def replace_history(entries: Sequence[dict]) -> None:
    """Overwrite the stored history with entries (newest first)."""
    db = await get_db()
    await db.execute("DELETE FROM token_history")
    await db.executemany(
        """INSERT INTO token_history
           (position, entry_id, token, header, payload, timestamp)
           VALUES (?, ?, ?, ?, ?, ?)""",
        [
            (
                position,
                e["id"],
                e["token"],
                json.dumps(e["header"]),
                json.dumps(e["payload"]),
                e["timestamp"],
            )
            for position, e in enumerate(entries[:HISTORY_CAPACITY])
        ],
    )
    await db.commit()


async def delete_history() -> None:
    db = await get_db()
    await db.execute("DELETE FROM token_history")
    await db.commit()


class SqliteHistoryStore:
    """HistoryStore backed by the token_history table."""

    async def load(self) -> list[HistoryEntry]:
        return [HistoryEntry.from_dict(row) for row in await fetch_history()]

    async def save(self, entries: Sequence[HistoryEntry]) -> None:
        await replace_history([e.to_dict() for e in entries])

    async def clear(self) -> None:
        await delete_history()
