"""SQLite event store (aiosqlite). Used for local runs and tests."""

import asyncio
import json
import logging
from pathlib import Path

import aiosqlite

from blocklistener.events.models import Event, FailedEvent

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id          TEXT    NOT NULL,
    block_number      INTEGER NOT NULL,
    transaction_hash  TEXT    NOT NULL,
    app_id            TEXT    NOT NULL,
    success           INTEGER NOT NULL DEFAULT 0,
    tries             INTEGER NOT NULL DEFAULT 1,
    last_try_at       REAL    NOT NULL,
    event_data        TEXT    NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_events_natural_key
    ON events(app_id, transaction_hash, block_number, event_id);
CREATE INDEX IF NOT EXISTS idx_events_app_block ON events(app_id, block_number);
CREATE INDEX IF NOT EXISTS idx_events_failed ON events(app_id, success, tries, last_try_at);
"""


def _row_to_failed(row: tuple) -> FailedEvent:
    """Convert (id, tries, event_data) row to FailedEvent."""
    data = json.loads(row[2]) if isinstance(row[2], str) else row[2]
    return FailedEvent(row_id=row[0], tries=row[1], event=Event.model_validate(data))


class SqliteEventStore:
    """SQLite-backed event store. One connection per instance."""

    def __init__(self, db_path: Path, busy_timeout: int = 5000) -> None:
        self._db_path = db_path
        self._busy_timeout = busy_timeout
        self._conn: aiosqlite.Connection | None = None
        self._conn_lock = asyncio.Lock()

    async def _ensure_conn(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn
        # Both loops may race here after a failed startup connect
        async with self._conn_lock:
            if self._conn is None:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(str(self._db_path))
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA synchronous=NORMAL")
                await conn.execute(f"PRAGMA busy_timeout={self._busy_timeout}")
                await conn.executescript(_SCHEMA)
                await conn.commit()
                self._conn = conn
        return self._conn

    async def connect(self) -> None:
        await self._ensure_conn()

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def reconnect(self) -> None:
        await self.close()
        await self._ensure_conn()
        logger.info("Event store reconnected: %s", self._db_path)

    async def latest_block(self, app_id: str) -> int:
        conn = await self._ensure_conn()
        cursor = await conn.execute(
            "SELECT MAX(block_number) FROM events WHERE app_id = ?",
            (app_id,),
        )
        row = await cursor.fetchone()
        return int(row[0]) if row and row[0] is not None else 0

    async def was_handled(self, app_id: str, event: Event) -> bool:
        conn = await self._ensure_conn()
        cursor = await conn.execute(
            """
            SELECT id FROM events
            WHERE transaction_hash = ? AND block_number = ? AND event_id = ?
              AND app_id = ? AND success = 1
            LIMIT 1
            """,
            (event.transaction_hash, event.block_number, event.id, app_id),
        )
        return await cursor.fetchone() is not None

    async def insert(
        self, app_id: str, event: Event, success: bool, tried_at: float
    ) -> None:
        """Insert a first-attempt row. A natural-key collision counts as one more try."""
        conn = await self._ensure_conn()
        await conn.execute(
            """
            INSERT INTO events (event_id, block_number, transaction_hash, app_id,
                success, tries, last_try_at, event_data)
            VALUES (?, ?, ?, ?, ?, 1, ?, ?)
            ON CONFLICT (app_id, transaction_hash, block_number, event_id) DO UPDATE SET
                success = events.success OR excluded.success,
                tries = events.tries + 1,
                last_try_at = excluded.last_try_at
            """,
            (
                event.id,
                event.block_number,
                event.transaction_hash,
                app_id,
                int(success),
                tried_at,
                json.dumps(event.payload(), ensure_ascii=False),
            ),
        )
        await conn.commit()

    async def update_outcome(
        self, row_id: int, success: bool, tries: int, tried_at: float
    ) -> None:
        conn = await self._ensure_conn()
        await conn.execute(
            "UPDATE events SET success = ?, tries = ?, last_try_at = ? WHERE id = ?",
            (int(success), tries, tried_at, row_id),
        )
        await conn.commit()

    async def fetch_failed(
        self, app_id: str, min_tries: int, max_tries: int, tried_before: float
    ) -> list[FailedEvent]:
        conn = await self._ensure_conn()
        cursor = await conn.execute(
            """
            SELECT id, tries, event_data
            FROM events
            WHERE success = 0 AND app_id = ? AND tries >= ? AND tries <= ?
              AND last_try_at <= ?
            ORDER BY id
            """,
            (app_id, min_tries, max_tries, tried_before),
        )
        rows = await cursor.fetchall()
        return [_row_to_failed(row) for row in rows]
