"""PostgreSQL event store (asyncpg pool). The production store."""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import asyncpg  # type: ignore[import-untyped]

from blocklistener.events.models import Event, FailedEvent

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id                BIGSERIAL PRIMARY KEY,
    event_id          TEXT        NOT NULL,
    block_number      BIGINT      NOT NULL,
    transaction_hash  TEXT        NOT NULL,
    app_id            TEXT        NOT NULL,
    success           BOOLEAN     NOT NULL DEFAULT FALSE,
    tries             INTEGER     NOT NULL DEFAULT 1,
    last_try_at       TIMESTAMPTZ NOT NULL DEFAULT now(),
    event_data        JSONB       NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_events_natural_key
    ON events(app_id, transaction_hash, block_number, event_id);
CREATE INDEX IF NOT EXISTS idx_events_app_block ON events(app_id, block_number DESC);
CREATE INDEX IF NOT EXISTS idx_events_failed
    ON events(app_id, tries, last_try_at) WHERE success = FALSE;
"""


@dataclass(frozen=True)
class DbConfig:
    """Connection parameters for the events database."""

    host: str
    port: int
    user: str
    password: str
    database: str


def _to_datetime(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _record_to_failed(record: "asyncpg.Record") -> FailedEvent:
    data = record["event_data"]
    if isinstance(data, str):
        data = json.loads(data)
    return FailedEvent(
        row_id=record["id"],
        tries=record["tries"],
        event=Event.model_validate(data),
    )


class PostgresEventStore:
    """asyncpg-backed event store. The pool is created lazily and rebuilt on reconnect()."""

    def __init__(
        self,
        db_config: DbConfig,
        *,
        min_pool_size: int = 1,
        max_pool_size: int = 4,
        command_timeout_seconds: float = 30.0,
    ) -> None:
        if min_pool_size <= 0:
            raise ValueError("min_pool_size must be > 0")
        if max_pool_size < min_pool_size:
            raise ValueError("max_pool_size must be >= min_pool_size")
        self._db_config = db_config
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._command_timeout_seconds = command_timeout_seconds
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def _ensure_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                cfg = self._db_config
                pool = await asyncpg.create_pool(
                    host=cfg.host,
                    port=cfg.port,
                    user=cfg.user,
                    password=cfg.password,
                    database=cfg.database,
                    min_size=self._min_pool_size,
                    max_size=self._max_pool_size,
                    command_timeout=self._command_timeout_seconds,
                )
                try:
                    await pool.execute(_SCHEMA)
                except Exception:
                    await pool.close()
                    raise
                self._pool = pool
        return self._pool

    async def connect(self) -> None:
        await self._ensure_pool()

    async def close(self) -> None:
        async with self._pool_lock:
            pool_to_close = self._pool
            self._pool = None
        if pool_to_close is not None:
            await pool_to_close.close()

    async def reconnect(self) -> None:
        await self.close()
        await self._ensure_pool()
        cfg = self._db_config
        logger.info("Event store reconnected: %s:%s/%s", cfg.host, cfg.port, cfg.database)

    async def latest_block(self, app_id: str) -> int:
        pool = await self._ensure_pool()
        value = await pool.fetchval(
            "SELECT MAX(block_number) FROM events WHERE app_id = $1",
            app_id,
        )
        return int(value) if value is not None else 0

    async def was_handled(self, app_id: str, event: Event) -> bool:
        pool = await self._ensure_pool()
        row_id = await pool.fetchval(
            """
            SELECT id FROM events
            WHERE transaction_hash = $1 AND block_number = $2 AND event_id = $3
              AND app_id = $4 AND success = TRUE
            LIMIT 1
            """,
            event.transaction_hash,
            event.block_number,
            event.id,
            app_id,
        )
        return row_id is not None

    async def insert(
        self, app_id: str, event: Event, success: bool, tried_at: float
    ) -> None:
        """Insert a first-attempt row. A natural-key collision counts as one more try."""
        pool = await self._ensure_pool()
        await pool.execute(
            """
            INSERT INTO events (event_id, block_number, transaction_hash, app_id,
                success, tries, last_try_at, event_data)
            VALUES ($1, $2, $3, $4, $5, 1, $6, $7::jsonb)
            ON CONFLICT (app_id, transaction_hash, block_number, event_id) DO UPDATE SET
                success = events.success OR EXCLUDED.success,
                tries = events.tries + 1,
                last_try_at = EXCLUDED.last_try_at
            """,
            event.id,
            event.block_number,
            event.transaction_hash,
            app_id,
            success,
            _to_datetime(tried_at),
            json.dumps(event.payload(), ensure_ascii=False),
        )

    async def update_outcome(
        self, row_id: int, success: bool, tries: int, tried_at: float
    ) -> None:
        pool = await self._ensure_pool()
        await pool.execute(
            "UPDATE events SET success = $2, tries = $3, last_try_at = $4 WHERE id = $1",
            row_id,
            success,
            tries,
            _to_datetime(tried_at),
        )

    async def fetch_failed(
        self, app_id: str, min_tries: int, max_tries: int, tried_before: float
    ) -> list[FailedEvent]:
        pool = await self._ensure_pool()
        records = await pool.fetch(
            """
            SELECT id, tries, event_data
            FROM events
            WHERE success = FALSE AND app_id = $1 AND tries >= $2 AND tries <= $3
              AND last_try_at <= $4
            ORDER BY id
            """,
            app_id,
            min_tries,
            max_tries,
            _to_datetime(tried_before),
        )
        return [_record_to_failed(r) for r in records]
