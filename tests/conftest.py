"""Shared fixtures: SQLite store, identity, recording reporter, fake listener."""

import json
import time
from pathlib import Path
from typing import Any

import pytest

from blocklistener.events import Event, ListenerIdentity, SqliteEventStore


def make_event(event_id: str, block: int, tx: str | None = None, **extra: Any) -> dict[str, Any]:
    """Raw event row as a subgraph would return it (camelCase, block as string)."""
    return {
        "id": event_id,
        "blockNumber": str(block),
        "transactionHash": tx or f"0x{event_id}",
        **extra,
    }


class RecordingReporter:
    """ErrorReporter that keeps everything in memory."""

    def __init__(self) -> None:
        self.reported_errors: list[dict[str, Any]] = []
        self.captured_messages: list[dict[str, Any]] = []

    def report(self, error: BaseException, context: dict | None = None, level: str = "error") -> None:
        self.reported_errors.append({"error": error, "context": context or {}, "level": level})

    def capture_message(self, message: str, level: str = "error", context: dict | None = None) -> None:
        self.captured_messages.append({"message": message, "level": level, "context": context or {}})


class FakeListener:
    """Listener over an in-memory event list; handle() fails for ids in fail_ids."""

    def __init__(self, events: list[dict[str, Any]] | None = None, fail_ids: set[str] | None = None) -> None:
        self.events = list(events or [])
        self.fail_ids = set(fail_ids or ())
        self.fetch_calls: list[int] = []
        self.handled: list[str] = []

    async def fetch(self, from_block: int) -> list[dict[str, Any]]:
        self.fetch_calls.append(from_block)
        return [e for e in self.events if int(e["blockNumber"]) > from_block]

    async def handle(self, event: Event) -> None:
        self.handled.append(event.id)
        if event.id in self.fail_ids:
            raise RuntimeError(f"handler failed for {event.id}")


async def seed_row(
    store: SqliteEventStore,
    app_id: str,
    event: dict[str, Any],
    *,
    success: bool,
    tries: int,
    last_try_at: float | None = None,
) -> int:
    """Insert a row directly, bypassing the pipeline. Returns row id."""
    conn = await store._ensure_conn()
    cursor = await conn.execute(
        """
        INSERT INTO events (event_id, block_number, transaction_hash, app_id,
            success, tries, last_try_at, event_data)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            event["id"],
            int(event["blockNumber"]),
            event["transactionHash"],
            app_id,
            int(success),
            tries,
            time.time() if last_try_at is None else last_try_at,
            json.dumps(event),
        ),
    )
    await conn.commit()
    return cursor.lastrowid or 0


async def fetch_rows(store: SqliteEventStore, app_id: str) -> list[tuple[str, int, int, int]]:
    """(event_id, block_number, success, tries) for every row of app_id, by row id."""
    conn = await store._ensure_conn()
    cursor = await conn.execute(
        "SELECT event_id, block_number, success, tries FROM events WHERE app_id = ? ORDER BY id",
        (app_id,),
    )
    return [tuple(row) for row in await cursor.fetchall()]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "events.db"


@pytest.fixture
async def store(db_path: Path) -> SqliteEventStore:
    s = SqliteEventStore(db_path)
    await s.connect()
    yield s
    await s.close()


@pytest.fixture
def identity() -> ListenerIdentity:
    return ListenerIdentity(instance_name="test-sale", environment="test")


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()
