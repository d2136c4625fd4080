"""End-to-end tests for ListenerEngine with both loops running."""

import asyncio
import time
from pathlib import Path

import pytest

from blocklistener.engine import ListenerEngine
from blocklistener.events import ListenerIdentity, SqliteEventStore

from conftest import FakeListener, RecordingReporter, fetch_rows, make_event, seed_row


class FlakyStore(SqliteEventStore):
    """Fails latest_block() a set number of times; counts reconnects."""

    def __init__(self, db_path: Path, failures: int) -> None:
        super().__init__(db_path)
        self.failures = failures
        self.reconnects = 0

    async def latest_block(self, app_id: str) -> int:
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("connection reset")
        return await super().latest_block(app_id)

    async def reconnect(self) -> None:
        self.reconnects += 1
        await super().reconnect()


class FlakySweepStore(SqliteEventStore):
    """Fails fetch_failed() a set number of times; counts reconnects."""

    def __init__(self, db_path: Path, failures: int) -> None:
        super().__init__(db_path)
        self.failures = failures
        self.reconnects = 0

    async def fetch_failed(self, app_id: str, min_tries: int, max_tries: int, tried_before: float):
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("connection reset")
        return await super().fetch_failed(app_id, min_tries, max_tries, tried_before)

    async def reconnect(self) -> None:
        self.reconnects += 1
        await super().reconnect()


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
async def test_engine_delivers_and_retries(db_path: Path, identity: ListenerIdentity, reporter: RecordingReporter) -> None:
    store = SqliteEventStore(db_path)
    await store.connect()
    await seed_row(store, identity.app_id, make_event("old", 1), success=False, tries=1, last_try_at=time.time() - 120)
    listener = FakeListener([make_event("old", 1), make_event("new", 2)])
    engine = ListenerEngine(
        listener, store, identity, reporter, poll_interval=0.05, retry_interval=0.05, restart_delay=0.01
    )

    await engine.start()
    try:
        await _wait_for(lambda: sorted(listener.handled) == ["new", "old"])
    finally:
        await engine.stop()

    check = SqliteEventStore(db_path)
    rows = await fetch_rows(check, identity.app_id)
    await check.close()
    assert rows == [("old", 1, 1, 2), ("new", 2, 1, 1)]
    # poll resumed from block 1 and never re-fetched "old"
    assert listener.fetch_calls[0] == 1
    assert listener.handled.count("old") == 1


@pytest.mark.asyncio
async def test_poll_fault_reconnects_and_resumes(db_path: Path, identity: ListenerIdentity, reporter: RecordingReporter) -> None:
    store = FlakyStore(db_path, failures=2)
    listener = FakeListener([make_event("a", 3)])
    engine = ListenerEngine(
        listener, store, identity, reporter, poll_interval=0.05, retry_interval=0.05, restart_delay=0.01
    )

    await engine.start()
    try:
        await _wait_for(lambda: listener.handled == ["a"])
        assert engine.running is True
    finally:
        await engine.stop()

    assert store.reconnects == 2
    poll_faults = [e for e in reporter.reported_errors if "poll loop" in e["context"].get("loop", "")]
    assert len(poll_faults) == 2
    assert poll_faults[0]["level"] == "critical"


@pytest.mark.asyncio
async def test_stop_cancels_loops(db_path: Path, identity: ListenerIdentity, reporter: RecordingReporter) -> None:
    engine = ListenerEngine(FakeListener(), SqliteEventStore(db_path), identity, reporter, poll_interval=0.05)
    await engine.start()
    assert engine.running is True
    await engine.stop()
    assert engine.running is False
    assert reporter.reported_errors == []


@pytest.mark.asyncio
async def test_retry_fault_restarts_without_reconnect(db_path: Path, identity: ListenerIdentity, reporter: RecordingReporter) -> None:
    store = FlakySweepStore(db_path, failures=2)
    await store.connect()
    await seed_row(store, identity.app_id, make_event("old", 1), success=False, tries=1, last_try_at=time.time() - 120)
    listener = FakeListener()
    engine = ListenerEngine(
        listener, store, identity, reporter, poll_interval=0.05, retry_interval=0.05, restart_delay=0.01
    )

    await engine.start()
    try:
        await _wait_for(lambda: listener.handled == ["old"])
    finally:
        await engine.stop()

    assert store.reconnects == 0
    retry_faults = [e for e in reporter.reported_errors if "retry loop" in e["context"].get("loop", "")]
    assert len(retry_faults) == 2
    assert all(isinstance(e["error"], ConnectionError) for e in retry_faults)
    assert all(e["level"] == "error" for e in retry_faults)

    check = SqliteEventStore(db_path)
    rows = await fetch_rows(check, identity.app_id)
    await check.close()
    assert rows == [("old", 1, 1, 2)]


@pytest.mark.asyncio
async def test_start_twice_keeps_one_pair_of_loops(db_path: Path, identity: ListenerIdentity, reporter: RecordingReporter) -> None:
    engine = ListenerEngine(FakeListener(), SqliteEventStore(db_path), identity, reporter, poll_interval=0.05)
    await engine.start()
    first_tasks = (engine._poll_task, engine._retry_task)
    await engine.start()
    try:
        assert (engine._poll_task, engine._retry_task) == first_tasks
    finally:
        await engine.stop()
    assert all(t.done() for t in first_tasks)
