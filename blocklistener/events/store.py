"""EventStore protocol: the narrow CRUD surface the engine needs."""

from typing import Protocol, runtime_checkable

from blocklistener.events.models import Event, FailedEvent


@runtime_checkable
class EventStore(Protocol):
    """Durable per-event delivery state. Timestamps are epoch seconds."""

    async def connect(self) -> None:
        """Open the connection (pool) and create the schema if missing."""

    async def close(self) -> None:
        """Close the connection. Safe to call when not connected."""

    async def reconnect(self) -> None:
        """Drop the current connection and open a fresh one."""

    async def latest_block(self, app_id: str) -> int:
        """Highest recorded block_number for app_id, 0 when nothing is recorded."""

    async def was_handled(self, app_id: str, event: Event) -> bool:
        """True if a successful row exists for the event's natural key."""

    async def insert(
        self, app_id: str, event: Event, success: bool, tried_at: float
    ) -> None:
        """Record a first delivery attempt (tries = 1)."""

    async def update_outcome(
        self, row_id: int, success: bool, tries: int, tried_at: float
    ) -> None:
        """Record the outcome of a retry on an existing row."""

    async def fetch_failed(
        self, app_id: str, min_tries: int, max_tries: int, tried_before: float
    ) -> list[FailedEvent]:
        """Failed rows with min_tries <= tries <= max_tries and last_try_at <= tried_before."""
