"""Retry loop: re-drive failed events on a fixed escalating schedule."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from blocklistener.engine.pipeline import DeliveryPipeline
from blocklistener.events.models import ListenerIdentity
from blocklistener.events.store import EventStore

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INTERVAL = 75.0
DEFAULT_RETRY_HEARTBEAT_CYCLES = 500


@dataclass(frozen=True)
class RetryBand:
    """Failed rows with min_tries <= tries <= max_tries, last tried at least min_age seconds ago."""

    label: str
    min_tries: int
    max_tries: int
    min_age: float


DEFAULT_RETRY_SCHEDULE: tuple[RetryBand, ...] = (
    RetryBand("2nd attempt", 1, 1, 60.0),
    RetryBand("3rd attempt", 2, 2, 30 * 60.0),
    RetryBand("4th-10th attempt", 3, 10, 24 * 60 * 60.0),
)


def validate_schedule(schedule: Sequence[RetryBand]) -> None:
    """Raise ValueError unless bands are well-formed and disjoint on tries."""
    ordered = sorted(schedule, key=lambda b: b.min_tries)
    for band in ordered:
        if band.min_tries < 1 or band.max_tries < band.min_tries:
            raise ValueError(f"Invalid tries range in retry band {band.label!r}")
        if band.min_age < 0:
            raise ValueError(f"Negative min_age in retry band {band.label!r}")
    for prev, band in zip(ordered, ordered[1:]):
        if band.min_tries <= prev.max_tries:
            raise ValueError(f"Retry bands {prev.label!r} and {band.label!r} overlap")


class RetryLoop:
    """Sweeps the store for failed rows whose wait window has elapsed."""

    def __init__(
        self,
        store: EventStore,
        pipeline: DeliveryPipeline,
        identity: ListenerIdentity,
        schedule: Sequence[RetryBand] = DEFAULT_RETRY_SCHEDULE,
        interval: float = DEFAULT_RETRY_INTERVAL,
        heartbeat_cycles: int = DEFAULT_RETRY_HEARTBEAT_CYCLES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        validate_schedule(schedule)
        self._store = store
        self._pipeline = pipeline
        self._identity = identity
        self._schedule = tuple(schedule)
        self._interval = interval
        self._heartbeat_cycles = max(1, heartbeat_cycles)
        self._clock = clock
        self._log_prefix = f"{identity.app_id}:"

    async def run(self) -> None:
        """Retry forever. Any fault (store or decoding) propagates to the supervisor."""
        cycles = 0
        while True:
            await self.retry_once()
            await asyncio.sleep(self._interval)
            if cycles % self._heartbeat_cycles == 0:
                logger.info("%s still retrying failed events", self._log_prefix)
            cycles += 1

    async def retry_once(self) -> int:
        """Run every sweep once, in schedule order. Returns rows re-driven."""
        total = 0
        for band in self._schedule:
            total += await self.sweep(band)
        return total

    async def sweep(self, band: RetryBand) -> int:
        failed = await self._store.fetch_failed(
            self._identity.app_id,
            band.min_tries,
            band.max_tries,
            self._clock() - band.min_age,
        )
        if failed:
            logger.info(
                "%s Retrying %d failed event(s) (%s)",
                self._log_prefix,
                len(failed),
                band.label,
            )
        for item in failed:
            await self._pipeline.deliver(item.event, previous=item)
        return len(failed)
