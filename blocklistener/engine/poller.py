"""Poll loop: resume from the latest recorded block, fetch newer events, deliver in order."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence

from blocklistener.engine.pipeline import DeliveryPipeline, describe_error
from blocklistener.events.models import Event, ListenerIdentity
from blocklistener.events.store import EventStore
from blocklistener.reporting import ErrorReporter, NullErrorReporter

logger = logging.getLogger(__name__)

FetchFn = Callable[[int], Awaitable[Sequence[Event | dict[str, Any]]]]

DEFAULT_POLL_INTERVAL = 10.0
# ~6 hours at the default interval
DEFAULT_POLL_HEARTBEAT_CYCLES = 2160


class PollLoop:
    """Fixed-interval poll of the source. Holds no state across restarts."""

    def __init__(
        self,
        store: EventStore,
        fetch: FetchFn,
        pipeline: DeliveryPipeline,
        identity: ListenerIdentity,
        reporter: ErrorReporter | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        heartbeat_cycles: int = DEFAULT_POLL_HEARTBEAT_CYCLES,
    ) -> None:
        self._store = store
        self._fetch = fetch
        self._pipeline = pipeline
        self._identity = identity
        self._reporter = reporter or NullErrorReporter()
        self._interval = interval
        self._heartbeat_cycles = max(1, heartbeat_cycles)
        self._log_prefix = f"{identity.app_id}:"

    async def run(self) -> None:
        """Poll forever. Faults outside a single event's delivery propagate."""
        logger.info("%s initialising", self._log_prefix)
        cycles = 0
        while True:
            await self.poll_once()
            await asyncio.sleep(self._interval)
            if cycles % self._heartbeat_cycles == 0:
                logger.info("%s still checking for new events", self._log_prefix)
            cycles += 1

    async def poll_once(self) -> int:
        """One cycle. Returns the number of events fetched."""
        from_block = await self._store.latest_block(self._identity.app_id)
        return await self.poll_from(from_block)

    async def poll_from(self, from_block: int) -> int:
        rows = await self._fetch(from_block)
        if not rows:
            return 0

        for row in rows:
            try:
                event = row if isinstance(row, Event) else Event.model_validate(row)
                await self._pipeline.deliver(event)
            except Exception as e:
                logger.error(
                    "%s Failed to process event from block > %d: %s",
                    self._log_prefix,
                    from_block,
                    describe_error(e),
                )
                self._reporter.report(e, context={"listener_error": True})
        logger.info("%s batch queried and handled", self._log_prefix)
        return len(rows)
