"""ListenerEngine: wires store, pipeline, poll loop and retry loop under supervision."""

import asyncio
import logging
import time
from typing import Callable, Sequence

from blocklistener.contract import Listener
from blocklistener.engine.pipeline import DeliveryPipeline
from blocklistener.engine.poller import (
    DEFAULT_POLL_HEARTBEAT_CYCLES,
    DEFAULT_POLL_INTERVAL,
    PollLoop,
)
from blocklistener.engine.retrier import (
    DEFAULT_RETRY_HEARTBEAT_CYCLES,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_RETRY_SCHEDULE,
    RetryBand,
    RetryLoop,
)
from blocklistener.engine.supervisor import supervise
from blocklistener.events.models import ListenerIdentity
from blocklistener.events.store import EventStore
from blocklistener.reporting import ErrorReporter, NullErrorReporter

logger = logging.getLogger(__name__)

DEFAULT_RESTART_DELAY = 5.0


class ListenerEngine:
    """Reliable at-least-once delivery of source events to one listener.

    Two supervised tasks share the store: the poll loop (pause + reconnect on
    fault) and the retry loop (immediate restart on fault).
    """

    def __init__(
        self,
        listener: Listener,
        store: EventStore,
        identity: ListenerIdentity,
        reporter: ErrorReporter | None = None,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        restart_delay: float = DEFAULT_RESTART_DELAY,
        poll_heartbeat_cycles: int = DEFAULT_POLL_HEARTBEAT_CYCLES,
        retry_heartbeat_cycles: int = DEFAULT_RETRY_HEARTBEAT_CYCLES,
        retry_schedule: Sequence[RetryBand] = DEFAULT_RETRY_SCHEDULE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._identity = identity
        self._reporter = reporter or NullErrorReporter()
        self._restart_delay = restart_delay
        self.pipeline = DeliveryPipeline(
            store, listener.handle, identity, self._reporter, clock=clock
        )
        self.poller = PollLoop(
            store,
            listener.fetch,
            self.pipeline,
            identity,
            self._reporter,
            interval=poll_interval,
            heartbeat_cycles=poll_heartbeat_cycles,
        )
        self.retrier = RetryLoop(
            store,
            self.pipeline,
            identity,
            schedule=retry_schedule,
            interval=retry_interval,
            heartbeat_cycles=retry_heartbeat_cycles,
            clock=clock,
        )
        self._poll_task: asyncio.Task[None] | None = None
        self._retry_task: asyncio.Task[None] | None = None

    @property
    def identity(self) -> ListenerIdentity:
        return self._identity

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def start(self) -> None:
        """Connect the store and start both loops as asyncio Tasks.

        A store that is unreachable at startup does not prevent the start: the
        loops connect lazily and the poll loop's supervisor keeps reconnecting.
        Calling start() on a running engine does nothing.
        """
        if self.running:
            logger.warning("%s: listener engine already running", self._identity.app_id)
            return
        try:
            await self._store.connect()
        except Exception as e:
            logger.error("%s: event store unavailable at startup: %s", self._identity.app_id, e)
            self._reporter.report(e, context={"listener_error": True}, level="critical")
        self._poll_task = asyncio.create_task(
            supervise(
                f"{self._identity.app_id} poll loop",
                self.poller.run,
                self._reporter,
                restart_delay=self._restart_delay,
                before_restart=self._store.reconnect,
                level="critical",
            )
        )
        self._retry_task = asyncio.create_task(
            supervise(
                f"{self._identity.app_id} retry loop",
                self.retrier.run,
                self._reporter,
            )
        )
        logger.info("%s: listener engine started", self._identity.app_id)

    async def stop(self) -> None:
        """Cancel both loops and close the store."""
        for task in (self._retry_task, self._poll_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._poll_task = None
        self._retry_task = None
        await self._store.close()
        logger.info("%s: listener engine stopped", self._identity.app_id)

    async def run_forever(self) -> None:
        """start(), then wait on the loops until cancelled."""
        await self.start()
        tasks = [t for t in (self._poll_task, self._retry_task) if t is not None]
        try:
            await asyncio.gather(*tasks)
        finally:
            await self.stop()
