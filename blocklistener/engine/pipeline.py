"""Delivery pipeline: idempotency guard, handler call, outcome persistence.

Used identically by the poll loop (first delivery, insert) and the retry loop
(re-delivery, update). Handler faults end here: they are logged, reported and
recorded as a failed row, never raised.
"""

import json
import logging
import time
from typing import Awaitable, Callable

import httpx

from blocklistener.events.models import DeliveryOutcome, Event, FailedEvent, ListenerIdentity
from blocklistener.events.store import EventStore
from blocklistener.reporting import ErrorReporter, NullErrorReporter

logger = logging.getLogger(__name__)

_MAX_ERROR_CHARS = 200


def describe_error(error: BaseException) -> str:
    """Short operator-facing description; HTTP errors show the response body."""
    if isinstance(error, httpx.HTTPStatusError):
        body = error.response.text
        if body:
            return json.dumps(body[:_MAX_ERROR_CHARS])
    return str(error)[:_MAX_ERROR_CHARS]


class DeliveryPipeline:
    """Runs one event through guard -> handler -> store."""

    def __init__(
        self,
        store: EventStore,
        handler: Callable[[Event], Awaitable[None]],
        identity: ListenerIdentity,
        reporter: ErrorReporter | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._handler = handler
        self._identity = identity
        self._reporter = reporter or NullErrorReporter()
        self._clock = clock
        self._log_prefix = f"{identity.app_id}:"

    async def was_handled(self, event: Event) -> bool:
        return await self._store.was_handled(self._identity.app_id, event)

    async def deliver(
        self, event: Event, previous: FailedEvent | None = None
    ) -> DeliveryOutcome:
        """Deliver one event. previous is the stored row when this is a retry.

        Store errors propagate to the calling loop.
        """
        attempt = previous.tries + 1 if previous else 1
        if previous:
            logger.info(
                "%s Handling event for the %d. time: %s",
                self._log_prefix,
                attempt,
                event.payload(),
            )
        else:
            logger.info("%s Handling event: %s", self._log_prefix, event.payload())

        if await self.was_handled(event):
            logger.info("%s Skipping already handled event.", self._log_prefix)
            return DeliveryOutcome.SKIPPED

        success = await self._invoke(event, attempt)
        tried_at = self._clock()
        if previous:
            await self._store.update_outcome(previous.row_id, success, attempt, tried_at)
        else:
            await self._store.insert(self._identity.app_id, event, success, tried_at)
        return DeliveryOutcome.SUCCEEDED if success else DeliveryOutcome.FAILED

    async def _invoke(self, event: Event, attempt: int) -> bool:
        try:
            await self._handler(event)
        except Exception as e:
            message = describe_error(e)
            logger.warning(
                "%s Event handling failed (try %d); Hash: %s; Message: %s",
                self._log_prefix,
                attempt,
                event.transaction_hash,
                message,
            )
            self._reporter.capture_message(
                str(e) or type(e).__name__,
                level="error",
                context={
                    "listener": self._identity.instance_name,
                    "server_error": True,
                    "tries": attempt,
                    "event_data": event.payload(),
                },
            )
            return False
        if attempt > 1:
            logger.info(
                "%s Previously failed event handled; Hash: %s;",
                self._log_prefix,
                event.transaction_hash,
            )
        else:
            logger.info("%s Event handled; Hash: %s;", self._log_prefix, event.transaction_hash)
        return True
