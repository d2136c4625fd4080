"""Supervised loop: run a never-ending coroutine, restart it on any fault."""

import asyncio
import logging
from typing import Awaitable, Callable

from blocklistener.engine.pipeline import describe_error
from blocklistener.reporting import ErrorReporter

logger = logging.getLogger(__name__)


async def supervise(
    name: str,
    body: Callable[[], Awaitable[None]],
    reporter: ErrorReporter,
    *,
    restart_delay: float = 0.0,
    before_restart: Callable[[], Awaitable[None]] | None = None,
    level: str = "error",
) -> None:
    """Run body() until cancelled; on a fault, report it, pause, prepare, and rerun.

    A fault in before_restart takes the same path as a fault in body, so a
    reconnect that fails is retried after the next pause. There is no restart
    limit. Cancellation is the only way out.
    """
    restarting = False
    while True:
        try:
            if restarting and before_restart is not None:
                await before_restart()
            restarting = False
            await body()
            # body() is expected to run forever; treat a return as a fault-free restart
            logger.warning("%s returned; restarting", name)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("%s: %s", name, describe_error(e))
            reporter.report(e, context={"listener_error": True, "loop": name}, level=level)
            restarting = True
            logger.info("----reinitializing %s because of an error", name)
        # sleep(0) still yields, so an instantly failing body cannot starve the event loop
        await asyncio.sleep(restart_delay)
