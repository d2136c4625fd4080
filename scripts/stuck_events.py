"""List (and optionally re-deliver) events that exhausted the retry schedule.

Rows with success = false and tries > 10 are never picked up again by the
retry loop. This script shows them for the configured listener identity and,
with --redeliver, runs each one more time through the delivery pipeline
(tries keeps increasing; a success marks the row handled).

Usage:
    python scripts/stuck_events.py
    python scripts/stuck_events.py --redeliver
"""

import asyncio
import sys
import time
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(_PROJECT_ROOT / ".env")

_MAX_TRIES = 2**31 - 1


async def main(redeliver: bool) -> int:
    from blocklistener.engine import DEFAULT_RETRY_SCHEDULE, DeliveryPipeline
    from blocklistener.logging_config import setup_logging
    from blocklistener.runner import build_engine, build_identity, build_store
    from blocklistener.settings import load_settings

    settings = load_settings()
    setup_logging(_PROJECT_ROOT, settings)
    identity = build_identity(settings)
    store = build_store(settings, _PROJECT_ROOT)
    first_stuck = max(band.max_tries for band in DEFAULT_RETRY_SCHEDULE) + 1

    try:
        stuck = await store.fetch_failed(identity.app_id, first_stuck, _MAX_TRIES, time.time())
        print(f"{identity.app_id}: {len(stuck)} stuck event(s)")
        for item in stuck:
            ev = item.event
            print(f"  row={item.row_id} tries={item.tries} block={ev.block_number} "
                  f"tx={ev.transaction_hash} id={ev.id}")
        if not redeliver or not stuck:
            return 0

        engine = build_engine(settings, _PROJECT_ROOT, store=store)
        pipeline: DeliveryPipeline = engine.pipeline
        for item in stuck:
            outcome = await pipeline.deliver(item.event, previous=item)
            print(f"  row={item.row_id}: {outcome.value}")
        return 0
    finally:
        await store.close()


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main("--redeliver" in sys.argv)))
    except KeyboardInterrupt:
        pass
