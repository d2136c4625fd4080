"""Delivery engine: pipeline, poll loop, retry loop, supervision."""

from blocklistener.engine.engine import ListenerEngine
from blocklistener.engine.pipeline import DeliveryPipeline
from blocklistener.engine.poller import PollLoop
from blocklistener.engine.retrier import DEFAULT_RETRY_SCHEDULE, RetryBand, RetryLoop
from blocklistener.engine.supervisor import supervise

__all__ = [
    "DEFAULT_RETRY_SCHEDULE",
    "DeliveryPipeline",
    "ListenerEngine",
    "PollLoop",
    "RetryBand",
    "RetryLoop",
    "supervise",
]
