"""blocklistener: at-least-once delivery of block-indexed source events with retry and dedup."""

from blocklistener.contract import Listener, ListenerContext
from blocklistener.engine import ListenerEngine
from blocklistener.events import DeliveryOutcome, Event, ListenerIdentity

__version__ = "0.1.0"

__all__ = [
    "DeliveryOutcome",
    "Event",
    "Listener",
    "ListenerContext",
    "ListenerEngine",
    "ListenerIdentity",
]
