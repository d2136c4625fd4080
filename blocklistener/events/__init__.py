"""Event models and durable delivery-state stores."""

from blocklistener.events.models import DeliveryOutcome, Event, FailedEvent, ListenerIdentity
from blocklistener.events.postgres_store import DbConfig, PostgresEventStore
from blocklistener.events.sqlite_store import SqliteEventStore
from blocklistener.events.store import EventStore

__all__ = [
    "DbConfig",
    "DeliveryOutcome",
    "Event",
    "EventStore",
    "FailedEvent",
    "ListenerIdentity",
    "PostgresEventStore",
    "SqliteEventStore",
]
