"""Listener protocol and the context handed to listener plugins.

A concrete listener supplies only two things: how to fetch events newer than a
block, and what to do with one event. The engine owns everything else.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence, runtime_checkable

from blocklistener.events.models import Event, ListenerIdentity
from blocklistener.graph import GraphQLClient


@runtime_checkable
class Listener(Protocol):
    """Capability pair injected into ListenerEngine."""

    async def fetch(self, from_block: int) -> Sequence[Event | dict[str, Any]]:
        """Events with block_number > from_block. Errors propagate to the poll loop."""

    async def handle(self, event: Event) -> None:
        """Process one event. Raise to mark the delivery failed.

        May be called more than once for the same event (at-least-once).
        """


@dataclass
class ListenerContext:
    """Everything a listener plugin gets from the runner."""

    api_url: str
    graph: GraphQLClient
    identity: ListenerIdentity
    config: dict[str, Any] = field(default_factory=dict)
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("blocklistener.listener")
    )
