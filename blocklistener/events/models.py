"""Event and delivery models shared by the store and the engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["DeliveryOutcome", "Event", "FailedEvent", "ListenerIdentity"]


class Event(BaseModel):
    """One decoded event from the source.

    Only id, block number and transaction hash are known to the core; every
    other field the listener's query returns is kept as-is.
    """

    model_config = ConfigDict(
        extra="allow", populate_by_name=True, frozen=True, coerce_numbers_to_str=True
    )

    id: str
    block_number: int = Field(alias="blockNumber")
    transaction_hash: str = Field(alias="transactionHash")

    def payload(self) -> dict[str, Any]:
        """JSON-ready dict in the source's field names (stored as event_data)."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class ListenerIdentity:
    """Instance name + environment. Partitions every store query."""

    instance_name: str
    environment: str

    @property
    def app_id(self) -> str:
        return f"{self.instance_name} {self.environment}"


@dataclass(frozen=True)
class FailedEvent:
    """A failed row picked up by a retry sweep."""

    row_id: int
    tries: int
    event: Event


class DeliveryOutcome(Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
