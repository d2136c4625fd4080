"""Sale listener: relays buyEntities from the sale subgraph to the API."""

from typing import Any

import httpx

from blocklistener import Event, ListenerContext
from blocklistener.errors import ConfigurationError

_BUY_ENTITIES_QUERY = """
query BuyEntities($fromBlock: BigInt!) {
  buyEntities(where: { blockNumber_gt: $fromBlock }, orderBy: blockNumber, orderDirection: asc) {
    id
    eventName
    buyer
    saleID
    serialNo
    blockNumber
    transactionHash
  }
}
"""


class SaleListener:
    """Fetches buy events newer than a block and POSTs each one to {api_url}/sales."""

    def __init__(self, context: ListenerContext) -> None:
        if not context.api_url:
            raise ConfigurationError("sale_listener needs api_url (API_URL) to deliver sales")
        self._ctx = context
        self._timeout = float(context.config.get("timeout", 15.0))

    async def fetch(self, from_block: int) -> list[dict[str, Any]]:
        data = await self._ctx.graph.execute(
            _BUY_ENTITIES_QUERY, {"fromBlock": str(from_block)}
        )
        return data.get("buyEntities") or []

    async def handle(self, event: Event) -> None:
        payload = event.payload()
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                f"{self._ctx.api_url.rstrip('/')}/sales",
                json={
                    "buyer": payload.get("buyer"),
                    "sale_id": payload.get("saleID"),
                    "serial_no": payload.get("serialNo"),
                    "transaction": event.transaction_hash,
                },
            )
            response.raise_for_status()


def create_listener(context: ListenerContext) -> SaleListener:
    return SaleListener(context)
