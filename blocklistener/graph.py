"""Minimal GraphQL-over-HTTP client for subgraph-style data sources."""

import logging
from typing import Any

import httpx

from blocklistener.errors import GraphQLError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class GraphQLClient:
    """POSTs {query, variables} to the graph endpoint and returns the data dict."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return self._url

    async def execute(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a query. Transport and HTTP errors propagate; query errors raise GraphQLError."""
        body: dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = variables
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await client.post(self._url, json=body)
            response.raise_for_status()
            data = response.json()
        if data.get("errors"):
            raise GraphQLError(data["errors"])
        return data.get("data") or {}
