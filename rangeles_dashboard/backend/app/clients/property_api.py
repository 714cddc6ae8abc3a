# backend/app/clients/property_api.py
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..config import settings

log = logging.getLogger(__name__)

TENANTS_PATH = "/tenants"
PAYMENTS_PATH = "/payments/all"
UNITS_PATH = "/units"
MAINTENANCES_PATH = "/maintenances"


class TransportError(RuntimeError):
    """Network failure, non-2xx response, or a malformed envelope."""

    def __init__(self, endpoint: str, message: str) -> None:
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint


class PropertyApiClient:
    """
    Read-only accessor for the property API collections.

    Every fetch_* method resolves to a list and never raises for transport
    problems: failures are logged and the collection degrades to [].
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base = (base_url or settings.resolved_api_base_url()).rstrip("/")
        # An injected client belongs to the caller and is not closed here
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base,
            timeout=timeout if timeout is not None else settings.api_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PropertyApiClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _get_collection(self, path: str) -> list[Any]:
        try:
            r = await self._client.get(path)
            r.raise_for_status()
            body = r.json()
        except httpx.HTTPStatusError as e:
            raise TransportError(path, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TransportError(path, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise TransportError(path, "response is not JSON") from e

        # Envelope: {"data": [...]}; missing/null data is an empty collection
        if not isinstance(body, dict):
            raise TransportError(path, "envelope is not an object")
        data = body.get("data")
        if data is None:
            return []
        if not isinstance(data, list):
            raise TransportError(path, "envelope data is not a list")
        return data

    async def _fetch(self, collection: str, path: str) -> list[Any]:
        try:
            rows = await self._get_collection(path)
        except TransportError as e:
            log.warning(
                "error fetching %s; using empty collection: %s",
                collection,
                e,
                extra={"collection": collection, "endpoint": path},
            )
            return []
        log.debug("fetched %s", collection, extra={"collection": collection, "count": len(rows)})
        return rows

    async def fetch_tenants(self) -> list[Any]:
        return await self._fetch("tenants", TENANTS_PATH)

    async def fetch_payments(self) -> list[Any]:
        return await self._fetch("payments", PAYMENTS_PATH)

    async def fetch_units(self) -> list[Any]:
        return await self._fetch("units", UNITS_PATH)

    async def fetch_maintenances(self) -> list[Any]:
        return await self._fetch("maintenances", MAINTENANCES_PATH)
