"""
Shared fixtures for the dashboard backend tests.

Nothing here talks to a real property API: upstream collections are served
by httpx.MockTransport and the wall clock is pinned to NOW.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import httpx
import jwt
import pytest

from app.clients.property_api import PropertyApiClient

NOW = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)
UPSTREAM_BASE = "http://upstream.test/api"

# Long enough that PyJWT does not warn about HMAC key length
SIGNING_SECRET = "auth-service-secret-0123456789abcdef"


def make_token(**claims: Any) -> str:
    return jwt.encode(claims, SIGNING_SECRET, algorithm="HS256")


def days_ago(n: int, *, hour: int = 12) -> str:
    d = (NOW - timedelta(days=n)).replace(hour=hour, minute=0, second=0, microsecond=0)
    return d.isoformat().replace("+00:00", "Z")


def envelope(rows: Optional[list[Any]]) -> dict[str, Any]:
    return {"success": True, "data": rows}


def mock_transport(routes: dict[str, Any]) -> httpx.MockTransport:
    """
    routes maps an API path (without the /api prefix) to either a JSON body
    or an int status code to fail with.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        reply = routes.get(path)
        if reply is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(reply, int):
            return httpx.Response(reply, json={"message": "upstream error"})
        return httpx.Response(200, json=reply)

    return httpx.MockTransport(handler)


def property_api(routes: dict[str, Any]) -> PropertyApiClient:
    return PropertyApiClient(base_url=UPSTREAM_BASE, transport=mock_transport(routes))


TENANTS = [
    {"_id": "t1", "firstName": "Maria", "lastName": "Santos", "status": "Active"},
    {"_id": "t2", "firstName": "Jose", "lastName": "Reyes", "status": "Overdue"},
    {"_id": "t3", "firstName": "Ana", "lastName": "Cruz", "status": "Overdue"},
]

UNITS = [
    {"_id": "u1", "status": "Occupied"},
    {"_id": "u2", "status": "Occupied"},
    {"_id": "u3", "status": "Vacant"},
]

PAYMENTS = [
    {"_id": "p1", "amount": 1500, "paymentDate": days_ago(10), "paymentMethod": "GCash", "tenantId": "t1"},
    {
        "_id": "p2",
        "amount": 2000,
        "paymentDate": days_ago(5),
        "paymentMethod": "Cash",
        "tenantId": {"_id": "t2", "firstName": "Jose", "lastName": "Reyes"},
    },
    {"_id": "p3", "amount": 900, "paymentDate": days_ago(40), "paymentMethod": "Bank", "tenantId": "t3"},
]

MAINTENANCES = [
    {"_id": "m1", "status": "Pending"},
    {"_id": "m2", "status": "Completed"},
    {"_id": "m3", "status": "In Progress"},
    {"_id": "m4", "status": "Pending"},
]


def default_routes() -> dict[str, Any]:
    return {
        "/tenants": envelope(TENANTS),
        "/payments/all": envelope(PAYMENTS),
        "/units": envelope(UNITS),
        "/maintenances": envelope(MAINTENANCES),
    }


class FakeSource:
    """
    In-memory CollectionSource.

    A collection mapped to an Exception raises it; gates (asyncio.Event per
    collection) hold a fetch until released.
    """

    def __init__(self, data: Optional[dict[str, Any]] = None, gates: Optional[dict[str, asyncio.Event]] = None):
        self.data = data or {}
        self.gates = gates or {}
        self.cancelled: list[str] = []

    async def _get(self, name: str) -> list[Any]:
        gate = self.gates.get(name)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                self.cancelled.append(name)
                raise
        v = self.data.get(name, [])
        if isinstance(v, Exception):
            raise v
        return list(v)

    async def fetch_tenants(self) -> list[Any]:
        return await self._get("tenants")

    async def fetch_payments(self) -> list[Any]:
        return await self._get("payments")

    async def fetch_units(self) -> list[Any]:
        return await self._get("units")

    async def fetch_maintenances(self) -> list[Any]:
        return await self._get("maintenances")


@pytest.fixture
def session() -> dict[str, Any]:
    """Stand-in for the browser-session store."""
    return {}


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token
