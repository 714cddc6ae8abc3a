# backend/tests/test_dashboard_routes.py
from __future__ import annotations

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import NOW, days_ago, default_routes, envelope, make_token, property_api

from app.main import app
from app.routers.dashboard import get_now, get_property_api

ADMIN_TOKEN = make_token(id="a1", role="admin")
STAFF_TOKEN = make_token(id="s1", role="staff")
TENANT_TOKEN = make_token(id="t1", role="tenant")


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def upstream() -> dict[str, Any]:
    """Upstream routes served to the app; tests may edit before requesting."""
    return default_routes()


@pytest.fixture
async def client(upstream):
    async def _api():
        async with property_api(upstream) as api:
            yield api

    app.dependency_overrides[get_property_api] = _api
    app.dependency_overrides[get_now] = lambda: NOW
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


def _new_browser_session() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


async def test_dashboard_metrics_payload(client):
    resp = await client.get("/api/dashboard")
    assert resp.status_code == 200
    data = resp.json()

    assert data["loading"] is False
    assert data["tenant_count"] == 3
    assert data["overdue_count"] == 2
    assert data["occupancy_rate"] == 67
    assert len(data["pending_maintenance"]) == 2
    assert len(data["completed_maintenance"]) == 1

    feed = data["recent_payments"]
    assert [p["payment_id"] for p in feed] == ["p2", "p1"]
    first = feed[0]
    assert first["display_name"] == "Jose Reyes"
    assert first["amount_display"] == "₱2,000"
    assert first["method_display"] == "Cash"
    assert first["date_display"] == "10/14/2026"


async def test_request_id_is_echoed(client):
    resp = await client.get("/api/health", headers={"X-Request-ID": "rid-123"})
    assert resp.headers["X-Request-ID"] == "rid-123"


async def test_anonymous_load_has_no_identity_and_no_gate(client):
    data = (await client.get("/api/dashboard")).json()
    assert data["identity"] is None
    assert data["gate_state"] == "idle"
    assert data["show_verification"] is False


async def test_invalid_credential_is_not_an_error(client):
    resp = await client.get("/api/dashboard", headers=_auth("not-a-jwt"))
    assert resp.status_code == 200
    data = resp.json()
    assert data["identity"] is None
    assert data["gate_state"] == "idle"
    assert data["occupancy_rate"] == 67


async def test_admin_is_prompted_once_per_session(client):
    first = (await client.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))).json()
    assert first["gate_state"] == "pending"
    assert first["show_verification"] is True
    assert first["identity"]["role_badge"] == "ADMIN"

    for _ in range(2):
        again = (await client.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))).json()
        assert again["gate_state"] == "idle"
        assert again["show_verification"] is False


async def test_new_browser_session_prompts_again(client):
    assert (await client.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))).json()["gate_state"] == "pending"

    async with _new_browser_session() as other:
        data = (await other.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))).json()
    assert data["gate_state"] == "pending"


async def test_confirm_routes_admin(client):
    await client.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))
    resp = await client.post("/api/dashboard/verification/confirm", headers=_auth(ADMIN_TOKEN))
    assert resp.status_code == 200
    assert resp.json() == {"gate_state": "confirmed", "redirect": "/admin"}

    again = await client.post("/api/dashboard/verification/confirm", headers=_auth(ADMIN_TOKEN))
    assert again.status_code == 409


async def test_confirm_routes_staff(client):
    await client.get("/api/dashboard", headers=_auth(STAFF_TOKEN))
    resp = await client.post("/api/dashboard/verification/confirm", headers=_auth(STAFF_TOKEN))
    assert resp.json() == {"gate_state": "confirmed", "redirect": "/staff"}


async def test_dismiss_has_no_redirect(client):
    await client.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))
    resp = await client.post("/api/dashboard/verification/dismiss")
    assert resp.status_code == 200
    assert resp.json() == {"gate_state": "dismissed", "redirect": None}

    # terminal, and never prompted again this session
    assert (await client.post("/api/dashboard/verification/dismiss")).status_code == 409
    data = (await client.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))).json()
    assert data["gate_state"] == "idle"


async def test_tenant_never_prompted(client):
    data = (await client.get("/api/dashboard", headers=_auth(TENANT_TOKEN))).json()
    assert data["identity"]["role"] == "tenant"
    assert data["gate_state"] == "idle"

    resp = await client.post("/api/dashboard/verification/confirm", headers=_auth(TENANT_TOKEN))
    assert resp.status_code == 409


async def test_confirm_after_reload_is_rejected(client):
    await client.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))
    await client.get("/api/dashboard", headers=_auth(ADMIN_TOKEN))  # reload before answering
    resp = await client.post("/api/dashboard/verification/confirm", headers=_auth(ADMIN_TOKEN))
    assert resp.status_code == 409


async def test_failed_collection_renders_defaults(client, upstream):
    upstream["/units"] = 500
    upstream["/maintenances"] = {"data": None}

    resp = await client.get("/api/dashboard")
    assert resp.status_code == 200
    data = resp.json()
    assert data["occupancy_rate"] == 0
    assert data["pending_maintenance"] == []
    assert data["tenant_count"] == 3
    assert data["overdue_count"] == 2


async def test_orphaned_and_sparse_payments_render(client, upstream):
    upstream["/payments/all"] = envelope(
        [
            {"_id": "x1", "amount": 1234.5, "paymentDate": days_ago(1), "tenantId": None},
            {"_id": "x2", "amount": "oops", "paymentDate": days_ago(2), "tenantId": {"firstName": "", "lastName": ""}},
        ]
    )
    feed = (await client.get("/api/dashboard")).json()["recent_payments"]

    assert [p["display_name"] for p in feed] == ["Unknown Tenant", "Deleted Tenant"]
    assert feed[0]["amount_display"] == "₱1,234.5"
    assert feed[0]["method_display"] == "N/A"
    assert feed[1]["amount"] == 0.0


async def test_nan_amount_renders_as_zero(client, upstream):
    upstream["/payments/all"] = envelope(
        [{"_id": "n1", "amount": "NaN", "paymentDate": days_ago(1), "tenantId": "t1"}]
    )
    feed = (await client.get("/api/dashboard")).json()["recent_payments"]

    assert feed[0]["amount"] == 0.0
    assert feed[0]["amount_display"] == "₱0"
