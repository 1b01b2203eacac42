"""
Integration tests for the REST API endpoints.

Uses an in-memory SQLite database injected into ``create_app``.  The
ASGI transport does not run lifespan events, so the fixture connects the
database itself.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from rideflow.api.app import create_app
from rideflow.api.dependencies import get_notifier
from rideflow.api.middleware import limiter
from rideflow.config import Settings
from rideflow.infrastructure.database import Database
from rideflow.infrastructure.notifications import RideNotifier
from tests.conftest import (
    BAMBALAPITIYA,
    COLOMBO,
    KANDY,
    NUGEGODA,
    TEST_DB_URL,
    actor,
)

USER = actor("u1", "user")
PM = actor("pm1", "project_manager")
ADMIN = actor("a1", "admin")
DRIVER = actor("d1", "driver")


class RecordingNotifier(RideNotifier):
    def __init__(self):
        self.sent = []

    async def notify(self, notification):
        self.sent.append(notification)


class FailingNotifier(RideNotifier):
    async def notify(self, notification):
        raise ConnectionError("SMTP down")


@pytest_asyncio.fixture
async def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def app(notifier):
    db = Database(TEST_DB_URL)
    await db.connect()
    await db.create_all()
    limiter.reset()

    application = create_app(Settings(database_url=TEST_DB_URL), database=db)
    application.dependency_overrides[get_notifier] = lambda: notifier
    yield application

    await db.disconnect()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create(client: AsyncClient, start=BAMBALAPITIYA, end=NUGEGODA, **extra):
    resp = await client.post(
        "/api/v1/rides",
        json={"start_location": start, "end_location": end, **extra},
        headers=USER,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_short_ride(client: AsyncClient):
    data = await _create(client, distance_km=12.0)
    assert data["status"] == "pending_admin"
    assert data["requester_id"] == "u1"
    assert data["distance_km"] == 12.0
    assert data["estimated_minutes"] == 18
    assert data["approval"] == {"project_manager": None, "admin": None}
    assert data["start_location"]["address"] == "Bambalapitiya"


@pytest.mark.asyncio
async def test_create_long_ride_computes_distance(client: AsyncClient):
    data = await _create(client, start=COLOMBO, end=KANDY)
    assert data["status"] == "pending_pm"
    assert data["distance_km"] > 25


@pytest.mark.asyncio
async def test_create_requires_user_role(client: AsyncClient):
    resp = await client.post(
        "/api/v1/rides",
        json={"start_location": COLOMBO, "end_location": KANDY},
        headers=ADMIN,
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_create_missing_location(client: AsyncClient):
    resp = await client.post(
        "/api/v1/rides", json={"start_location": COLOMBO}, headers=USER
    )
    assert resp.status_code == 400
    assert "end_location" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_create_missing_coordinates(client: AsyncClient):
    resp = await client.post(
        "/api/v1/rides",
        json={"start_location": {"address": "Somewhere"}, "end_location": KANDY},
        headers=USER,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_refuses_string_coordinates(client: AsyncClient):
    resp = await client.post(
        "/api/v1/rides",
        json={
            "start_location": {"lat": "6.9", "lng": 79.8, "address": "Somewhere"},
            "end_location": KANDY,
        },
        headers=USER,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_missing_identity(client: AsyncClient):
    resp = await client.get("/api/v1/rides")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_unknown_role_header(client: AsyncClient):
    resp = await client.get("/api/v1/rides", headers=actor("x", "guest"))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_get_ride_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/rides/nope", headers=ADMIN)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_long_ride_lifecycle(client: AsyncClient, notifier: RecordingNotifier):
    ride_id = (await _create(client, start=COLOMBO, end=KANDY))["id"]

    pm_queue = (await client.get("/api/v1/rides", headers=PM)).json()
    assert [r["id"] for r in pm_queue] == [ride_id]

    resp = await client.post(f"/api/v1/rides/{ride_id}/approve", headers=PM)
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending_admin_after_pm"
    assert resp.json()["approval"]["project_manager"]["approved"] is True

    dashboard = await client.get("/api/v1/rides/pm-dashboard", headers=PM)
    assert [r["id"] for r in dashboard.json()] == [ride_id]

    resp = await client.post(f"/api/v1/rides/{ride_id}/approve", headers=ADMIN)
    assert resp.json()["status"] == "approved"
    assert resp.json()["approval"]["admin"]["approved_by"] == "a1"

    resp = await client.post(
        f"/api/v1/rides/{ride_id}/assign",
        json={"driver_id": "d1", "vehicle_id": "NB-1234"},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "in_progress"
    assert resp.json()["vehicle_id"] == "NB-1234"
    assert resp.json()["assigned_at"] is not None

    driver_rides = (await client.get("/api/v1/rides", headers=DRIVER)).json()
    assert [r["id"] for r in driver_rides] == [ride_id]

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/status", json={"status": "completed"}, headers=DRIVER
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"

    resp = await client.post(f"/api/v1/rides/{ride_id}/approve", headers=ADMIN)
    assert resp.status_code == 409

    assert [n.status.value for n in notifier.sent] == ["pending_admin_after_pm", "approved"]
    assert all(n.user_id == "u1" for n in notifier.sent)


@pytest.mark.asyncio
async def test_double_approve_is_conflict_with_reason(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    first = await client.post(f"/api/v1/rides/{ride_id}/approve", headers=ADMIN)
    second = await client.post(f"/api/v1/rides/{ride_id}/approve", headers=ADMIN)
    assert first.status_code == 200
    assert second.status_code == 409
    assert "approved" in second.json()["detail"]
    assert "admin" in second.json()["detail"]


@pytest.mark.asyncio
async def test_reject_with_reason(client: AsyncClient, notifier: RecordingNotifier):
    ride_id = (await _create(client))["id"]
    resp = await client.post(
        f"/api/v1/rides/{ride_id}/reject",
        json={"reason": "Use the shuttle"},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "rejected"
    assert body["approval"]["admin"]["approved"] is False
    assert body["rejection_reason"] == "Use the shuttle"
    assert notifier.sent[-1].message.endswith("Reason: Use the shuttle")


@pytest.mark.asyncio
async def test_reject_without_body(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    resp = await client.post(f"/api/v1/rides/{ride_id}/reject", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["rejection_reason"] is None


@pytest.mark.asyncio
async def test_assign_before_approval_is_conflict(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    resp = await client.post(
        f"/api/v1/rides/{ride_id}/assign", json={"driver_id": "d1"}, headers=ADMIN
    )
    assert resp.status_code == 409
    assert "pending_admin" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_assign_requires_admin(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    resp = await client.post(
        f"/api/v1/rides/{ride_id}/assign", json={"driver_id": "d1"}, headers=PM
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_assign_requires_driver(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    await client.post(f"/api/v1/rides/{ride_id}/approve", headers=ADMIN)
    resp = await client.post(f"/api/v1/rides/{ride_id}/assign", json={}, headers=ADMIN)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_other_driver_cannot_update(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    await client.post(f"/api/v1/rides/{ride_id}/approve", headers=ADMIN)
    await client.post(
        f"/api/v1/rides/{ride_id}/assign", json={"driver_id": "d1"}, headers=ADMIN
    )
    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/status",
        json={"status": "completed"},
        headers=actor("d2", "driver"),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_conflict_leaves_ride_untouched(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    resp = await client.post(f"/api/v1/rides/{ride_id}/approve", headers=PM)
    assert resp.status_code == 409

    ride = (await client.get(f"/api/v1/rides/{ride_id}", headers=ADMIN)).json()
    assert ride["status"] == "pending_admin"
    assert ride["approval"]["project_manager"] is None


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_approval(app, client: AsyncClient):
    app.dependency_overrides[get_notifier] = lambda: FailingNotifier()
    ride_id = (await _create(client))["id"]

    resp = await client.post(f"/api/v1/rides/{ride_id}/approve", headers=ADMIN)
    assert resp.status_code == 200

    ride = (await client.get(f"/api/v1/rides/{ride_id}", headers=ADMIN)).json()
    assert ride["status"] == "approved"


@pytest.mark.asyncio
async def test_failed_commit_returns_503_without_notifying(
    client: AsyncClient, notifier, monkeypatch
):
    ride_id = (await _create(client))["id"]

    async def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
    resp = await client.post(f"/api/v1/rides/{ride_id}/approve", headers=ADMIN)
    assert resp.status_code == 503
    assert notifier.sent == []

    monkeypatch.undo()
    ride = (await client.get(f"/api/v1/rides/{ride_id}", headers=ADMIN)).json()
    assert ride["status"] == "pending_admin"
    assert ride["approval"]["admin"] is None


@pytest.mark.asyncio
async def test_user_sees_only_own_rides(client: AsyncClient):
    mine = (await _create(client))["id"]
    await client.post(
        "/api/v1/rides",
        json={"start_location": COLOMBO, "end_location": KANDY},
        headers=actor("u2", "user"),
    )
    rides = (await client.get("/api/v1/rides", headers=USER)).json()
    assert [r["id"] for r in rides] == [mine]

    everything = (await client.get("/api/v1/rides", headers=ADMIN)).json()
    assert len(everything) == 2


@pytest.mark.asyncio
async def test_pm_dashboard_forbidden_for_admin(client: AsyncClient):
    resp = await client.get("/api/v1/rides/pm-dashboard", headers=ADMIN)
    assert resp.status_code == 403
