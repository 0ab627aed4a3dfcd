"""
Tests for the table catalog and the tenant boundary in front of it.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY
from sqlalchemy.exc import OperationalError

from tablebook.core.security import create_access_token
from tablebook.models import Booking
from tablebook.repositories.booking_repository import BookingRepository
from tablebook.repositories.table_repository import TableRepository
from tablebook.services import table_service
from tablebook.services.table_service import list_tables

TENANT_ID = "tenant-bistro"


async def seed_booking(db_session, table_id, start, end, status="confirmed"):
    booking = Booking(
        id=str(uuid4()),
        tenant_id=TENANT_ID,
        table_id=table_id,
        start_at=start,
        end_at=end,
        party_size=2,
        guest_name="Seeded Guest",
        status=status,
        idempotency_key=str(uuid4()),
    )
    await BookingRepository(db_session).add(booking)
    await db_session.commit()
    return booking


@pytest.mark.asyncio
async def test_list_tables(client: AsyncClient, auth_headers, tables):
    response = await client.post("/api/v1/tables", json={}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    # Ordered by name; inactive and foreign tables left out
    assert [t["name"] for t in data] == ["M1", "M2", "P1"]
    assert {t["status"] for t in data} == {"available"}
    assert data[0] == {
        "id": "tbl-4",
        "name": "M1",
        "capacity": 4,
        "section": "Main",
        "active": True,
        "status": "available",
    }


@pytest.mark.asyncio
async def test_list_tables_without_body(client: AsyncClient, auth_headers, tables):
    response = await client.post("/api/v1/tables", headers=auth_headers)
    assert response.status_code == 200
    assert len(response.json()["data"]) == 3


@pytest.mark.asyncio
async def test_list_tables_including_inactive(client: AsyncClient, auth_headers, tables):
    response = await client.post("/api/v1/tables", json={"includeInactive": True}, headers=auth_headers)
    data = response.json()["data"]
    assert [t["name"] for t in data] == ["B1", "M1", "M2", "P1"]
    assert data[0]["status"] == "maintenance"


@pytest.mark.asyncio
async def test_table_statuses(db_session, tables, dinner_start):
    """occupied while a booking runs, reserved for a later booking today, available otherwise."""
    lunch = dinner_start.replace(hour=12)
    await seed_booking(db_session, "tbl-4", lunch - timedelta(minutes=30), lunch + timedelta(minutes=60))
    await seed_booking(db_session, "tbl-6", dinner_start, dinner_start + timedelta(minutes=90))
    await seed_booking(db_session, "tbl-2", dinner_start, dinner_start + timedelta(minutes=90), status="cancelled")

    statuses = {t.id: t.status for t in await list_tables(db_session, TENANT_ID, now=lunch)}
    assert statuses == {"tbl-4": "occupied", "tbl-6": "reserved", "tbl-2": "available"}


@pytest.mark.asyncio
async def test_tomorrow_does_not_make_table_reserved(db_session, tables, dinner_start):
    lunch = dinner_start.replace(hour=12)
    await seed_booking(db_session, "tbl-4", dinner_start + timedelta(days=1), dinner_start + timedelta(days=1, hours=1))

    statuses = {t.id: t.status for t in await list_tables(db_session, TENANT_ID, now=lunch)}
    assert statuses["tbl-4"] == "available"


@pytest.mark.asyncio
async def test_table_rows_served_from_cache(db_session, tables, monkeypatch):
    cached_rows = [{"id": "tbl-c", "name": "Cached", "capacity": 2, "section": "Main", "active": True}]

    async def cached(tenant_id, include_inactive):
        return cached_rows

    monkeypatch.setattr(table_service, "get_cached_tables", cached)

    result = await list_tables(db_session, TENANT_ID)
    assert [t.id for t in result] == ["tbl-c"]


@pytest.mark.asyncio
async def test_missing_token(client: AsyncClient, tables):
    response = await client.post("/api/v1/tables", json={})
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "AUTH_REQUIRED"
    assert error["requestId"] == response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient, tables):
    response = await client.post("/api/v1/tables", json={}, headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_INVALID"


@pytest.mark.asyncio
async def test_expired_token(client: AsyncClient, tables):
    token = create_access_token({"tenant_id": TENANT_ID}, expires_delta=timedelta(minutes=-1))
    response = await client.post("/api/v1/tables", json={}, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_INVALID"


@pytest.mark.asyncio
async def test_token_without_tenant(client: AsyncClient, tables):
    token = create_access_token({"sub": "user-1"})
    response = await client.post("/api/v1/tables", json={}, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TENANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient, auth_headers, tables):
    response = await client.post(
        "/api/v1/tables", json={}, headers={**auth_headers, "X-Request-ID": "req-from-gateway"}
    )
    assert response.headers["X-Request-ID"] == "req-from-gateway"
    assert response.json()["requestId"] == "req-from-gateway"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "reservation_confirm_attempts" in response.text


@pytest.mark.asyncio
async def test_storage_failure_is_database_error(client: AsyncClient, auth_headers, tables, monkeypatch):
    async def unreachable(self, tenant_id, include_inactive=False):
        raise OperationalError("SELECT restaurant_tables", {}, Exception("connection refused"))

    monkeypatch.setattr(TableRepository, "list_for_tenant", unreachable)

    response = await client.post("/api/v1/tables", json={}, headers=auth_headers)
    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "DATABASE_ERROR"
    assert "connection refused" not in error["message"]
    assert error["requestId"] == response.headers["X-Request-ID"]


def attempts(outcome: str) -> float:
    return REGISTRY.get_sample_value("reservation_confirm_attempts_total", {"status": outcome}) or 0.0


@pytest.mark.asyncio
async def test_confirm_outcomes_are_counted(client: AsyncClient, auth_headers, tables, dinner_start):
    before = {outcome: attempts(outcome) for outcome in ("success", "replay", "conflict", "rejected")}
    body = {"tableId": "tbl-4", "start": dinner_start.isoformat(), "partySize": 2, "guestName": "Jane Doe"}

    await client.post("/api/v1/reservations/confirm", json=body, headers={**auth_headers, "x-idempotency-key": "m1"})
    await client.post("/api/v1/reservations/confirm", json=body, headers={**auth_headers, "x-idempotency-key": "m1"})
    await client.post("/api/v1/reservations/confirm", json=body, headers={**auth_headers, "x-idempotency-key": "m2"})
    await client.post(
        "/api/v1/reservations/confirm",
        json={**body, "partySize": 9},
        headers={**auth_headers, "x-idempotency-key": "m3"},
    )

    assert attempts("success") - before["success"] == 1
    assert attempts("replay") - before["replay"] == 1
    assert attempts("conflict") - before["conflict"] == 1
    assert attempts("rejected") - before["rejected"] == 1
