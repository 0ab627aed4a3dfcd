"""
Tests for the confirm endpoint: idempotent replay, validation, and the
hold -> confirm flow.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from tablebook.models import Booking, BookingHold, IdempotencyRecord, RestaurantTable


def raw_confirm(table_id, start, end=None, party_size=2, guest_name="Jane Doe", **extra):
    body = {
        "tableId": table_id,
        "start": start.isoformat(),
        "partySize": party_size,
        "guestName": guest_name,
        **extra,
    }
    if end is not None:
        body["end"] = end.isoformat()
    return body


async def count_bookings(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(Booking))).scalar_one()


@pytest.mark.asyncio
async def test_confirm_raw_slot(client: AsyncClient, auth_headers, tables, dinner_start, dinner_end):
    """A free slot confirms with 201 and a confirmation code."""
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, dinner_end, party_size=3, guestEmail="jane@example.com"),
        headers={**auth_headers, "x-idempotency-key": "key-raw"},
    )
    assert response.status_code == 201
    body = response.json()
    data = body["data"]
    assert data["status"] == "confirmed"
    assert data["tableId"] == "tbl-4"
    assert data["section"] == "Main"
    assert data["partySize"] == 3
    assert data["channel"] == "web"
    assert data["confirmationCode"] == "CONF" + data["id"].replace("-", "")[-6:].upper()
    assert body["requestId"] == response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_jane_doe_replay_ignores_new_payload(
    client: AsyncClient, auth_headers, tables, db_session, dinner_start, dinner_end
):
    """Hold, confirm with K1, confirm again with K1 and a different guest: original booking wins."""
    hold = await client.post(
        "/api/v1/reservations/hold",
        json={
            "tableId": "tbl-4",
            "partySize": 4,
            "start": dinner_start.isoformat(),
            "end": dinner_end.isoformat(),
            "idempotencyKey": "K1",
        },
        headers=auth_headers,
    )
    assert hold.status_code == 201
    hold_id = hold.json()["data"]["holdId"]

    first = await client.post(
        "/api/v1/reservations/confirm",
        json={"holdId": hold_id, "guestName": "Jane Doe"},
        headers={**auth_headers, "x-idempotency-key": "K1"},
    )
    assert first.status_code == 201
    booking = first.json()["data"]
    assert booking["status"] == "confirmed"
    assert booking["tableId"] == "tbl-4"
    assert booking["guestName"] == "Jane Doe"

    replay = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-6", dinner_start + timedelta(hours=1), party_size=5, guest_name="John Smith"),
        headers={**auth_headers, "x-idempotency-key": "K1"},
    )
    assert replay.status_code == 200
    assert replay.json()["data"] == booking

    assert await count_bookings(db_session) == 1
    ledger = (await db_session.execute(select(IdempotencyRecord))).scalars().all()
    assert [(r.idempotency_key, r.booking_id) for r in ledger] == [("K1", booking["id"])]
    # The hold was consumed with the booking
    assert (await db_session.execute(select(BookingHold))).scalars().all() == []


@pytest.mark.asyncio
async def test_same_key_in_other_tenant_is_independent(
    client: AsyncClient, auth_headers, other_tenant_headers, tables, dinner_start, dinner_end
):
    first = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, dinner_end),
        headers={**auth_headers, "x-idempotency-key": "shared-key"},
    )
    second = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-x", dinner_start, dinner_end),
        headers={**other_tenant_headers, "x-idempotency-key": "shared-key"},
    )
    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["data"]["id"] != second.json()["data"]["id"]


@pytest.mark.asyncio
async def test_missing_idempotency_key(client: AsyncClient, auth_headers, tables, db_session, dinner_start):
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start),
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_IDEMPOTENCY_KEY"
    assert await count_bookings(db_session) == 0


@pytest.mark.asyncio
async def test_touching_windows_both_admitted(client: AsyncClient, auth_headers, tables, db_session, dinner_start):
    """[10:00, 11:00) and [11:00, 12:00) on one table do not conflict."""
    ten = dinner_start.replace(hour=10)
    eleven = ten + timedelta(hours=1)
    first = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", ten, eleven),
        headers={**auth_headers, "x-idempotency-key": "morning-1"},
    )
    second = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", eleven, eleven + timedelta(hours=1)),
        headers={**auth_headers, "x-idempotency-key": "morning-2"},
    )
    assert first.status_code == 201
    assert second.status_code == 201
    assert await count_bookings(db_session) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "first_window,second_window",
    [
        ((0, 20), (20, 80)),   # touching at 18:20
        ((0, 5), (10, 14)),    # gap inside one quarter hour
        ((7, 52), (52, 113)),  # touching, both ends off the quarter hour
    ],
)
async def test_windows_off_the_quarter_hour_admitted(
    client: AsyncClient, auth_headers, tables, db_session, dinner_start, first_window, second_window
):
    """Non-overlapping windows never conflict, however their minutes fall."""
    for key, (start_min, end_min) in (("early", first_window), ("late", second_window)):
        response = await client.post(
            "/api/v1/reservations/confirm",
            json=raw_confirm(
                "tbl-4",
                dinner_start + timedelta(minutes=start_min),
                dinner_start + timedelta(minutes=end_min),
            ),
            headers={**auth_headers, "x-idempotency-key": key},
        )
        assert response.status_code == 201, response.text
    assert await count_bookings(db_session) == 2


@pytest.mark.asyncio
async def test_one_minute_overlap_conflicts(client: AsyncClient, auth_headers, tables, db_session, dinner_start):
    first = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, dinner_start + timedelta(minutes=21)),
        headers={**auth_headers, "x-idempotency-key": "runs-long"},
    )
    second = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start + timedelta(minutes=20), dinner_start + timedelta(minutes=80)),
        headers={**auth_headers, "x-idempotency-key": "starts-early"},
    )
    assert first.status_code == 201
    assert second.status_code == 409
    assert await count_bookings(db_session) == 1


@pytest.mark.asyncio
async def test_confirm_bumps_table_lock_version(client: AsyncClient, auth_headers, tables, db_session, dinner_start):
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start),
        headers={**auth_headers, "x-idempotency-key": "locks-table"},
    )
    assert response.status_code == 201

    versions = dict(
        (await db_session.execute(select(RestaurantTable.id, RestaurantTable.lock_version))).all()
    )
    assert versions["tbl-4"] == 1
    assert versions["tbl-6"] == 0


@pytest.mark.asyncio
async def test_overlapping_window_conflicts(client: AsyncClient, auth_headers, tables, db_session, dinner_start, dinner_end):
    first = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, dinner_end),
        headers={**auth_headers, "x-idempotency-key": "first"},
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start + timedelta(minutes=30), dinner_end + timedelta(minutes=30)),
        headers={**auth_headers, "x-idempotency-key": "second"},
    )
    assert second.status_code == 409
    error = second.json()["error"]
    assert error["code"] == "RESERVATION_CONFLICT"
    assert error["requestId"] == second.headers["X-Request-ID"]
    assert await count_bookings(db_session) == 1


@pytest.mark.asyncio
async def test_failed_confirm_leaves_key_reusable(client: AsyncClient, auth_headers, tables, dinner_start):
    """Only successes are recorded in the ledger."""
    rejected = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, party_size=6),
        headers={**auth_headers, "x-idempotency-key": "retry-me"},
    )
    assert rejected.status_code == 400

    accepted = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-6", dinner_start, party_size=6),
        headers={**auth_headers, "x-idempotency-key": "retry-me"},
    )
    assert accepted.status_code == 201


@pytest.mark.asyncio
async def test_capacity_enforced(client: AsyncClient, auth_headers, tables, db_session, dinner_start):
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, party_size=6),
        headers={**auth_headers, "x-idempotency-key": "too-big"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert "capacity" in response.json()["error"]["message"]
    assert await count_bookings(db_session) == 0


@pytest.mark.asyncio
async def test_party_above_policy_maximum(client: AsyncClient, auth_headers, tables, dinner_start):
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, party_size=21),
        headers={**auth_headers, "x-idempotency-key": "huge"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_past_start_rejected(client: AsyncClient, auth_headers, tables, db_session):
    yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).replace(microsecond=0)
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", yesterday),
        headers={**auth_headers, "x-idempotency-key": "late"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "RESERVATION_PAST_TIME"
    assert await count_bookings(db_session) == 0


@pytest.mark.asyncio
async def test_end_before_start_rejected(client: AsyncClient, auth_headers, tables, dinner_start):
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, dinner_start - timedelta(minutes=30)),
        headers={**auth_headers, "x-idempotency-key": "backwards"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "RESERVATION_INVALID_TIME"


@pytest.mark.asyncio
async def test_duration_defaults_to_policy(client: AsyncClient, auth_headers, tables, dinner_start):
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start),
        headers={**auth_headers, "x-idempotency-key": "default-duration"},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    end = datetime.fromisoformat(data["end"].replace("Z", "+00:00"))
    assert end - dinner_start == timedelta(minutes=90)


@pytest.mark.asyncio
async def test_duration_minutes_sets_end(client: AsyncClient, auth_headers, tables, dinner_start):
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-4", dinner_start, durationMinutes=60),
        headers={**auth_headers, "x-idempotency-key": "one-hour"},
    )
    assert response.status_code == 201
    end = datetime.fromisoformat(response.json()["data"]["end"].replace("Z", "+00:00"))
    assert end - dinner_start == timedelta(minutes=60)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field,value",
    [
        ("guestName", "J"),
        ("guestName", "R2D2"),
        ("guestEmail", "not-an-email"),
        ("guestPhone", "12"),
        ("specialRequests", "<script>alert(1)</script>"),
        ("specialRequests", "x" * 501),
    ],
)
async def test_guest_details_validated(client: AsyncClient, auth_headers, tables, dinner_start, field, value):
    body = raw_confirm("tbl-4", dinner_start)
    body[field] = value
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=body,
        headers={**auth_headers, "x-idempotency-key": f"bad-{field}"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_guest_details_normalised(client: AsyncClient, auth_headers, tables, dinner_start):
    body = raw_confirm(
        "tbl-4",
        dinner_start,
        guest_name="Mary-Jane O'Neil",
        guestPhone="+1 (415) 555-0100",
        specialRequests="VIP, window seat",
        channel="Walk-In",
    )
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=body,
        headers={**auth_headers, "x-idempotency-key": "normalised"},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["guestPhone"] == "+14155550100"
    assert data["channel"] == "walkin"
    assert data["vip"] is True


@pytest.mark.asyncio
async def test_unknown_and_inactive_tables(client: AsyncClient, auth_headers, tables, dinner_start):
    unknown = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-404", dinner_start),
        headers={**auth_headers, "x-idempotency-key": "unknown"},
    )
    assert unknown.status_code == 404
    assert unknown.json()["error"]["code"] == "NOT_FOUND"

    # Another tenant's table is invisible
    foreign = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-x", dinner_start),
        headers={**auth_headers, "x-idempotency-key": "foreign"},
    )
    assert foreign.status_code == 404

    inactive = await client.post(
        "/api/v1/reservations/confirm",
        json=raw_confirm("tbl-8", dinner_start),
        headers={**auth_headers, "x-idempotency-key": "inactive"},
    )
    assert inactive.status_code == 400


@pytest.mark.asyncio
async def test_confirm_requires_hold_or_slot(client: AsyncClient, auth_headers, tables):
    response = await client.post(
        "/api/v1/reservations/confirm",
        json={"guestName": "Jane Doe"},
        headers={**auth_headers, "x-idempotency-key": "nothing"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_naive_datetime_rejected(client: AsyncClient, auth_headers, tables, dinner_start):
    body = raw_confirm("tbl-4", dinner_start)
    body["start"] = dinner_start.replace(tzinfo=None).isoformat()
    response = await client.post(
        "/api/v1/reservations/confirm",
        json=body,
        headers={**auth_headers, "x-idempotency-key": "naive"},
    )
    assert response.status_code == 400
