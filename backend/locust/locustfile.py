"""
Locust Load Test Suite

Tokens are signed locally with the service's SECRET_KEY, the same way the
external auth service would. Tables are read from POST /api/v1/tables
unless LOAD_TABLE_IDS (comma separated) is set.

Run scenarios:
  locust -f locustfile.py --tags contention   # Many guests, one slot
  locust -f locustfile.py --tags retry        # Idempotent retries
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import uuid
from datetime import datetime, timezone, timedelta

import jwt
from locust import HttpUser, task, between, tag

SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key-change-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
TENANT_ID = os.getenv("LOAD_TENANT_ID", "load-test-tenant")
TABLE_IDS = [t for t in os.getenv("LOAD_TABLE_IDS", "").split(",") if t]

# One contested slot: tomorrow 19:00 UTC
CONTESTED_START = (datetime.now(timezone.utc) + timedelta(days=1)).replace(
    hour=19, minute=0, second=0, microsecond=0
)


def tenant_headers(tenant_id: str = TENANT_ID) -> dict:
    token = jwt.encode(
        {"tenant_id": tenant_id, "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        SECRET_KEY,
        algorithm=ALGORITHM,
    )
    return {"Authorization": f"Bearer {token}"}


def random_window() -> tuple[str, str]:
    day = datetime.now(timezone.utc) + timedelta(days=random.randint(2, 30))
    start = day.replace(hour=random.randint(11, 21), minute=random.choice([0, 15, 30, 45]), second=0, microsecond=0)
    return start.isoformat(), (start + timedelta(minutes=90)).isoformat()


class _TenantUser(HttpUser):
    abstract = True

    def on_start(self):
        self.headers = tenant_headers()
        self.table_ids = list(TABLE_IDS)
        if not self.table_ids:
            resp = self.client.post("/api/v1/tables", json={}, headers=self.headers, name="/api/v1/tables [setup]")
            if resp.status_code == 200:
                self.table_ids = [t["id"] for t in resp.json()["data"]]


class ContentionUser(_TenantUser):
    """
    TEST 1: Contention - every user confirms the same table and window

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE table_id = X AND start_at = Y AND status = 'confirmed';
    Should be 1
    """
    wait_time = between(0, 0.1)

    @tag("contention")
    @task
    def confirm_contested_slot(self):
        if not self.table_ids:
            return
        with self.client.post(
            "/api/v1/reservations/confirm",
            json={
                "tableId": self.table_ids[0],
                "start": CONTESTED_START.isoformat(),
                "durationMinutes": 90,
                "partySize": 2,
                "guestName": "Load Tester",
            },
            headers={**self.headers, "x-idempotency-key": str(uuid.uuid4())},
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: someone else got the table
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class RetryUser(_TenantUser):
    """
    TEST 2: Retries - hold, then confirm the same key several times

    Run: locust -f locustfile.py --tags retry -u 50 -r 10 --run-time 60s

    Every retry after the first must answer 200 with the same booking id.
    """
    wait_time = between(0.1, 0.5)

    @tag("retry")
    @task
    def hold_and_confirm_with_retries(self):
        if not self.table_ids:
            return
        key = str(uuid.uuid4())
        start, end = random_window()
        hold = self.client.post(
            "/api/v1/reservations/hold",
            json={
                "tableId": random.choice(self.table_ids),
                "partySize": 2,
                "start": start,
                "end": end,
                "idempotencyKey": key,
            },
            headers=self.headers,
        )
        if hold.status_code != 201:
            return

        body = {"holdId": hold.json()["data"]["holdId"], "guestName": "Retry Tester"}
        headers = {**self.headers, "x-idempotency-key": key}
        first_id = None
        for attempt in range(3):
            with self.client.post(
                "/api/v1/reservations/confirm",
                json=body,
                headers=headers,
                name="/api/v1/reservations/confirm [retry]",
                catch_response=True,
            ) as resp:
                expected = 201 if attempt == 0 else 200
                if resp.status_code != expected:
                    resp.failure(f"Attempt {attempt}: expected {expected}, got {resp.status_code}")
                    return
                booking_id = resp.json()["data"]["id"]
                if first_id is not None and booking_id != first_id:
                    resp.failure("Replay returned a different booking")
                    return
                first_id = booking_id
                resp.success()

    @tag("retry", "read")
    @task(3)
    def rank_tables(self):
        start, end = random_window()
        self.client.post(
            "/api/v1/reservations/availability",
            json={"partySize": random.randint(1, 6), "start": start, "end": end},
            headers=self.headers,
        )

    @tag("retry")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(_TenantUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_idempotency_key(self):
        start, _ = random_window()
        with self.client.post(
            "/api/v1/reservations/confirm",
            json={"tableId": "missing", "start": start, "partySize": 2, "guestName": "No Key"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def past_start(self):
        start = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        with self.client.post(
            "/api/v1/reservations/confirm",
            json={"tableId": "any", "start": start, "partySize": 2, "guestName": "Too Late"},
            headers={**self.headers, "x-idempotency-key": str(uuid.uuid4())},
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def huge_party(self):
        start, end = random_window()
        with self.client.post(
            "/api/v1/reservations/availability",
            json={"partySize": 999, "start": start, "end": end},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/reservations/hold",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/tables", json={}, catch_response=True) as resp:
            self._expect(resp, [401])
