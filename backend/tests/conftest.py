"""
Pytest fixtures for test database, client, and tenant authentication.

Runs against a throwaway SQLite file per test (or TEST_DATABASE_URL when
set). Every HTTP request gets its own session, as in production, so
concurrent requests in one test really race each other.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

os.environ.setdefault("REDIS_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tablebook.main import app
from tablebook.core.security import create_access_token
from tablebook.db.base import Base
from tablebook.db.session import get_db
from tablebook.models import RestaurantTable

TENANT_ID = "tenant-bistro"
OTHER_TENANT_ID = "tenant-diner"


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Fresh schema per test, dropped afterwards."""
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'tablebook_test.db'}"
    test_engine = create_async_engine(url, echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each run on their own test-database session."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Bearer token for the default tenant."""
    token = create_access_token(data={"tenant_id": TENANT_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_tenant_headers() -> dict:
    token = create_access_token(data={"tenant_id": OTHER_TENANT_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def dinner_start() -> datetime:
    """18:00 UTC on January 15th next year: always in the future."""
    return datetime(datetime.now(timezone.utc).year + 1, 1, 15, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def dinner_end(dinner_start) -> datetime:
    return dinner_start + timedelta(minutes=90)


@pytest_asyncio.fixture
async def tables(db_session: AsyncSession) -> dict[str, RestaurantTable]:
    """
    A small floor for the default tenant:
      tbl-2 (2, Patio), tbl-4 (4, Main), tbl-6 (6, Main), tbl-8 (8, Bar, inactive)
    plus one table owned by another tenant.
    """
    rows = [
        RestaurantTable(id="tbl-2", tenant_id=TENANT_ID, name="P1", capacity=2, section="Patio"),
        RestaurantTable(id="tbl-4", tenant_id=TENANT_ID, name="M1", capacity=4, section="Main"),
        RestaurantTable(id="tbl-6", tenant_id=TENANT_ID, name="M2", capacity=6, section="Main"),
        RestaurantTable(id="tbl-8", tenant_id=TENANT_ID, name="B1", capacity=8, section="Bar", active=False),
        RestaurantTable(id="tbl-x", tenant_id=OTHER_TENANT_ID, name="X1", capacity=4, section="Main"),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return {row.id: row for row in rows}
