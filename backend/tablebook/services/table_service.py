"""
Table catalog: a tenant's tables with their status right now.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.domain.booking_state import BookingStatus
from tablebook.domain.slots import utcnow
from tablebook.models.booking import Booking
from tablebook.repositories.booking_repository import BookingRepository
from tablebook.repositories.table_repository import TableRepository
from tablebook.schemas.table import TableOut, TableWithStatus
from tablebook.services.cache_service import get_cached_tables, set_cached_tables
from tablebook.services.policy_service import get_policy


def table_status(table: TableOut, bookings: list[Booking], now: datetime) -> str:
    """
    maintenance: table is switched off
    occupied:    an active booking's window contains now
    reserved:    a confirmed booking starts later today
    available:   otherwise
    """
    if not table.active:
        return "maintenance"
    if any(b.start_at <= now < b.end_at for b in bookings):
        return "occupied"
    if any(b.status == BookingStatus.CONFIRMED.value and b.start_at > now for b in bookings):
        return "reserved"
    return "available"


async def _load_tables(db: AsyncSession, tenant_id: str, include_inactive: bool) -> list[TableOut]:
    cached = await get_cached_tables(tenant_id, include_inactive)
    if cached is not None:
        return [TableOut.model_validate(row) for row in cached]

    rows = await TableRepository(db).list_for_tenant(tenant_id, include_inactive=include_inactive)
    tables = [TableOut.model_validate(row) for row in rows]
    await set_cached_tables(tenant_id, include_inactive, [t.model_dump(mode="json") for t in tables])
    return tables


async def list_tables(
    db: AsyncSession,
    tenant_id: str,
    include_inactive: bool = False,
    now: Optional[datetime] = None,
) -> list[TableWithStatus]:
    now = now or utcnow()
    tables = await _load_tables(db, tenant_id, include_inactive)

    policy = await get_policy(db, tenant_id)
    _, day_end = policy.day_bounds(policy.local_date(now))
    bookings = await BookingRepository(db).list_active_between(tenant_id, now, day_end)

    by_table: dict[str, list[Booking]] = {}
    for booking in bookings:
        by_table.setdefault(booking.table_id, []).append(booking)

    return [
        TableWithStatus(**table.model_dump(), status=table_status(table, by_table.get(table.id, []), now))
        for table in tables
    ]


async def section_for(db: AsyncSession, tenant_id: str, table_id: str) -> Optional[str]:
    return await TableRepository(db).section_of(tenant_id, table_id)
