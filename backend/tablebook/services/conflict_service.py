"""
Conflict detector.

has_conflict() is a plain read. On its own it leaves a check-then-insert
race: two writers can both see a free table and both insert.

claim_table() closes that race. It write-locks the table row first and
only then runs the overlap check, all inside the caller's transaction, so
writers for one table are serialised and each one sees the bookings its
predecessors committed.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.core.config import get_settings
from tablebook.core.errors import NotFoundError, ReservationConflictError
from tablebook.domain.slots import windows_overlap
from tablebook.models.booking import Booking
from tablebook.repositories.booking_repository import BookingRepository
from tablebook.repositories.table_repository import TableRepository

settings = get_settings()


def prefilter_padding() -> timedelta:
    return timedelta(hours=settings.CONFLICT_PREFILTER_HOURS)


def overlapping(bookings: list[Booking], start: datetime, end: datetime) -> list[Booking]:
    return [b for b in bookings if windows_overlap(start, end, b.start_at, b.end_at)]


async def find_conflicts(
    db: AsyncSession,
    tenant_id: str,
    table_id: str,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[str] = None,
) -> list[Booking]:
    candidates = await BookingRepository(db).find_conflicting(
        tenant_id,
        start,
        end,
        prefilter_padding(),
        table_ids=[table_id],
        exclude_booking_id=exclude_booking_id,
    )
    return overlapping(candidates, start, end)


async def has_conflict(
    db: AsyncSession,
    tenant_id: str,
    table_id: str,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[str] = None,
) -> bool:
    """True if an active booking on the table overlaps [start, end)."""
    conflicts = await find_conflicts(db, tenant_id, table_id, start, end, exclude_booking_id)
    return bool(conflicts)


async def claim_table(
    db: AsyncSession,
    tenant_id: str,
    table_id: str,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[str] = None,
) -> None:
    """
    Lock the table for this transaction, then make sure [start, end) is free.

    Must be called inside the transaction that writes the booking; the
    lock is released by its commit or rollback.
    """
    if not await TableRepository(db).lock_for_write(tenant_id, table_id):
        raise NotFoundError("Table not found")
    if await has_conflict(db, tenant_id, table_id, start, end, exclude_booking_id):
        raise ReservationConflictError()
