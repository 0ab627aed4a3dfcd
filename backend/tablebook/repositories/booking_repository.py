"""
Typed queries over bookings and the idempotency ledger. Callers never
compose filters themselves; each access path the booking engine needs
has a named method here.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.domain.booking_state import ACTIVE_STATUSES
from tablebook.models.booking import Booking
from tablebook.models.idempotency import IdempotencyRecord
from tablebook.models.table import RestaurantTable

ACTIVE_STATUS_VALUES = tuple(s.value for s in ACTIVE_STATUSES)


class BookingRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking).where(Booking.tenant_id == tenant_id, Booking.id == booking_id)
        )
        return result.scalar_one_or_none()

    async def find_by_idempotency_key(self, tenant_id: str, idempotency_key: str) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking)
            .join(IdempotencyRecord, IdempotencyRecord.booking_id == Booking.id)
            .where(
                IdempotencyRecord.tenant_id == tenant_id,
                IdempotencyRecord.idempotency_key == idempotency_key,
                Booking.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_conflicting(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        padding: timedelta,
        table_ids: Optional[Iterable[str]] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> list[Booking]:
        """
        Active bookings near [start, end), padded on both sides.

        This is a coarse prefilter for the index; the exact overlap test
        is applied by the conflict detector.
        """
        query = select(Booking).where(
            Booking.tenant_id == tenant_id,
            Booking.status.in_(ACTIVE_STATUS_VALUES),
            Booking.start_at < end + padding,
            Booking.end_at > start - padding,
        )
        if table_ids is not None:
            query = query.where(Booking.table_id.in_(list(table_ids)))
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_active_between(self, tenant_id: str, start: datetime, end: datetime) -> list[Booking]:
        """Active bookings whose window intersects [start, end)."""
        result = await self.db.execute(
            select(Booking).where(
                Booking.tenant_id == tenant_id,
                Booking.status.in_(ACTIVE_STATUS_VALUES),
                Booking.start_at < end,
                Booking.end_at > start,
            )
        )
        return list(result.scalars().all())

    async def list_for_day(
        self,
        tenant_id: str,
        day_start: datetime,
        day_end: datetime,
        section: Optional[str] = None,
        status: Optional[str] = None,
        channel: Optional[str] = None,
    ) -> list[tuple[Booking, str]]:
        query = (
            select(Booking, RestaurantTable.section)
            .join(
                RestaurantTable,
                (RestaurantTable.id == Booking.table_id) & (RestaurantTable.tenant_id == Booking.tenant_id),
            )
            .where(
                Booking.tenant_id == tenant_id,
                Booking.start_at >= day_start,
                Booking.start_at < day_end,
            )
        )
        if section is not None:
            query = query.where(RestaurantTable.section == section)
        if status is not None:
            query = query.where(Booking.status == status)
        if channel is not None:
            query = query.where(Booking.channel == channel)
        result = await self.db.execute(query.order_by(Booking.start_at.asc(), Booking.id.asc()))
        return [(booking, section) for booking, section in result.all()]

    async def add(self, booking: Booking) -> None:
        self.db.add(booking)
        await self.db.flush()

    def add_ledger_entry(self, tenant_id: str, idempotency_key: str, booking_id: str) -> None:
        self.db.add(
            IdempotencyRecord(
                tenant_id=tenant_id,
                idempotency_key=idempotency_key,
                booking_id=booking_id,
            )
        )
