"""
Holds kept as rows in the relational store, next to the bookings they
become. Works in the caller's session; nothing here commits.
"""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.domain.hold import HoldRecord
from tablebook.models.hold import BookingHold
from tablebook.services.interfaces.hold_store import HoldStore


def _to_record(row: BookingHold) -> HoldRecord:
    return HoldRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        table_id=row.table_id,
        party_size=row.party_size,
        start=row.start_at,
        end=row.end_at,
        idempotency_key=row.idempotency_key,
        created_at=row.created_at,
        expires_at=row.expires_at,
    )


class SqlHoldStore(HoldStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, hold: HoldRecord) -> None:
        self.db.add(
            BookingHold(
                id=hold.id,
                tenant_id=hold.tenant_id,
                table_id=hold.table_id,
                party_size=hold.party_size,
                start_at=hold.start,
                end_at=hold.end,
                idempotency_key=hold.idempotency_key,
                created_at=hold.created_at,
                expires_at=hold.expires_at,
            )
        )
        await self.db.flush()

    async def get(self, tenant_id: str, hold_id: str) -> Optional[HoldRecord]:
        result = await self.db.execute(
            select(BookingHold).where(BookingHold.tenant_id == tenant_id, BookingHold.id == hold_id)
        )
        row = result.scalar_one_or_none()
        return _to_record(row) if row else None

    async def find_by_idempotency_key(self, tenant_id: str, idempotency_key: str) -> Optional[HoldRecord]:
        result = await self.db.execute(
            select(BookingHold)
            .where(BookingHold.tenant_id == tenant_id, BookingHold.idempotency_key == idempotency_key)
            .order_by(BookingHold.created_at.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return _to_record(row) if row else None

    async def consume(self, tenant_id: str, hold_id: str) -> None:
        await self.db.execute(
            delete(BookingHold).where(BookingHold.tenant_id == tenant_id, BookingHold.id == hold_id)
        )
