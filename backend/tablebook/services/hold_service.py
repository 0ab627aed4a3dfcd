"""
Hold manager.

A hold lets the widget show "this slot is being held" while the guest
types their details, and carries the idempotency key through to confirm.
It never guarantees the slot: confirm re-validates everything.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.core.errors import (
    BookingError,
    HoldNotFoundError,
    NotFoundError,
    ReservationConflictError,
    ValidationError,
)
from tablebook.core.logging import get_logger
from tablebook.core.metrics import record_hold
from tablebook.domain.hold import HoldRecord
from tablebook.domain.slots import utcnow
from tablebook.domain.validation import validate_party_size, validate_window
from tablebook.repositories.table_repository import TableRepository
from tablebook.services.conflict_service import has_conflict
from tablebook.services.interfaces.hold_store import HoldStore
from tablebook.services.policy_service import get_policy

logger = get_logger(__name__)


def _same_slot(hold: HoldRecord, table_id: str, party_size: int, start: datetime, end: datetime) -> bool:
    return (hold.table_id, hold.party_size, hold.start, hold.end) == (table_id, party_size, start, end)


async def create_hold(
    db: AsyncSession,
    hold_store: HoldStore,
    tenant_id: str,
    table_id: str,
    party_size: int,
    start: datetime,
    end: datetime,
    idempotency_key: str,
    now: Optional[datetime] = None,
) -> tuple[HoldRecord, bool]:
    """
    Create a hold, or return the live hold already created with this key.
    Returns (hold, reused).
    """
    now = now or utcnow()

    existing = await hold_store.find_by_idempotency_key(tenant_id, idempotency_key)
    if existing is not None and not existing.is_expired(now):
        if not _same_slot(existing, table_id, party_size, start, end):
            record_hold("rejected")
            raise ValidationError("Idempotency key already used for a different hold")
        record_hold("reused")
        logger.info("hold_reused", hold_id=existing.id, table_id=table_id)
        return existing, True

    try:
        validate_window(start, end, now)
        policy = await get_policy(db, tenant_id)
        table = await TableRepository(db).get(tenant_id, table_id)
        if table is None:
            raise NotFoundError("Table not found")
        if not table.active:
            raise ValidationError("Table is not available for booking")
        validate_party_size(party_size, policy.max_party_size, table.capacity)
    except BookingError as e:
        record_hold("rejected")
        logger.info("hold_rejected", table_id=table_id, code=e.code, reason=e.message)
        raise

    # Best effort only; fails fast for slots that are obviously taken
    if await has_conflict(db, tenant_id, table_id, start, end):
        record_hold("conflict")
        logger.warning("hold_conflict", table_id=table_id, start=start.isoformat(), end=end.isoformat())
        raise ReservationConflictError()

    hold = HoldRecord(
        tenant_id=tenant_id,
        table_id=table_id,
        party_size=party_size,
        start=start,
        end=end,
        idempotency_key=idempotency_key,
        created_at=now,
        expires_at=now + timedelta(minutes=policy.hold_ttl_minutes),
    )
    await hold_store.save(hold)

    record_hold("created")
    logger.info(
        "hold_created",
        hold_id=hold.id,
        table_id=table_id,
        party_size=party_size,
        expires_at=hold.expires_at.isoformat(),
    )
    return hold, False


async def get_live_hold(
    hold_store: HoldStore,
    tenant_id: str,
    hold_id: str,
    now: Optional[datetime] = None,
) -> HoldRecord:
    """The hold, if it exists in this tenant and has not expired."""
    hold = await hold_store.get(tenant_id, hold_id)
    if hold is None or hold.is_expired(now or utcnow()):
        raise HoldNotFoundError()
    return hold
