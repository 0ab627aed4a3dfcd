"""
Idempotency ledger.

Every confirm consults the ledger before doing anything else. An entry is
written in the same transaction as the booking it points to, so a key is
either fully bound to one booking or not bound at all.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.core.errors import MissingIdempotencyKeyError, ValidationError
from tablebook.models.booking import Booking
from tablebook.repositories.booking_repository import BookingRepository

MAX_KEY_LENGTH = 255


def require_key(idempotency_key: Optional[str]) -> str:
    key = (idempotency_key or "").strip()
    if not key:
        raise MissingIdempotencyKeyError()
    if len(key) > MAX_KEY_LENGTH:
        raise ValidationError(f"Idempotency key must not exceed {MAX_KEY_LENGTH} characters")
    return key


async def lookup(db: AsyncSession, tenant_id: str, idempotency_key: str) -> Optional[Booking]:
    return await BookingRepository(db).find_by_idempotency_key(tenant_id, idempotency_key)


def record(db: AsyncSession, tenant_id: str, idempotency_key: str, booking_id: str) -> None:
    """Stage the ledger entry; it commits with the booking."""
    BookingRepository(db).add_ledger_entry(tenant_id, idempotency_key, booking_id)
