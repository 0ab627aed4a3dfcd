"""
Reservation service: the confirm (write) path, plus list and update.

CONCURRENCY STRATEGY: Ledger first, per-table lock before the write
===================================================================

Problem:
  Two confirms for overlapping windows on the same table both run the
  conflict check, both see a free table, both insert.
  Result: Double booking.

  A client times out, retries with the same idempotency key, and the
  first attempt had actually committed.
  Result: Duplicate booking.

Solution:
  1. Look the (tenant, idempotency key) up in the ledger. A hit returns
     the stored booking untouched.
  2. Validate input and run the conflict check (no lock yet).
  3. Open the write: UPDATE the table row (lock_version + 1). Other writers
     for the same table block on that row until this transaction ends.
  4. Re-run the conflict check under the lock, insert the booking and the
     ledger entry, consume the hold, commit.
  5. Whichever writer loses a race finds out in step 4, either from the
     locked re-check or from an IntegrityError (ledger primary key, or the
     PostgreSQL exclusion constraint). Roll back and look in the ledger:
       - key found -> the other writer handled this very request; return
                      its booking as a replay
       - otherwise -> the table was taken; RESERVATION_CONFLICT

  The check in step 2 keeps the common case cheap and lock-free for
  requests that are going to fail anyway; the locked re-check in step 4
  is the one that counts.
"""

import time
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.core.errors import (
    BookingError,
    DatabaseError,
    NotFoundError,
    ReservationConflictError,
    ValidationError,
)
from tablebook.core.logging import get_logger
from tablebook.core.metrics import confirm_latency, record_reservation_attempt, record_transition
from tablebook.domain.booking_state import BookingStatus, assert_booking_transition, is_active, parse_status
from tablebook.domain.slots import utcnow
from tablebook.domain.validation import (
    validate_guest_email,
    validate_guest_name,
    validate_guest_phone,
    validate_party_size,
    validate_special_requests,
    validate_window,
)
from tablebook.models.booking import Booking
from tablebook.repositories.booking_repository import BookingRepository
from tablebook.repositories.table_repository import TableRepository
from tablebook.schemas.reservation import ConfirmRequest, ListReservationsRequest, UpdateReservationRequest
from tablebook.services import idempotency_service
from tablebook.services.conflict_service import claim_table, has_conflict
from tablebook.services.hold_service import get_live_hold
from tablebook.services.interfaces.hold_store import HoldStore
from tablebook.services.policy_service import BookingPolicy, get_policy

logger = get_logger(__name__)


async def _resolve_slot(
    hold_store: HoldStore,
    tenant_id: str,
    idempotency_key: str,
    request: ConfirmRequest,
    policy: BookingPolicy,
    now: datetime,
) -> tuple[str, datetime, datetime, int, Optional[str]]:
    """(table_id, start, end, party_size, hold_id) for the booking to create."""
    if request.hold_id is not None:
        hold = await get_live_hold(hold_store, tenant_id, request.hold_id, now)
        if hold.idempotency_key != idempotency_key:
            raise ValidationError("Idempotency key does not match the hold")
        return hold.table_id, hold.start, hold.end, hold.party_size, hold.id

    start = request.start
    if request.end is not None:
        end = request.end
    else:
        end = start + timedelta(minutes=request.duration_minutes or policy.default_duration_minutes)
    return request.table_id, start, end, request.party_size, None


async def confirm_reservation(
    db: AsyncSession,
    hold_store: HoldStore,
    tenant_id: str,
    idempotency_key: str,
    request: ConfirmRequest,
    now: Optional[datetime] = None,
) -> tuple[Booking, bool]:
    """
    Turn a hold (or a raw slot) into a confirmed booking.

    Returns (booking, replayed). A replay is the booking an earlier call
    with the same idempotency key created, returned unchanged.
    """
    started = time.perf_counter()
    try:
        return await _confirm(db, hold_store, tenant_id, idempotency_key, request, now)
    finally:
        confirm_latency.observe(time.perf_counter() - started)


async def _replay(db: AsyncSession, tenant_id: str, idempotency_key: str) -> Optional[Booking]:
    existing = await idempotency_service.lookup(db, tenant_id, idempotency_key)
    if existing is not None:
        record_reservation_attempt("replay")
        logger.info("reservation_replayed", booking_id=existing.id)
    return existing


async def _confirm(
    db: AsyncSession,
    hold_store: HoldStore,
    tenant_id: str,
    idempotency_key: str,
    request: ConfirmRequest,
    now: Optional[datetime],
) -> tuple[Booking, bool]:
    existing = await _replay(db, tenant_id, idempotency_key)
    if existing is not None:
        return existing, True

    now = now or utcnow()
    policy = await get_policy(db, tenant_id)

    try:
        table_id, start, end, party_size, hold_id = await _resolve_slot(
            hold_store, tenant_id, idempotency_key, request, policy, now
        )
        validate_window(start, end, now)
        validate_party_size(party_size, policy.max_party_size)
        guest_name = validate_guest_name(request.guest_name)
        guest_email = validate_guest_email(request.guest_email)
        guest_phone = validate_guest_phone(request.guest_phone)
        special_requests = validate_special_requests(request.special_requests)

        table = await TableRepository(db).get(tenant_id, table_id)
        if table is None:
            raise NotFoundError("Table not found")
        if not table.active:
            raise ValidationError("Table is not available for booking")
        validate_party_size(party_size, policy.max_party_size, table.capacity)
    except BookingError as e:
        # A concurrent call with this key may have committed meanwhile
        existing = await _replay(db, tenant_id, idempotency_key)
        if existing is not None:
            return existing, True
        record_reservation_attempt("rejected")
        logger.info("reservation_rejected", code=e.code, reason=e.message)
        raise

    if await has_conflict(db, tenant_id, table_id, start, end):
        existing = await _replay(db, tenant_id, idempotency_key)
        if existing is not None:
            return existing, True
        record_reservation_attempt("conflict")
        logger.warning("reservation_conflict", table_id=table_id, start=start.isoformat(), end=end.isoformat())
        raise ReservationConflictError()

    booking = Booking(
        id=str(uuid4()),
        tenant_id=tenant_id,
        table_id=table_id,
        start_at=start,
        end_at=end,
        party_size=party_size,
        guest_name=guest_name,
        guest_email=guest_email,
        guest_phone=guest_phone,
        special_requests=special_requests,
        channel=request.channel,
        status=BookingStatus.CONFIRMED.value,
        idempotency_key=idempotency_key,
        created_at=now,
        updated_at=now,
    )

    try:
        await claim_table(db, tenant_id, table_id, start, end)
        await BookingRepository(db).add(booking)
        idempotency_service.record(db, tenant_id, idempotency_key, booking.id)
        if hold_id is not None:
            await hold_store.consume(tenant_id, hold_id)
        await db.commit()
    except (ReservationConflictError, IntegrityError):
        await db.rollback()
        existing = await _replay(db, tenant_id, idempotency_key)
        if existing is not None:
            return existing, True
        record_reservation_attempt("conflict")
        logger.warning("reservation_conflict_on_write", table_id=table_id, start=start.isoformat())
        raise ReservationConflictError() from None
    except SQLAlchemyError as e:
        await db.rollback()
        record_reservation_attempt("error")
        logger.error("reservation_write_failed", error=str(e))
        raise DatabaseError() from e

    record_reservation_attempt("success")
    logger.info(
        "reservation_confirmed",
        booking_id=booking.id,
        table_id=table_id,
        party_size=party_size,
        start=start.isoformat(),
        via_hold=hold_id is not None,
    )
    return booking, False


async def get_reservation(db: AsyncSession, tenant_id: str, reservation_id: str) -> Booking:
    booking = await BookingRepository(db).get(tenant_id, reservation_id)
    if booking is None:
        raise NotFoundError("Reservation not found")
    return booking


def _filter_value(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip().lower() in ("", "all"):
        return None
    return value.strip()


async def list_reservations(
    db: AsyncSession,
    tenant_id: str,
    request: ListReservationsRequest,
) -> list[tuple[Booking, str]]:
    """Bookings starting on the given local day, with their table's section."""
    policy = await get_policy(db, tenant_id)
    day_start, day_end = policy.day_bounds(request.date)

    filters = request.filters
    status = _filter_value(filters.status)
    channel = _filter_value(filters.channel)

    return await BookingRepository(db).list_for_day(
        tenant_id,
        day_start,
        day_end,
        section=_filter_value(filters.section),
        status=parse_status(status).value if status else None,
        channel=channel.lower().replace("_", "").replace("-", "") if channel else None,
    )


async def update_reservation(
    db: AsyncSession,
    tenant_id: str,
    request: UpdateReservationRequest,
) -> Booking:
    """
    Apply only the supplied fields. Moves are re-checked for capacity and
    conflicts; status changes go through the state machine.
    """
    if request.table_id is None and request.start is None and request.end is None and request.status is None:
        raise ValidationError("Nothing to update")
    if (request.start is None) != (request.end is None):
        raise ValidationError("start and end must be supplied together")
    if request.start is not None and request.end <= request.start:
        raise ValidationError("Invalid start/end")

    booking = await get_reservation(db, tenant_id, request.reservation_id)
    previous_status = booking.status

    target_status = parse_status(request.status) if request.status is not None else parse_status(booking.status)
    if target_status.value != booking.status:
        assert_booking_transition(booking.status, target_status)

    new_table_id = request.table_id or booking.table_id
    new_start = request.start or booking.start_at
    new_end = request.end or booking.end_at
    moving = (new_table_id, new_start, new_end) != (booking.table_id, booking.start_at, booking.end_at)
    claims_window = is_active(target_status) and (moving or not is_active(previous_status))

    if moving:
        if not is_active(booking.status):
            raise ValidationError("Only confirmed or seated reservations can be moved")
        table = await TableRepository(db).get(tenant_id, new_table_id)
        if table is None:
            raise NotFoundError("Table not found")
        if not table.active:
            raise ValidationError("Table is not available for booking")
        policy = await get_policy(db, tenant_id)
        validate_party_size(booking.party_size, policy.max_party_size, table.capacity)

    booking_id = booking.id
    try:
        if claims_window:
            await claim_table(db, tenant_id, new_table_id, new_start, new_end, exclude_booking_id=booking_id)
        booking.table_id = new_table_id
        booking.start_at = new_start
        booking.end_at = new_end
        booking.status = target_status.value
        booking.updated_at = utcnow()
        await db.commit()
    except ReservationConflictError:
        await db.rollback()
        logger.warning("reservation_move_conflict", booking_id=booking_id, table_id=new_table_id)
        raise
    except IntegrityError:
        await db.rollback()
        logger.warning("reservation_move_conflict_on_write", booking_id=request.reservation_id)
        raise ReservationConflictError() from None
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("reservation_update_failed", booking_id=request.reservation_id, error=str(e))
        raise DatabaseError() from e

    if previous_status != booking.status:
        record_transition(previous_status, booking.status)
    logger.info(
        "reservation_updated",
        booking_id=booking.id,
        status=booking.status,
        previous_status=previous_status,
        moved=moving,
    )
    return booking
