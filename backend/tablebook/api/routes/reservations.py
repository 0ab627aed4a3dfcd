"""
Reservation endpoints: availability, hold, confirm, list and update.

Confirm is the only endpoint that writes a booking. It is idempotent on
the x-idempotency-key header: the first success answers 201, every
replay of the same key answers 200 with the same booking.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.api.deps import get_hold_store, get_publisher, get_request_id
from tablebook.core.security import get_current_tenant_id
from tablebook.db.session import get_db
from tablebook.domain.slots import utcnow
from tablebook.schemas import (
    AvailabilityRequest,
    BookingOut,
    ConfirmRequest,
    DataEnvelope,
    HoldRequest,
    HoldResponse,
    ListReservationsRequest,
    RankedTable,
    UpdateReservationRequest,
)
from tablebook.services import idempotency_service
from tablebook.services.availability_service import rank_tables
from tablebook.services.hold_service import create_hold
from tablebook.services.interfaces import (
    BOOKING_CREATED,
    BOOKING_UPDATED,
    BookingEventPublisher,
    HoldStore,
)
from tablebook.services.reservation_service import (
    confirm_reservation,
    list_reservations,
    update_reservation,
)
from tablebook.services.table_service import section_for

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post("/availability", response_model=DataEnvelope[list[RankedTable]])
async def availability_endpoint(
    body: AvailabilityRequest,
    tenant_id: str = Depends(get_current_tenant_id),
    db: AsyncSession = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id),
):
    """Tables that can seat the party in the window, best fit first."""
    ranked = await rank_tables(db, tenant_id, body.party_size, body.start, body.end)
    return DataEnvelope(data=ranked, request_id=request_id)


@router.post("/hold", response_model=DataEnvelope[HoldResponse], status_code=status.HTTP_201_CREATED)
async def hold_endpoint(
    body: HoldRequest,
    response: Response,
    tenant_id: str = Depends(get_current_tenant_id),
    db: AsyncSession = Depends(get_db),
    hold_store: HoldStore = Depends(get_hold_store),
    request_id: Optional[str] = Depends(get_request_id),
):
    """
    Place a short-lived hold on a table slot.
    Repeating the call with the same idempotency key returns the live hold (200).
    """
    now = utcnow()
    hold, reused = await create_hold(
        db,
        hold_store,
        tenant_id,
        table_id=body.table_id,
        party_size=body.party_size,
        start=body.start,
        end=body.end,
        idempotency_key=body.idempotency_key,
        now=now,
    )
    if reused:
        response.status_code = status.HTTP_200_OK

    return DataEnvelope(
        data=HoldResponse(
            hold_id=hold.id,
            table_id=hold.table_id,
            party_size=hold.party_size,
            start=hold.start,
            end=hold.end,
            expires_at=hold.expires_at,
            expires_in_seconds=hold.ttl_seconds(now),
        ),
        request_id=request_id,
    )


@router.post("/confirm", response_model=DataEnvelope[BookingOut], status_code=status.HTTP_201_CREATED)
async def confirm_endpoint(
    body: ConfirmRequest,
    response: Response,
    x_idempotency_key: Optional[str] = Header(None, alias="x-idempotency-key"),
    tenant_id: str = Depends(get_current_tenant_id),
    db: AsyncSession = Depends(get_db),
    hold_store: HoldStore = Depends(get_hold_store),
    publisher: BookingEventPublisher = Depends(get_publisher),
    request_id: Optional[str] = Depends(get_request_id),
):
    """
    Confirm a hold (or a raw slot) into a booking.

    Safe to retry with the same x-idempotency-key: a replay returns the
    booking created by the first call and has no side effects.
    """
    idempotency_key = idempotency_service.require_key(x_idempotency_key)
    booking, replayed = await confirm_reservation(db, hold_store, tenant_id, idempotency_key, body)

    out = BookingOut.from_model(booking, await section_for(db, tenant_id, booking.table_id))
    if replayed:
        response.status_code = status.HTTP_200_OK
    else:
        await publisher.publish(BOOKING_CREATED, tenant_id, out.model_dump(mode="json", by_alias=True))
    return DataEnvelope(data=out, request_id=request_id)


@router.post("/list", response_model=DataEnvelope[list[BookingOut]])
async def list_endpoint(
    body: ListReservationsRequest,
    tenant_id: str = Depends(get_current_tenant_id),
    db: AsyncSession = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id),
):
    """Bookings for one day in the restaurant's timezone, ordered by start."""
    rows = await list_reservations(db, tenant_id, body)
    return DataEnvelope(
        data=[BookingOut.from_model(booking, section) for booking, section in rows],
        request_id=request_id,
    )


@router.post("/update", response_model=DataEnvelope[BookingOut])
async def update_endpoint(
    body: UpdateReservationRequest,
    tenant_id: str = Depends(get_current_tenant_id),
    db: AsyncSession = Depends(get_db),
    publisher: BookingEventPublisher = Depends(get_publisher),
    request_id: Optional[str] = Depends(get_request_id),
):
    """Move a booking to another table or time, or change its status."""
    booking = await update_reservation(db, tenant_id, body)
    out = BookingOut.from_model(booking, await section_for(db, tenant_id, booking.table_id))
    await publisher.publish(BOOKING_UPDATED, tenant_id, out.model_dump(mode="json", by_alias=True))
    return DataEnvelope(data=out, request_id=request_id)
