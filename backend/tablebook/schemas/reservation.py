"""
Pydantic schemas for hold, confirm, list and update requests.

Shape checks live here; booking rules (time in the past, party limits,
guest detail formats) are enforced by the services so they apply the
same way no matter how a request arrives.
"""

from datetime import date as date_type, datetime
from typing import Literal, Optional

from pydantic import AwareDatetime, EmailStr, Field, field_validator, model_validator

from tablebook.models.booking import Booking
from tablebook.schemas.common import CamelModel

Channel = Literal["web", "phone", "walkin"]


def _lower(value):
    if isinstance(value, str):
        return value.strip().lower().replace("_", "").replace("-", "")
    return value


class HoldRequest(CamelModel):
    table_id: str = Field(..., min_length=1)
    party_size: int = Field(..., ge=1)
    start: AwareDatetime
    end: AwareDatetime
    idempotency_key: str = Field(..., min_length=1, max_length=255)


class HoldResponse(CamelModel):
    hold_id: str
    table_id: str
    party_size: int
    start: datetime
    end: datetime
    expires_at: datetime
    expires_in_seconds: int


class ConfirmRequest(CamelModel):
    # Either a hold...
    hold_id: Optional[str] = None
    # ...or a raw slot
    table_id: Optional[str] = None
    start: Optional[AwareDatetime] = None
    end: Optional[AwareDatetime] = None
    duration_minutes: Optional[int] = Field(None, ge=15, le=360)
    party_size: Optional[int] = Field(None, ge=1)

    guest_name: str = Field(..., min_length=1, max_length=200)
    guest_email: Optional[EmailStr] = None
    guest_phone: Optional[str] = Field(None, max_length=32)
    special_requests: Optional[str] = Field(None, max_length=1000)
    channel: Channel = "web"

    @field_validator("channel", mode="before")
    @classmethod
    def normalize_channel(cls, value):
        return _lower(value)

    @model_validator(mode="after")
    def check_slot_reference(self) -> "ConfirmRequest":
        if self.hold_id is None and (self.table_id is None or self.start is None or self.party_size is None):
            raise ValueError("Either holdId or tableId, start and partySize are required")
        return self


class BookingOut(CamelModel):
    id: str
    tenant_id: str
    table_id: str
    section: Optional[str] = None
    start: datetime
    end: datetime
    party_size: int
    channel: str
    vip: bool
    guest_name: str
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    special_requests: Optional[str] = None
    status: str
    confirmation_code: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, booking: Booking, section: Optional[str] = None) -> "BookingOut":
        return cls(
            id=booking.id,
            tenant_id=booking.tenant_id,
            table_id=booking.table_id,
            section=section,
            start=booking.start_at,
            end=booking.end_at,
            party_size=booking.party_size,
            channel=booking.channel,
            vip="vip" in (booking.special_requests or "").lower(),
            guest_name=booking.guest_name,
            guest_email=booking.guest_email,
            guest_phone=booking.guest_phone,
            special_requests=booking.special_requests,
            status=booking.status,
            confirmation_code=booking.confirmation_code,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class ReservationFilters(CamelModel):
    section: Optional[str] = None
    status: Optional[str] = None
    channel: Optional[str] = None


class ListReservationsRequest(CamelModel):
    date: date_type
    filters: ReservationFilters = ReservationFilters()


class UpdateReservationRequest(CamelModel):
    reservation_id: str = Field(..., min_length=1)
    table_id: Optional[str] = None
    start: Optional[AwareDatetime] = None
    end: Optional[AwareDatetime] = None
    status: Optional[str] = None
