"""
Booking model: a durably confirmed reservation of one table for one window.

Key design decisions:
- Unique constraint on (tenant_id, idempotency_key): a client key can
  never produce two bookings
- start_at/end_at are stored explicitly (not start + duration) so the
  overlap test is a plain comparison
- Double-booking is prevented by writers serialising on the table row
  (RestaurantTable.lock_version); on PostgreSQL the migration adds an
  exclusion constraint as well
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint

from tablebook.db.base import Base, TimestampMixin
from tablebook.db.types import UTCDateTime


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(64), nullable=False)
    table_id = Column(String(36), ForeignKey("restaurant_tables.id"), nullable=False)
    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)
    party_size = Column(Integer, nullable=False)
    guest_name = Column(String(100), nullable=False)
    guest_email = Column(String(100), nullable=True)
    guest_phone = Column(String(32), nullable=True)
    special_requests = Column(Text, nullable=True)
    channel = Column(String(20), nullable=False, default="web")
    status = Column(String(20), nullable=False, default="confirmed")
    idempotency_key = Column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "idempotency_key", name="uq_booking_tenant_idempotency_key"),
        CheckConstraint("end_at > start_at", name="check_booking_window"),
        CheckConstraint("party_size > 0", name="check_booking_party_size_positive"),
        CheckConstraint(
            "status IN ('confirmed', 'seated', 'completed', 'cancelled', 'no_show')",
            name="check_booking_status",
        ),
        CheckConstraint("channel IN ('web', 'phone', 'walkin')", name="check_booking_channel"),
        # Conflict detection: bookings of one table around a window
        Index("ix_bookings_tenant_table_start", "tenant_id", "table_id", "start_at"),
        # Day listing
        Index("ix_bookings_tenant_start", "tenant_id", "start_at"),
    )

    @property
    def confirmation_code(self) -> str:
        return f"CONF{self.id.replace('-', '')[-6:].upper()}"

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, table={self.table_id}, status={self.status})>"

