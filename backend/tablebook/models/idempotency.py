"""
Idempotency ledger: (tenant_id, idempotency_key) -> booking.

The composite primary key is what settles two concurrent confirms with
the same key; the loser reads the winner's booking back.
"""

from sqlalchemy import Column, ForeignKey, String

from tablebook.db.base import Base, utc_now
from tablebook.db.types import UTCDateTime


class IdempotencyRecord(Base):
    __tablename__ = "idempotency_records"

    tenant_id = Column(String(64), primary_key=True)
    idempotency_key = Column(String(255), primary_key=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=utc_now)
