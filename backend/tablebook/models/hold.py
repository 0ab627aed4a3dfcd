"""
Short-lived hold on a table/window, kept in the relational store.

Rows are never swept; readers compare expires_at against the clock.
"""

from sqlalchemy import Column, Integer, String

from tablebook.db.base import Base
from tablebook.db.types import UTCDateTime


class BookingHold(Base):
    __tablename__ = "booking_holds"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    table_id = Column(String(36), nullable=False)
    party_size = Column(Integer, nullable=False)
    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)
    idempotency_key = Column(String(255), nullable=False, index=True)
    created_at = Column(UTCDateTime(), nullable=False)
    expires_at = Column(UTCDateTime(), nullable=False)
