"""
Per-tenant overrides for booking limits. Absent rows or NULL columns
fall back to application settings.
"""

from sqlalchemy import Column, Integer, String

from tablebook.db.base import Base, TimestampMixin


class TenantPolicy(Base, TimestampMixin):
    __tablename__ = "tenant_booking_policies"

    tenant_id = Column(String(64), primary_key=True)
    max_party_size = Column(Integer, nullable=True)
    hold_ttl_minutes = Column(Integer, nullable=True)
    default_duration_minutes = Column(Integer, nullable=True)
    timezone = Column(String(64), nullable=True)
