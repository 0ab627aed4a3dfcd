"""
Bookable restaurant table.

Owned by tenant configuration. The booking engine only reads it, apart
from bumping lock_version: every write that claims a window on a table
first updates that row, so concurrent writers for one table take turns.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Index, Integer, String, UniqueConstraint

from tablebook.db.base import Base, TimestampMixin


class RestaurantTable(Base, TimestampMixin):
    __tablename__ = "restaurant_tables"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    section = Column(String(50), nullable=False, default="Main")
    active = Column(Boolean, nullable=False, default=True)
    lock_version = Column(Integer, nullable=False, default=0, server_default="0")

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_restaurant_table_name"),
        CheckConstraint("capacity >= 1", name="check_table_capacity_positive"),
        # Availability ranking filters by tenant, active and capacity
        Index("ix_restaurant_tables_tenant_active_capacity", "tenant_id", "active", "capacity"),
    )

    def __repr__(self) -> str:
        return f"<RestaurantTable(id={self.id}, name={self.name}, capacity={self.capacity})>"
