"""
Typed access to the table catalog. Every query is tenant-scoped.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.models.table import RestaurantTable


class TableRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, tenant_id: str, table_id: str) -> Optional[RestaurantTable]:
        result = await self.db.execute(
            select(RestaurantTable).where(
                RestaurantTable.tenant_id == tenant_id,
                RestaurantTable.id == table_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_tenant(self, tenant_id: str, include_inactive: bool = False) -> list[RestaurantTable]:
        query = select(RestaurantTable).where(RestaurantTable.tenant_id == tenant_id)
        if not include_inactive:
            query = query.where(RestaurantTable.active.is_(True))
        result = await self.db.execute(query.order_by(RestaurantTable.name.asc()))
        return list(result.scalars().all())

    async def list_bookable(self, tenant_id: str, min_capacity: int) -> list[RestaurantTable]:
        """Active tables that can seat at least min_capacity guests."""
        result = await self.db.execute(
            select(RestaurantTable)
            .where(
                RestaurantTable.tenant_id == tenant_id,
                RestaurantTable.active.is_(True),
                RestaurantTable.capacity >= min_capacity,
            )
            .order_by(RestaurantTable.id.asc())
        )
        return list(result.scalars().all())

    async def section_of(self, tenant_id: str, table_id: str) -> Optional[str]:
        result = await self.db.execute(
            select(RestaurantTable.section).where(
                RestaurantTable.tenant_id == tenant_id,
                RestaurantTable.id == table_id,
            )
        )
        return result.scalar_one_or_none()

    async def lock_for_write(self, tenant_id: str, table_id: str) -> bool:
        """
        Bump the table's lock_version inside the current transaction.

        The row stays write-locked until commit or rollback, so a second
        writer for the same table waits here and only then reads the
        bookings. False if the table does not exist for the tenant.
        """
        result = await self.db.execute(
            update(RestaurantTable)
            .where(
                RestaurantTable.tenant_id == tenant_id,
                RestaurantTable.id == table_id,
            )
            .values(
                lock_version=RestaurantTable.lock_version + 1,
                updated_at=RestaurantTable.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
