"""
Shared route dependencies.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.db.session import get_db
from tablebook.services.interfaces import BookingEventPublisher, HoldStore
from tablebook.services.strategy_factory import get_event_publisher, get_hold_store_for


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


async def get_hold_store(db: AsyncSession = Depends(get_db)) -> HoldStore:
    return await get_hold_store_for(db)


async def get_publisher() -> BookingEventPublisher:
    return await get_event_publisher()
