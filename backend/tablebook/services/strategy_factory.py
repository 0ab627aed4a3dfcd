"""
Strategy factory.
Configures where holds live and how booking events leave the process.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.core.config import get_settings
from tablebook.core.logging import get_logger
from tablebook.infrastructure.redis_client import get_redis
from tablebook.services.event_publisher import RedisBookingEventPublisher
from tablebook.services.holds import RedisHoldStore, SqlHoldStore
from tablebook.services.interfaces import BookingEventPublisher, HoldStore, NullBookingEventPublisher

logger = get_logger(__name__)
settings = get_settings()


async def get_hold_store_for(db: AsyncSession) -> HoldStore:
    """
    Get configured hold store.

    - "database" (default): SqlHoldStore on the request's session
    - "redis": RedisHoldStore; falls back to the database when Redis is down
    """
    if settings.HOLD_STORE == "redis":
        client = await get_redis()
        if client is not None:
            return RedisHoldStore(client)
        logger.warning("hold_store_fallback", configured="redis", using="database")
    return SqlHoldStore(db)


async def get_event_publisher() -> BookingEventPublisher:
    client = await get_redis()
    if client is None:
        return NullBookingEventPublisher()
    return RedisBookingEventPublisher(client)
