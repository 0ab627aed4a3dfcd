"""
Redis pub/sub transport for booking events.

Channel: "{BOOKING_EVENTS_CHANNEL_PREFIX}:{tenant_id}". Message:
{"event": "booking.created", "tenantId": ..., "data": {...booking...}}
"""

import json

import redis.asyncio as redis

from tablebook.core.config import get_settings
from tablebook.core.logging import get_logger
from tablebook.core.metrics import event_publish_failures
from tablebook.services.interfaces.publisher import BookingEventPublisher

logger = get_logger(__name__)
settings = get_settings()


def channel_for(tenant_id: str) -> str:
    return f"{settings.BOOKING_EVENTS_CHANNEL_PREFIX}:{tenant_id}"


class RedisBookingEventPublisher(BookingEventPublisher):
    def __init__(self, client: redis.Redis):
        self.redis = client

    async def publish(self, event: str, tenant_id: str, payload: dict) -> None:
        message = json.dumps({"event": event, "tenantId": tenant_id, "data": payload}, default=str)
        try:
            receivers = await self.redis.publish(channel_for(tenant_id), message)
            logger.debug("booking_event_published", booking_event=event, receivers=receivers)
        except Exception as e:
            event_publish_failures.inc()
            logger.error("booking_event_publish_failed", booking_event=event, error=str(e))
