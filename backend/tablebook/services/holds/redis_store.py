"""
Holds kept in Redis.

Key layout:
  hold:{tenant_id}:{hold_id}        -> JSON hold, PX = hold TTL
  hold:{tenant_id}:key:{idem_key}   -> hold_id,   PX = hold TTL

Redis expires the keys on its own, but readers still check expires_at:
a key can outlive its hold by up to the clock skew between hosts.
"""

import json
from typing import Optional

import redis.asyncio as redis

from tablebook.core.logging import get_logger
from tablebook.domain.hold import HoldRecord
from tablebook.domain.slots import utcnow
from tablebook.services.interfaces.hold_store import HoldStore

logger = get_logger(__name__)


def _hold_key(tenant_id: str, hold_id: str) -> str:
    return f"hold:{tenant_id}:{hold_id}"


def _idempotency_key(tenant_id: str, idempotency_key: str) -> str:
    return f"hold:{tenant_id}:key:{idempotency_key}"


class RedisHoldStore(HoldStore):
    def __init__(self, client: redis.Redis):
        self.redis = client

    async def save(self, hold: HoldRecord) -> None:
        ttl_ms = max(1, int((hold.expires_at - utcnow()).total_seconds() * 1000))
        await self.redis.set(_hold_key(hold.tenant_id, hold.id), json.dumps(hold.to_dict()), px=ttl_ms)
        await self.redis.set(_idempotency_key(hold.tenant_id, hold.idempotency_key), hold.id, px=ttl_ms)
        logger.debug("hold_stored", hold_id=hold.id, ttl_ms=ttl_ms)

    async def get(self, tenant_id: str, hold_id: str) -> Optional[HoldRecord]:
        data = await self.redis.get(_hold_key(tenant_id, hold_id))
        if not data:
            return None
        hold = HoldRecord.from_dict(json.loads(data))
        if hold.tenant_id != tenant_id:
            return None
        return hold

    async def find_by_idempotency_key(self, tenant_id: str, idempotency_key: str) -> Optional[HoldRecord]:
        hold_id = await self.redis.get(_idempotency_key(tenant_id, idempotency_key))
        if not hold_id:
            return None
        return await self.get(tenant_id, hold_id)

    async def consume(self, tenant_id: str, hold_id: str) -> None:
        hold = await self.get(tenant_id, hold_id)
        keys = [_hold_key(tenant_id, hold_id)]
        if hold is not None:
            keys.append(_idempotency_key(tenant_id, hold.idempotency_key))
        await self.redis.delete(*keys)
