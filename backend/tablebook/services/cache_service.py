"""
Redis caching service for the table catalog.

CACHING STRATEGY
================

What we cache:
  - The raw table rows of a tenant (id, name, capacity, section, active)
  - Cache key pattern: "tables:{tenant_id}:inactive={include_inactive}"

Why:
  - The floor view polls the catalog constantly
  - Table configuration changes rarely and is owned by another service

What we do NOT cache:
  - Computed table status (available / occupied / reserved). It depends on
    bookings and on the clock, and is recomputed on every request.
  - Anything the hold/confirm path reads. Those go to the database so the
    conflict check never sees stale data.

Invalidation:
  - TTL-based expiry only (REDIS_CACHE_TTL). Table edits made by the
    table-management service show up within one TTL.
"""

import json
from typing import Optional

from tablebook.core.config import get_settings
from tablebook.core.logging import get_logger
from tablebook.core.metrics import record_cache_operation
from tablebook.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()


def _make_tables_key(tenant_id: str, include_inactive: bool) -> str:
    return f"tables:{tenant_id}:inactive={include_inactive}"


async def get_cached_tables(tenant_id: str, include_inactive: bool) -> Optional[list[dict]]:
    """Retrieve cached table rows for a tenant."""
    client = await get_redis()
    if not client:
        return None

    key = _make_tables_key(tenant_id, include_inactive)
    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", hit=True)
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        record_cache_operation("get", hit=False)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_tables(tenant_id: str, include_inactive: bool, rows: list[dict]) -> None:
    """Cache table rows with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_tables_key(tenant_id, include_inactive)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(rows, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
