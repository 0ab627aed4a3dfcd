from .sql_store import SqlHoldStore
from .redis_store import RedisHoldStore

__all__ = ["SqlHoldStore", "RedisHoldStore"]
