"""
Hold storage strategy interface.
Allows swapping where holds live without changing the hold/confirm logic.
"""

from abc import ABC, abstractmethod
from typing import Optional

from tablebook.domain.hold import HoldRecord


class HoldStore(ABC):
    """
    Interface for hold storage.

    Implementations:
    - SqlHoldStore: rows in the shared relational store (default)
    - RedisHoldStore: keys with a Redis TTL

    Stores return holds as written, expired or not. Expiry is decided by
    the caller against its own clock.
    """

    @abstractmethod
    async def save(self, hold: HoldRecord) -> None:
        """Persist a new hold."""

    @abstractmethod
    async def get(self, tenant_id: str, hold_id: str) -> Optional[HoldRecord]:
        """Look up a hold by id within a tenant."""

    @abstractmethod
    async def find_by_idempotency_key(self, tenant_id: str, idempotency_key: str) -> Optional[HoldRecord]:
        """Most recent hold created with this key, if any."""

    @abstractmethod
    async def consume(self, tenant_id: str, hold_id: str) -> None:
        """
        Remove a hold once it has been turned into a booking.

        The SQL store does this inside the caller's transaction so the
        hold disappears together with the booking insert.
        """
