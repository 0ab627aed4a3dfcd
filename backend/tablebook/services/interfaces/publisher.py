"""
Booking event notification interface.

The UI subscribes to these to refresh reservation lists. The core only
calls publish(); the transport is an implementation detail.
"""

from abc import ABC, abstractmethod

BOOKING_CREATED = "booking.created"
BOOKING_UPDATED = "booking.updated"


class BookingEventPublisher(ABC):
    @abstractmethod
    async def publish(self, event: str, tenant_id: str, payload: dict) -> None:
        """
        Publish an event for a tenant.

        Must not raise: a lost notification never fails the request that
        produced it.
        """


class NullBookingEventPublisher(BookingEventPublisher):
    """Used when no transport is configured. Drops everything."""

    async def publish(self, event: str, tenant_id: str, payload: dict) -> None:
        pass
