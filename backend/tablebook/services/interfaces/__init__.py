"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .hold_store import HoldStore
from .publisher import (
    BOOKING_CREATED,
    BOOKING_UPDATED,
    BookingEventPublisher,
    NullBookingEventPublisher,
)

__all__ = [
    'HoldStore',
    'BookingEventPublisher', 'NullBookingEventPublisher',
    'BOOKING_CREATED', 'BOOKING_UPDATED',
]
