"""Booking state machine."""

from enum import Enum

from tablebook.core.errors import ValidationError


class BookingStatus(str, Enum):
    PENDING = "pending"  # a hold, never a bookings row
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that occupy the table and take part in conflict detection
ACTIVE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.SEATED})

BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.SEATED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW},
    BookingStatus.SEATED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.NO_SHOW: set(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in BOOKING_TRANSITIONS.items() if not targets)


def parse_status(value: str | BookingStatus) -> BookingStatus:
    """Accept 'CONFIRMED', 'confirmed', 'no-show' and friends."""
    if isinstance(value, BookingStatus):
        return value
    normalized = str(value).strip().lower().replace("-", "_")
    try:
        return BookingStatus(normalized)
    except ValueError:
        raise ValidationError(f"Unknown booking status: {value}") from None


def is_active(status: str | BookingStatus) -> bool:
    return parse_status(status) in ACTIVE_STATUSES


def can_transition(current: str | BookingStatus, target: str | BookingStatus) -> bool:
    return parse_status(target) in BOOKING_TRANSITIONS[parse_status(current)]


def assert_booking_transition(current: str | BookingStatus, target: str | BookingStatus) -> None:
    if not can_transition(current, target):
        raise ValidationError(
            f"Invalid booking transition: {parse_status(current).value} -> {parse_status(target).value}"
        )
