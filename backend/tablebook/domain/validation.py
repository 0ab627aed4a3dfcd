"""
Input rules shared by the hold and confirm paths.

Format checks for guest details mirror what the booking widget enforces
client-side, so a payload that passes the widget never fails here.
"""

import re
from datetime import datetime

from tablebook.core.errors import InvalidTimeError, PastTimeError, ValidationError

GUEST_NAME_RE = re.compile(r"^[^\W\d_]+(?:[\s.'-]+[^\W\d_]+)*\.?$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{6,14}$")
UNSAFE_TEXT_RE = re.compile(r"<script|javascript:|on\w+\s*=", re.IGNORECASE)

MAX_EMAIL_LENGTH = 100
MAX_SPECIAL_REQUESTS_LENGTH = 500


def validate_window(start: datetime, end: datetime, now: datetime) -> None:
    if start < now:
        raise PastTimeError()
    if end <= start:
        raise InvalidTimeError()


def validate_party_size(party_size: int, max_party_size: int, capacity: int | None = None) -> None:
    if party_size < 1 or party_size > max_party_size:
        raise ValidationError(f"Party size must be between 1 and {max_party_size}")
    if capacity is not None and party_size > capacity:
        raise ValidationError(f"Party of {party_size} exceeds table capacity of {capacity}")


def validate_guest_name(name: str) -> str:
    name = name.strip()
    if not 2 <= len(name) <= 100:
        raise ValidationError("Guest name must be between 2 and 100 characters")
    if not GUEST_NAME_RE.match(name):
        raise ValidationError("Guest name can only contain letters, spaces, hyphens, and apostrophes")
    return name


def validate_guest_email(email: str | None) -> str | None:
    if email is None:
        return None
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Email must not exceed {MAX_EMAIL_LENGTH} characters")
    if ".." in email:
        raise ValidationError("Email cannot contain consecutive dots")
    return email


def validate_guest_phone(phone: str | None) -> str | None:
    if phone is None:
        return None
    compact = re.sub(r"[\s().-]", "", phone)
    if not PHONE_RE.match(compact):
        raise ValidationError("Invalid phone number. Use format: +1234567890")
    return compact


def validate_special_requests(text: str | None) -> str | None:
    if text is None:
        return None
    text = text.strip()
    if len(text) > MAX_SPECIAL_REQUESTS_LENGTH:
        raise ValidationError(f"Special requests must not exceed {MAX_SPECIAL_REQUESTS_LENGTH} characters")
    if UNSAFE_TEXT_RE.search(text):
        raise ValidationError("Special requests contain invalid characters")
    return text or None
