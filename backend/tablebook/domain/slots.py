"""
Time arithmetic for reservation windows.

All windows are half-open [start, end): a booking ending at 19:30 and one
starting at 19:30 do not overlap, whatever the minutes are.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def windows_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    return s1 < e2 and e1 > s2
