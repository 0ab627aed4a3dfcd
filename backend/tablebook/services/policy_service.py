"""
Effective booking limits for a tenant: the tenant's own policy row where
it sets a value, application settings everywhere else.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.core.config import get_settings
from tablebook.core.logging import get_logger
from tablebook.models.policy import TenantPolicy

logger = get_logger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class BookingPolicy:
    max_party_size: int
    hold_ttl_minutes: int
    default_duration_minutes: int
    timezone: str

    @property
    def tz(self) -> tzinfo:
        if self.timezone.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("unknown_tenant_timezone", timezone=self.timezone)
            return timezone.utc

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """[start, end) of a calendar day in the tenant's timezone."""
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        return start, datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tz)

    def local_date(self, moment: datetime) -> date:
        return moment.astimezone(self.tz).date()


def default_policy() -> BookingPolicy:
    return BookingPolicy(
        max_party_size=settings.MAX_PARTY_SIZE,
        hold_ttl_minutes=settings.HOLD_TTL_MINUTES,
        default_duration_minutes=settings.DEFAULT_DURATION_MINUTES,
        timezone=settings.DEFAULT_TIMEZONE,
    )


async def get_policy(db: AsyncSession, tenant_id: str) -> BookingPolicy:
    base = default_policy()
    result = await db.execute(select(TenantPolicy).where(TenantPolicy.tenant_id == tenant_id))
    row = result.scalar_one_or_none()
    if row is None:
        return base

    return BookingPolicy(
        max_party_size=row.max_party_size or base.max_party_size,
        hold_ttl_minutes=row.hold_ttl_minutes or base.hold_ttl_minutes,
        default_duration_minutes=row.default_duration_minutes or base.default_duration_minutes,
        timezone=row.timezone or base.timezone,
    )
