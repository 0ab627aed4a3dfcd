"""
Availability ranker: which tables can take a party for a window, best
fit first.
"""

from collections import defaultdict
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.core.errors import InvalidTimeError
from tablebook.core.logging import get_logger
from tablebook.domain.validation import validate_party_size
from tablebook.repositories.booking_repository import BookingRepository
from tablebook.repositories.table_repository import TableRepository
from tablebook.schemas.table import RankedTable
from tablebook.services.conflict_service import overlapping, prefilter_padding
from tablebook.services.policy_service import get_policy

logger = get_logger(__name__)


def fit_score(party_size: int, capacity: int) -> float:
    """
    Score in [0, 100]. Near-capacity fits (roughly 75-85% utilization)
    keep the full 100; waste below 50% and crowding above 90% are
    penalised, crowding more steeply.
    """
    utilization = party_size / capacity * 100
    score = 100.0
    if utilization < 50:
        score -= (50 - utilization) * 2
    if utilization > 90:
        score -= (utilization - 90) * 3
    return max(0.0, score)


async def rank_tables(
    db: AsyncSession,
    tenant_id: str,
    party_size: int,
    start: datetime,
    end: datetime,
) -> list[RankedTable]:
    if end <= start:
        raise InvalidTimeError()
    policy = await get_policy(db, tenant_id)
    validate_party_size(party_size, policy.max_party_size)

    tables = await TableRepository(db).list_bookable(tenant_id, party_size)
    if not tables:
        return []

    # One query for every candidate table instead of one per table
    nearby = await BookingRepository(db).find_conflicting(
        tenant_id, start, end, prefilter_padding(), table_ids=[t.id for t in tables]
    )
    by_table = defaultdict(list)
    for booking in nearby:
        by_table[booking.table_id].append(booking)

    ranked = [
        RankedTable(
            id=table.id,
            name=table.name,
            capacity=table.capacity,
            section=table.section,
            utilization=round(party_size / table.capacity * 100, 2),
            fit_score=round(fit_score(party_size, table.capacity), 2),
        )
        for table in tables
        if not overlapping(by_table[table.id], start, end)
    ]
    ranked.sort(key=lambda t: (-t.fit_score, t.id))

    logger.info(
        "availability_ranked",
        party_size=party_size,
        candidates=len(tables),
        available=len(ranked),
    )
    return ranked
