"""
Pydantic schemas for the table catalog and availability ranking.
"""

from typing import Literal

from pydantic import AwareDatetime, ConfigDict, Field

from tablebook.schemas.common import CamelModel

TableStatus = Literal["available", "occupied", "reserved", "maintenance"]


class TableOut(CamelModel):
    id: str
    name: str
    capacity: int
    section: str
    active: bool

    model_config = ConfigDict(from_attributes=True)


class TableWithStatus(TableOut):
    status: TableStatus


class ListTablesRequest(CamelModel):
    include_inactive: bool = False


class AvailabilityRequest(CamelModel):
    party_size: int = Field(..., ge=1)
    start: AwareDatetime
    end: AwareDatetime


class RankedTable(CamelModel):
    id: str
    name: str
    capacity: int
    section: str
    utilization: float
    fit_score: float

