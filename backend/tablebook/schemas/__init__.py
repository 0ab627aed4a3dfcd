from tablebook.schemas.common import CamelModel, DataEnvelope
from tablebook.schemas.table import (
    AvailabilityRequest, ListTablesRequest, RankedTable, TableOut, TableWithStatus,
)
from tablebook.schemas.reservation import (
    BookingOut, ConfirmRequest, HoldRequest, HoldResponse,
    ListReservationsRequest, ReservationFilters, UpdateReservationRequest,
)

__all__ = [
    "CamelModel", "DataEnvelope",
    "AvailabilityRequest", "ListTablesRequest", "RankedTable",
    "TableOut", "TableWithStatus",
    "BookingOut", "ConfirmRequest", "HoldRequest", "HoldResponse",
    "ListReservationsRequest", "ReservationFilters", "UpdateReservationRequest",
]
