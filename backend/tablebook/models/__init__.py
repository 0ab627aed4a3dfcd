from tablebook.models.table import RestaurantTable
from tablebook.models.booking import Booking
from tablebook.models.hold import BookingHold
from tablebook.models.idempotency import IdempotencyRecord
from tablebook.models.policy import TenantPolicy

__all__ = [
    "RestaurantTable",
    "Booking",
    "BookingHold",
    "IdempotencyRecord",
    "TenantPolicy",
]
