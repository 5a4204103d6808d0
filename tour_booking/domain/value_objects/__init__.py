"""Value Objects del dominio."""

from tour_booking.domain.value_objects.booking_code import BookingCode
from tour_booking.domain.value_objects.money import Money

__all__ = [
    "BookingCode",
    "Money",
]
