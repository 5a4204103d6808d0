"""Entidad AbandonedCart - copia archivada de un hold vencido."""

from dataclasses import dataclass, replace
from datetime import datetime

from tour_booking.domain.entities.reservation import Reservation, ReservationStatus


@dataclass
class AbandonedCart:
    """
    Copia estructural de una reservación en hold más la fecha de abandono.

    Conserva el id original para poder restaurar la reservación tal cual.
    """

    reservation: Reservation
    abandoned_at: datetime
    id: int | None = None

    @property
    def booking_code(self) -> str:
        return self.reservation.booking_code

    @property
    def reservation_id(self) -> int | None:
        return self.reservation.id

    @classmethod
    def from_reservation(cls, reservation: Reservation, abandoned_at: datetime) -> "AbandonedCart":
        archived = replace(
            reservation,
            state=ReservationStatus.ABANDONED,
            items=list(reservation.items),
        )
        return cls(reservation=archived, abandoned_at=abandoned_at)

    def to_confirmed_reservation(self, now: datetime) -> Reservation:
        restored = replace(self.reservation, items=list(self.reservation.items))
        restored.restore_as_confirmed(now)
        return restored
