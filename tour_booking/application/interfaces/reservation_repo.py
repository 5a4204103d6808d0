from datetime import datetime
from typing import Sequence

from tour_booking.domain.entities.reservation import Reservation, ReservationStatus


class ReservationRepo:
    async def add(self, reservation: Reservation) -> Reservation:
        """Inserta la reservación con sus líneas; respeta reservation.id si viene informado."""
        raise NotImplementedError

    async def get(self, reservation_id: int) -> Reservation | None:
        raise NotImplementedError

    async def get_by_booking_code(self, booking_code: str) -> Reservation | None:
        raise NotImplementedError

    async def update_state(
        self,
        reservation_id: int,
        expected_states: Sequence[ReservationStatus],
        new_state: ReservationStatus,
        now: datetime,
    ) -> bool:
        """
        Transición condicional: solo aplica si el estado actual está en expected_states.

        Ajusta expires_at/cancelled_at según el estado destino.
        Retorna False si ninguna fila cumplió la condición.
        """
        raise NotImplementedError

    async def delete_if_state(self, reservation_id: int, state: ReservationStatus) -> bool:
        raise NotImplementedError

    async def list_holds_created_before(self, cutoff: datetime) -> Sequence[Reservation]:
        raise NotImplementedError
