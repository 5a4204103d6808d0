import copy
from datetime import datetime
from typing import Sequence

from tour_booking.application.interfaces.reservation_repo import ReservationRepo
from tour_booking.domain.entities.reservation import Reservation, ReservationStatus
from tour_booking.domain.errors import ReservationConflictError
from tour_booking.infrastructure.in_memory.store import InMemoryStore


class InMemoryReservationRepo(ReservationRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, reservation: Reservation) -> Reservation:
        if reservation.id in self._store.reservations or any(
            r.booking_code == reservation.booking_code for r in self._store.reservations.values()
        ):
            raise ReservationConflictError(reservation.booking_code, reservation.id)
        record = copy.deepcopy(reservation)
        if record.id is None:
            record.id = self._store.next_id("reservations")
        else:
            self._store.bump_sequence("reservations", record.id)
        self._store.reservations[record.id] = record
        return copy.deepcopy(record)

    async def get(self, reservation_id: int) -> Reservation | None:
        record = self._store.reservations.get(reservation_id)
        return copy.deepcopy(record) if record else None

    async def get_by_booking_code(self, booking_code: str) -> Reservation | None:
        for record in self._store.reservations.values():
            if record.booking_code == booking_code:
                return copy.deepcopy(record)
        return None

    async def update_state(
        self,
        reservation_id: int,
        expected_states: Sequence[ReservationStatus],
        new_state: ReservationStatus,
        now: datetime,
    ) -> bool:
        record = self._store.reservations.get(reservation_id)
        if record is None or record.state not in expected_states:
            return False
        record.state = new_state
        record.updated_at = now
        if new_state == ReservationStatus.CANCELLED:
            record.cancelled_at = now
            record.expires_at = None
        elif new_state == ReservationStatus.CONFIRMED:
            record.expires_at = None
        return True

    async def delete_if_state(self, reservation_id: int, state: ReservationStatus) -> bool:
        record = self._store.reservations.get(reservation_id)
        if record is None or record.state != state:
            return False
        del self._store.reservations[reservation_id]
        return True

    async def list_holds_created_before(self, cutoff: datetime) -> Sequence[Reservation]:
        return [
            copy.deepcopy(r)
            for r in sorted(self._store.reservations.values(), key=lambda r: r.id)
            if r.state == ReservationStatus.HOLD and r.created_at and r.created_at < cutoff
        ]
