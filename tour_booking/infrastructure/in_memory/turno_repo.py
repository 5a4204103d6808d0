import copy

from tour_booking.application.interfaces.turno_repo import TurnoRepo
from tour_booking.domain.entities.turno import Turno
from tour_booking.infrastructure.in_memory.store import InMemoryStore


class InMemoryTurnoRepo(TurnoRepo):
    """Check-and-set sin await intermedio: atómico dentro del event loop."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, turno: Turno) -> Turno:
        record = copy.deepcopy(turno)
        if record.id is None:
            record.id = self._store.next_id("turnos")
        else:
            self._store.bump_sequence("turnos", record.id)
        self._store.turnos[record.id] = record
        return copy.deepcopy(record)

    async def get(self, turno_id: int) -> Turno | None:
        record = self._store.turnos.get(turno_id)
        return copy.deepcopy(record) if record else None

    async def try_occupy(self, turno_id: int, count: int) -> bool:
        record = self._store.turnos.get(turno_id)
        if record is None or record.occupied + count > record.max_capacity:
            return False
        record.occupied += count
        return True

    async def try_release(self, turno_id: int, count: int) -> bool:
        record = self._store.turnos.get(turno_id)
        if record is None or record.occupied - count < 0:
            return False
        record.occupied -= count
        return True

    async def release_clamped(self, turno_id: int, count: int) -> None:
        record = self._store.turnos.get(turno_id)
        if record is not None:
            record.occupied = max(0, record.occupied - count)
