from tour_booking.domain.entities.turno import Turno


class TurnoRepo:
    """Puerto del ledger de cupos; cada operación es un único UPDATE condicional."""

    async def add(self, turno: Turno) -> Turno:
        raise NotImplementedError

    async def get(self, turno_id: int) -> Turno | None:
        raise NotImplementedError

    async def try_occupy(self, turno_id: int, count: int) -> bool:
        """occupied += count solo si occupied + count <= max_capacity."""
        raise NotImplementedError

    async def try_release(self, turno_id: int, count: int) -> bool:
        """occupied -= count solo si occupied - count >= 0."""
        raise NotImplementedError

    async def release_clamped(self, turno_id: int, count: int) -> None:
        """occupied = max(0, occupied - count)."""
        raise NotImplementedError
