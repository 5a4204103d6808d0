import logging

from tour_booking.application.interfaces.turno_repo import TurnoRepo
from tour_booking.domain.errors import (
    CapacityExceededError,
    CapacityUnderflowError,
    TurnoNotFoundError,
    ValidationError,
)


class CapacityLedger:
    """
    Contador atómico de cupos por turno.

    No usa locks en proceso: la linealización la da el UPDATE condicional del
    repositorio, por lo que dos llamadas concurrentes nunca sobrepasan el cupo.
    """

    def __init__(self, turno_repo: TurnoRepo, clamp_underflow: bool = False) -> None:
        self._turno_repo = turno_repo
        self._clamp_underflow = clamp_underflow
        self._logger = logging.getLogger(__name__)

    async def occupy_seats(self, turno_id: int, count: int) -> None:
        self._validate_count(count)
        if count == 0:
            return
        if await self._turno_repo.try_occupy(turno_id, count):
            self._logger.debug("Seats occupied", extra={"turno_id": turno_id, "count": count})
            return

        turno = await self._turno_repo.get(turno_id)
        if turno is None:
            raise TurnoNotFoundError(turno_id)
        raise CapacityExceededError(turno_id=turno_id, requested=count, available=turno.available)

    async def release_seats(self, turno_id: int, count: int) -> None:
        self._validate_count(count)
        if count == 0:
            return
        if await self._turno_repo.try_release(turno_id, count):
            self._logger.debug("Seats released", extra={"turno_id": turno_id, "count": count})
            return

        turno = await self._turno_repo.get(turno_id)
        if turno is None:
            raise TurnoNotFoundError(turno_id)

        if self._clamp_underflow:
            self._logger.warning(
                "Capacity underflow clamped to zero",
                extra={"turno_id": turno_id, "requested": count, "occupied": turno.occupied},
            )
            await self._turno_repo.release_clamped(turno_id, count)
            return

        self._logger.error(
            "Capacity underflow: release exceeds occupied seats",
            extra={"turno_id": turno_id, "requested": count, "occupied": turno.occupied},
        )
        raise CapacityUnderflowError(turno_id=turno_id, requested=count, occupied=turno.occupied)

    @staticmethod
    def _validate_count(count: int) -> None:
        if count < 0:
            raise ValidationError("count", "no puede ser negativo")
