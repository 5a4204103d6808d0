from sqlalchemy import case, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.turno_repo import TurnoRepo
from tour_booking.domain.entities.turno import Turno
from tour_booking.infrastructure.db.tables import turnos


class TurnoRepoSQL(TurnoRepo):
    """Cada ajuste de cupo es un UPDATE condicional; rowcount indica si aplicó."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, turno: Turno) -> Turno:
        values = {"max_capacity": turno.max_capacity, "occupied": turno.occupied}
        if turno.id is not None:
            values["id"] = turno.id
        result = await self._session.execute(insert(turnos).values(**values))
        if turno.id is None:
            turno.id = result.inserted_primary_key[0]
        return turno

    async def get(self, turno_id: int) -> Turno | None:
        stmt = select(turnos).where(turnos.c.id == turno_id).limit(1)
        row = (await self._session.execute(stmt)).mappings().first()
        if not row:
            return None
        return Turno(id=row["id"], max_capacity=row["max_capacity"], occupied=row["occupied"])

    async def try_occupy(self, turno_id: int, count: int) -> bool:
        stmt = (
            update(turnos)
            .where(
                turnos.c.id == turno_id,
                turnos.c.occupied + count <= turnos.c.max_capacity,
            )
            .values(occupied=turnos.c.occupied + count)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def try_release(self, turno_id: int, count: int) -> bool:
        stmt = (
            update(turnos)
            .where(
                turnos.c.id == turno_id,
                turnos.c.occupied - count >= 0,
            )
            .values(occupied=turnos.c.occupied - count)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def release_clamped(self, turno_id: int, count: int) -> None:
        stmt = (
            update(turnos)
            .where(turnos.c.id == turno_id)
            .values(
                occupied=case(
                    (turnos.c.occupied - count < 0, 0),
                    else_=turnos.c.occupied - count,
                )
            )
        )
        await self._session.execute(stmt)
