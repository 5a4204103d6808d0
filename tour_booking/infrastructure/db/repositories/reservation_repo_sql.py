from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.reservation_repo import ReservationRepo
from tour_booking.domain.entities.reservation import (
    ItemType,
    Reservation,
    ReservationItem,
    ReservationStatus,
)
from tour_booking.domain.errors import ReservationConflictError
from tour_booking.infrastructure.db.datetimes import from_db, to_db
from tour_booking.infrastructure.db.tables import reservation_items, reservations


def reservation_from_row(row: Any, items: Sequence[ReservationItem]) -> Reservation:
    return Reservation(
        id=row["id"],
        booking_code=row["booking_code"],
        turno_id=row["turno_id"],
        agency_id=row["agency_id"],
        customer_id=row["customer_id"],
        customer_email=row["customer_email"],
        customer_name=row["customer_name"],
        language=row["language"] or "es",
        state=ReservationStatus(row["state"]),
        total_amount=row["total_amount"],
        currency=row["currency"],
        payment_intent_id=row["payment_intent_id"],
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
        expires_at=from_db(row["expires_at"]),
        cancelled_at=from_db(row.get("cancelled_at")),
        items=list(items),
    )


def reservation_values(reservation: Reservation) -> dict[str, Any]:
    return {
        "booking_code": reservation.booking_code,
        "turno_id": reservation.turno_id,
        "agency_id": reservation.agency_id,
        "customer_id": reservation.customer_id,
        "customer_email": reservation.customer_email,
        "customer_name": reservation.customer_name,
        "language": reservation.language,
        "state": reservation.state.value,
        "total_amount": reservation.total_amount,
        "currency": reservation.currency,
        "payment_intent_id": reservation.payment_intent_id,
        "created_at": to_db(reservation.created_at),
        "updated_at": to_db(reservation.updated_at),
        "expires_at": to_db(reservation.expires_at),
    }


class ReservationRepoSQL(ReservationRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, reservation: Reservation) -> Reservation:
        values = reservation_values(reservation)
        values["cancelled_at"] = to_db(reservation.cancelled_at)
        if reservation.id is not None:
            values["id"] = reservation.id
        try:
            result = await self._session.execute(insert(reservations).values(**values))
        except IntegrityError as exc:
            # UNIQUE(booking_code) o id original ya ocupado por otra fila
            raise ReservationConflictError(reservation.booking_code, reservation.id) from exc
        reservation_id = reservation.id if reservation.id is not None else result.inserted_primary_key[0]

        if reservation.items:
            await self._session.execute(
                insert(reservation_items),
                [
                    {
                        "reservation_id": reservation_id,
                        "position": item.position,
                        "item_type": item.item_type.value,
                        "quantity": item.quantity,
                        "unit_price": item.unit_price,
                        "total": item.total,
                        "catalog_ref_id": item.catalog_ref_id,
                    }
                    for item in reservation.items
                ],
            )
        reservation.id = reservation_id
        return reservation

    async def _items(self, reservation_id: int) -> list[ReservationItem]:
        stmt = (
            select(reservation_items)
            .where(reservation_items.c.reservation_id == reservation_id)
            .order_by(reservation_items.c.position)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [
            ReservationItem(
                item_type=ItemType(row["item_type"]),
                quantity=row["quantity"],
                unit_price=row["unit_price"],
                catalog_ref_id=row["catalog_ref_id"],
                position=row["position"],
            )
            for row in rows
        ]

    async def _first(self, stmt) -> Reservation | None:
        row = (await self._session.execute(stmt.limit(1))).mappings().first()
        if not row:
            return None
        return reservation_from_row(row, await self._items(row["id"]))

    async def get(self, reservation_id: int) -> Reservation | None:
        return await self._first(select(reservations).where(reservations.c.id == reservation_id))

    async def get_by_booking_code(self, booking_code: str) -> Reservation | None:
        return await self._first(select(reservations).where(reservations.c.booking_code == booking_code))

    async def update_state(
        self,
        reservation_id: int,
        expected_states: Sequence[ReservationStatus],
        new_state: ReservationStatus,
        now: datetime,
    ) -> bool:
        values: dict[str, Any] = {"state": new_state.value, "updated_at": to_db(now)}
        if new_state == ReservationStatus.CANCELLED:
            values["cancelled_at"] = to_db(now)
            values["expires_at"] = None
        elif new_state == ReservationStatus.CONFIRMED:
            values["expires_at"] = None
        stmt = (
            update(reservations)
            .where(
                reservations.c.id == reservation_id,
                reservations.c.state.in_([s.value for s in expected_states]),
            )
            .values(**values)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def delete_if_state(self, reservation_id: int, state: ReservationStatus) -> bool:
        result = await self._session.execute(
            delete(reservations).where(
                reservations.c.id == reservation_id,
                reservations.c.state == state.value,
            )
        )
        if result.rowcount == 0:
            return False
        await self._session.execute(
            delete(reservation_items).where(reservation_items.c.reservation_id == reservation_id)
        )
        return True

    async def list_holds_created_before(self, cutoff: datetime) -> Sequence[Reservation]:
        stmt = (
            select(reservations)
            .where(
                reservations.c.state == ReservationStatus.HOLD.value,
                reservations.c.created_at < to_db(cutoff),
            )
            .order_by(reservations.c.id)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [reservation_from_row(row, await self._items(row["id"])) for row in rows]
