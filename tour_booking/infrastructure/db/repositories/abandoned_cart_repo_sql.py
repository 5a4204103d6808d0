from typing import Any

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.abandoned_cart_repo import AbandonedCartRepo
from tour_booking.domain.entities.abandoned_cart import AbandonedCart
from tour_booking.domain.entities.reservation import ItemType, ReservationItem
from tour_booking.infrastructure.db.datetimes import from_db, to_db
from tour_booking.infrastructure.db.repositories.reservation_repo_sql import (
    reservation_from_row,
    reservation_values,
)
from tour_booking.infrastructure.db.tables import abandoned_carts


def _items_to_json(items: list[ReservationItem]) -> list[dict[str, Any]]:
    return [
        {
            "item_type": item.item_type.value,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "catalog_ref_id": item.catalog_ref_id,
            "position": item.position,
        }
        for item in items
    ]


def _items_from_json(payload: list[dict[str, Any]] | None) -> list[ReservationItem]:
    return [
        ReservationItem(
            item_type=ItemType(entry["item_type"]),
            quantity=entry["quantity"],
            unit_price=entry["unit_price"],
            catalog_ref_id=entry.get("catalog_ref_id"),
            position=entry.get("position", 0),
        )
        for entry in payload or []
    ]


class AbandonedCartRepoSQL(AbandonedCartRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, cart: AbandonedCart) -> AbandonedCart:
        values = reservation_values(cart.reservation)
        values.update(
            reservation_id=cart.reservation_id,
            items=_items_to_json(cart.reservation.items),
            abandoned_at=to_db(cart.abandoned_at),
        )
        result = await self._session.execute(insert(abandoned_carts).values(**values))
        cart.id = result.inserted_primary_key[0]
        return cart

    async def _first(self, stmt) -> AbandonedCart | None:
        row = (await self._session.execute(stmt.limit(1))).mappings().first()
        if not row:
            return None
        reservation_row = dict(row)
        reservation_row["id"] = row["reservation_id"]
        return AbandonedCart(
            id=row["id"],
            reservation=reservation_from_row(reservation_row, _items_from_json(row["items"])),
            abandoned_at=from_db(row["abandoned_at"]),
        )

    async def get_by_booking_code(self, booking_code: str) -> AbandonedCart | None:
        return await self._first(select(abandoned_carts).where(abandoned_carts.c.booking_code == booking_code))

    async def get_by_reservation_id(self, reservation_id: int) -> AbandonedCart | None:
        return await self._first(
            select(abandoned_carts).where(abandoned_carts.c.reservation_id == reservation_id)
        )

    async def delete(self, cart_id: int) -> bool:
        result = await self._session.execute(delete(abandoned_carts).where(abandoned_carts.c.id == cart_id))
        return result.rowcount > 0
