import copy

from tour_booking.application.interfaces.abandoned_cart_repo import AbandonedCartRepo
from tour_booking.domain.entities.abandoned_cart import AbandonedCart
from tour_booking.infrastructure.in_memory.store import InMemoryStore


class InMemoryAbandonedCartRepo(AbandonedCartRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, cart: AbandonedCart) -> AbandonedCart:
        record = copy.deepcopy(cart)
        record.id = self._store.next_id("abandoned_carts")
        self._store.abandoned_carts[record.id] = record
        return copy.deepcopy(record)

    async def get_by_booking_code(self, booking_code: str) -> AbandonedCart | None:
        for record in self._store.abandoned_carts.values():
            if record.booking_code == booking_code:
                return copy.deepcopy(record)
        return None

    async def get_by_reservation_id(self, reservation_id: int) -> AbandonedCart | None:
        for record in self._store.abandoned_carts.values():
            if record.reservation_id == reservation_id:
                return copy.deepcopy(record)
        return None

    async def delete(self, cart_id: int) -> bool:
        return self._store.abandoned_carts.pop(cart_id, None) is not None
