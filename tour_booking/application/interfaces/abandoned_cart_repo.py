from tour_booking.domain.entities.abandoned_cart import AbandonedCart


class AbandonedCartRepo:
    async def add(self, cart: AbandonedCart) -> AbandonedCart:
        raise NotImplementedError

    async def get_by_booking_code(self, booking_code: str) -> AbandonedCart | None:
        raise NotImplementedError

    async def get_by_reservation_id(self, reservation_id: int) -> AbandonedCart | None:
        raise NotImplementedError

    async def delete(self, cart_id: int) -> bool:
        raise NotImplementedError
