from typing import Sequence

from tour_booking.domain.entities.payment import Refund


class RefundRepo:
    async def add(self, refund: Refund) -> Refund:
        raise NotImplementedError

    async def list_by_reservation(self, reservation_id: int) -> Sequence[Refund]:
        raise NotImplementedError

    async def total_refunded(self, reservation_id: int) -> int:
        raise NotImplementedError
