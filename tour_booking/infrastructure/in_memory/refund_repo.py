import copy
from typing import Sequence

from tour_booking.application.interfaces.refund_repo import RefundRepo
from tour_booking.domain.entities.payment import Refund, RefundStatus
from tour_booking.infrastructure.in_memory.store import InMemoryStore


class InMemoryRefundRepo(RefundRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, refund: Refund) -> Refund:
        record = copy.deepcopy(refund)
        record.id = self._store.next_id("refunds")
        self._store.refunds[record.id] = record
        return copy.deepcopy(record)

    async def list_by_reservation(self, reservation_id: int) -> Sequence[Refund]:
        return [
            copy.deepcopy(r)
            for r in sorted(self._store.refunds.values(), key=lambda r: r.id)
            if r.reservation_id == reservation_id
        ]

    async def total_refunded(self, reservation_id: int) -> int:
        return sum(
            r.amount
            for r in self._store.refunds.values()
            if r.reservation_id == reservation_id and r.status != RefundStatus.FAILED
        )
