import copy
from datetime import datetime
from typing import Sequence

from tour_booking.application.interfaces.payment_repo import PaymentRepo
from tour_booking.domain.entities.payment import Payment, PaymentStatus
from tour_booking.infrastructure.in_memory.store import InMemoryStore


class InMemoryPaymentRepo(PaymentRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, payment: Payment) -> Payment:
        record = copy.deepcopy(payment)
        record.id = self._store.next_id("payments")
        self._store.payments[record.id] = record
        return copy.deepcopy(record)

    async def get_by_session(self, stripe_session_id: str) -> Payment | None:
        for record in self._store.payments.values():
            if record.stripe_session_id == stripe_session_id:
                return copy.deepcopy(record)
        return None

    async def list_by_reservation(self, reservation_id: int) -> Sequence[Payment]:
        records = [p for p in self._store.payments.values() if p.reservation_id == reservation_id]
        return [copy.deepcopy(p) for p in sorted(records, key=lambda p: p.id, reverse=True)]

    async def mark_succeeded(
        self,
        payment_id: int,
        external_status: str,
        now: datetime,
        stripe_payment_intent_id: str | None = None,
    ) -> None:
        record = self._store.payments.get(payment_id)
        if record is None:
            return
        record.mark_succeeded(external_status, now)
        if stripe_payment_intent_id:
            record.stripe_payment_intent_id = stripe_payment_intent_id

    async def mark_succeeded_by_session(
        self,
        stripe_session_id: str,
        external_status: str,
        now: datetime,
        receipt_url: str | None = None,
    ) -> int:
        updated = 0
        for record in self._store.payments.values():
            if record.stripe_session_id != stripe_session_id:
                continue
            record.status = PaymentStatus.SUCCEEDED
            record.external_status = external_status
            record.updated_at = now
            if receipt_url:
                record.receipt_url = receipt_url
            updated += 1
        return updated
