from datetime import datetime
from typing import Sequence

from tour_booking.domain.entities.payment import Payment


class PaymentRepo:
    async def add(self, payment: Payment) -> Payment:
        raise NotImplementedError

    async def get_by_session(self, stripe_session_id: str) -> Payment | None:
        raise NotImplementedError

    async def list_by_reservation(self, reservation_id: int) -> Sequence[Payment]:
        """Pagos de la reservación, del más reciente al más antiguo."""
        raise NotImplementedError

    async def mark_succeeded(
        self,
        payment_id: int,
        external_status: str,
        now: datetime,
        stripe_payment_intent_id: str | None = None,
    ) -> None:
        raise NotImplementedError

    async def mark_succeeded_by_session(
        self,
        stripe_session_id: str,
        external_status: str,
        now: datetime,
        receipt_url: str | None = None,
    ) -> int:
        """Retorna el número de filas actualizadas."""
        raise NotImplementedError
