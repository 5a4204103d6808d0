from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.payment_repo import PaymentRepo
from tour_booking.domain.entities.payment import Payment, PaymentStatus
from tour_booking.infrastructure.db.datetimes import from_db, to_db
from tour_booking.infrastructure.db.tables import payments


def _payment_from_row(row: Any) -> Payment:
    return Payment(
        id=row["id"],
        reservation_id=row["reservation_id"],
        agency_id=row["agency_id"],
        stripe_session_id=row["stripe_session_id"],
        stripe_payment_intent_id=row["stripe_payment_intent_id"],
        receipt_url=row["receipt_url"],
        amount=row["amount"],
        currency=row["currency"],
        platform_fee=row["platform_fee"],
        status=PaymentStatus(row["status"]),
        external_status=row["external_status"],
        customer_email=row["customer_email"],
        customer_name=row["customer_name"],
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )


class PaymentRepoSQL(PaymentRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, payment: Payment) -> Payment:
        stmt = insert(payments).values(
            reservation_id=payment.reservation_id,
            agency_id=payment.agency_id,
            stripe_session_id=payment.stripe_session_id,
            stripe_payment_intent_id=payment.stripe_payment_intent_id,
            receipt_url=payment.receipt_url,
            amount=payment.amount,
            currency=payment.currency,
            platform_fee=payment.platform_fee,
            status=payment.status.value,
            external_status=payment.external_status,
            customer_email=payment.customer_email,
            customer_name=payment.customer_name,
            created_at=to_db(payment.created_at),
            updated_at=to_db(payment.updated_at),
        )
        result = await self._session.execute(stmt)
        payment.id = result.inserted_primary_key[0]
        return payment

    async def get_by_session(self, stripe_session_id: str) -> Payment | None:
        stmt = (
            select(payments)
            .where(payments.c.stripe_session_id == stripe_session_id)
            .order_by(payments.c.id.desc())
            .limit(1)
        )
        row = (await self._session.execute(stmt)).mappings().first()
        return _payment_from_row(row) if row else None

    async def list_by_reservation(self, reservation_id: int) -> Sequence[Payment]:
        stmt = (
            select(payments)
            .where(payments.c.reservation_id == reservation_id)
            .order_by(payments.c.created_at.desc(), payments.c.id.desc())
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [_payment_from_row(row) for row in rows]

    async def mark_succeeded(
        self,
        payment_id: int,
        external_status: str,
        now: datetime,
        stripe_payment_intent_id: str | None = None,
    ) -> None:
        values: dict[str, Any] = {
            "status": PaymentStatus.SUCCEEDED.value,
            "external_status": external_status,
            "updated_at": to_db(now),
        }
        if stripe_payment_intent_id:
            values["stripe_payment_intent_id"] = stripe_payment_intent_id
        await self._session.execute(update(payments).where(payments.c.id == payment_id).values(**values))

    async def mark_succeeded_by_session(
        self,
        stripe_session_id: str,
        external_status: str,
        now: datetime,
        receipt_url: str | None = None,
    ) -> int:
        values: dict[str, Any] = {
            "status": PaymentStatus.SUCCEEDED.value,
            "external_status": external_status,
            "updated_at": to_db(now),
        }
        if receipt_url:
            values["receipt_url"] = receipt_url
        result = await self._session.execute(
            update(payments).where(payments.c.stripe_session_id == stripe_session_id).values(**values)
        )
        return result.rowcount
