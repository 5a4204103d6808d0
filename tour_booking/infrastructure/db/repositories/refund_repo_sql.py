from typing import Sequence

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.refund_repo import RefundRepo
from tour_booking.domain.entities.payment import Refund, RefundStatus
from tour_booking.infrastructure.db.datetimes import from_db, to_db
from tour_booking.infrastructure.db.tables import refunds


class RefundRepoSQL(RefundRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, refund: Refund) -> Refund:
        stmt = insert(refunds).values(
            reservation_id=refund.reservation_id,
            payment_id=refund.payment_id,
            stripe_refund_id=refund.stripe_refund_id,
            amount=refund.amount,
            currency=refund.currency,
            status=refund.status.value,
            authorized_by=refund.authorized_by,
            reason=refund.reason,
            used_fallback=refund.used_fallback,
            fallback_reason=refund.fallback_reason,
            created_at=to_db(refund.created_at),
            updated_at=to_db(refund.updated_at),
        )
        result = await self._session.execute(stmt)
        refund.id = result.inserted_primary_key[0]
        return refund

    async def list_by_reservation(self, reservation_id: int) -> Sequence[Refund]:
        stmt = select(refunds).where(refunds.c.reservation_id == reservation_id).order_by(refunds.c.id)
        rows = (await self._session.execute(stmt)).mappings().all()
        return [
            Refund(
                id=row["id"],
                reservation_id=row["reservation_id"],
                payment_id=row["payment_id"],
                stripe_refund_id=row["stripe_refund_id"],
                amount=row["amount"],
                currency=row["currency"],
                status=RefundStatus(row["status"]),
                authorized_by=row["authorized_by"],
                reason=row["reason"],
                used_fallback=bool(row["used_fallback"]),
                fallback_reason=row["fallback_reason"],
                created_at=from_db(row["created_at"]),
                updated_at=from_db(row["updated_at"]),
            )
            for row in rows
        ]

    async def total_refunded(self, reservation_id: int) -> int:
        stmt = select(func.coalesce(func.sum(refunds.c.amount), 0)).where(
            refunds.c.reservation_id == reservation_id,
            refunds.c.status != RefundStatus.FAILED.value,
        )
        return int((await self._session.execute(stmt)).scalar() or 0)
