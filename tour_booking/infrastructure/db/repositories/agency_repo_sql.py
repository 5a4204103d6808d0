from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.agency_repo import AgencyRepo
from tour_booking.domain.entities.agency import Agency
from tour_booking.infrastructure.db.datetimes import from_db, to_db
from tour_booking.infrastructure.db.tables import agencies


def _agency_from_row(row: Any) -> Agency:
    return Agency(
        id=row["id"],
        name=row["name"],
        contact_email=row["contact_email"],
        stripe_account_id=row["stripe_account_id"],
        fee_percentage=Decimal(str(row["fee_percentage"] or 0)),
        processor_fee_amount=row["processor_fee_amount"] or 0,
        charges_enabled=bool(row["charges_enabled"]),
        payouts_enabled=bool(row["payouts_enabled"]),
        active=bool(row["active"]),
        updated_at=from_db(row["updated_at"]),
    )


class AgencyRepoSQL(AgencyRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, agency: Agency) -> Agency:
        values = {
            "name": agency.name,
            "contact_email": agency.contact_email,
            "stripe_account_id": agency.stripe_account_id,
            "fee_percentage": agency.fee_percentage,
            "processor_fee_amount": agency.processor_fee_amount,
            "charges_enabled": agency.charges_enabled,
            "payouts_enabled": agency.payouts_enabled,
            "active": agency.active,
            "updated_at": to_db(agency.updated_at),
        }
        if agency.id is not None:
            values["id"] = agency.id
        result = await self._session.execute(insert(agencies).values(**values))
        if agency.id is None:
            agency.id = result.inserted_primary_key[0]
        return agency

    async def get(self, agency_id: int) -> Agency | None:
        row = (
            await self._session.execute(select(agencies).where(agencies.c.id == agency_id).limit(1))
        ).mappings().first()
        return _agency_from_row(row) if row else None

    async def get_by_stripe_account(self, stripe_account_id: str) -> Agency | None:
        stmt = select(agencies).where(agencies.c.stripe_account_id == stripe_account_id).limit(1)
        row = (await self._session.execute(stmt)).mappings().first()
        return _agency_from_row(row) if row else None

    async def list_with_connected_account(self) -> Sequence[Agency]:
        stmt = select(agencies).where(agencies.c.stripe_account_id.is_not(None)).order_by(agencies.c.id)
        rows = (await self._session.execute(stmt)).mappings().all()
        return [_agency_from_row(row) for row in rows]

    async def save_stripe_status(self, agency: Agency) -> None:
        stmt = (
            update(agencies)
            .where(agencies.c.id == agency.id)
            .values(
                charges_enabled=agency.charges_enabled,
                payouts_enabled=agency.payouts_enabled,
                active=agency.active,
                updated_at=to_db(agency.updated_at),
            )
        )
        await self._session.execute(stmt)
