import copy
from typing import Sequence

from tour_booking.application.interfaces.agency_repo import AgencyRepo
from tour_booking.domain.entities.agency import Agency
from tour_booking.infrastructure.in_memory.store import InMemoryStore


class InMemoryAgencyRepo(AgencyRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, agency: Agency) -> Agency:
        record = copy.deepcopy(agency)
        if record.id is None:
            record.id = self._store.next_id("agencies")
        else:
            self._store.bump_sequence("agencies", record.id)
        self._store.agencies[record.id] = record
        return copy.deepcopy(record)

    async def get(self, agency_id: int) -> Agency | None:
        record = self._store.agencies.get(agency_id)
        return copy.deepcopy(record) if record else None

    async def get_by_stripe_account(self, stripe_account_id: str) -> Agency | None:
        for record in self._store.agencies.values():
            if record.stripe_account_id == stripe_account_id:
                return copy.deepcopy(record)
        return None

    async def list_with_connected_account(self) -> Sequence[Agency]:
        records = [a for a in self._store.agencies.values() if a.stripe_account_id]
        return [copy.deepcopy(a) for a in sorted(records, key=lambda a: a.id)]

    async def save_stripe_status(self, agency: Agency) -> None:
        record = self._store.agencies.get(agency.id)
        if record is None:
            return
        record.charges_enabled = agency.charges_enabled
        record.payouts_enabled = agency.payouts_enabled
        record.active = agency.active
        record.updated_at = agency.updated_at
