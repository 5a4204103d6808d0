from typing import Sequence

from tour_booking.domain.entities.agency import Agency


class AgencyRepo:
    async def add(self, agency: Agency) -> Agency:
        raise NotImplementedError

    async def get(self, agency_id: int) -> Agency | None:
        raise NotImplementedError

    async def get_by_stripe_account(self, stripe_account_id: str) -> Agency | None:
        raise NotImplementedError

    async def save_stripe_status(self, agency: Agency) -> None:
        """Persiste charges_enabled, payouts_enabled, active y updated_at."""
        raise NotImplementedError

    async def list_with_connected_account(self) -> Sequence[Agency]:
        """Agencias con stripe_account_id, ordenadas por id."""
        raise NotImplementedError
