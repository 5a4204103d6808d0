import logging

from tour_booking.application.interfaces.agency_repo import AgencyRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.payment_provider import PaymentProvider
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.results import OperationResult
from tour_booking.domain.entities.agency import Agency
from tour_booking.domain.errors import AgencyNotFoundError, DomainError, MissingConnectedAccountError


class AgencyStatusSync:
    """
    Re-sincroniza los flags de la cuenta conectada (charges, payouts, activa)
    leyendo la cuenta directamente de Stripe.

    Es el mismo cálculo que aplica el webhook account.updated; sirve para
    corregir agencias que quedaron desactualizadas por un evento perdido.
    """

    def __init__(
        self,
        agency_repo: AgencyRepo,
        payment_provider: PaymentProvider,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._agency_repo = agency_repo
        self._payment_provider = payment_provider
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def sync_account(self, agency: Agency) -> Agency:
        """Lee la cuenta en Stripe y persiste el estado; ProviderError se propaga."""
        account = await self._payment_provider.retrieve_account(agency.stripe_account_id)
        agency.sync_from_account(
            charges_enabled=account.charges_enabled,
            payouts_enabled=account.payouts_enabled,
            details_submitted=account.details_submitted,
            disabled_reason=account.disabled_reason,
            now=self._clock.now(),
        )
        async with self._transaction_manager.start():
            await self._agency_repo.save_stripe_status(agency)
        self._logger.info(
            "Agency synced with Stripe account",
            extra={"agency_id": agency.id, "stripe_account_id": agency.stripe_account_id, "active": agency.active},
        )
        return agency

    async def sync_agency_status(self, agency_id: int) -> OperationResult:
        try:
            async with self._transaction_manager.start():
                agency = await self._agency_repo.get(agency_id)
            if agency is None:
                raise AgencyNotFoundError(agency_id)
            if not agency.stripe_account_id:
                raise MissingConnectedAccountError(agency_id)
            previous_status = agency.active
            agency = await self.sync_account(agency)
        except DomainError as exc:
            self._logger.warning(
                "Agency Stripe sync failed",
                extra={"agency_id": agency_id, "code": exc.code},
            )
            return OperationResult.from_error(exc, data={"agency_id": agency_id})

        return OperationResult.ok(
            "AGENCY_SYNCED",
            "Estado de agencia sincronizado exitosamente",
            {
                "agency_id": agency.id,
                "stripe_account_id": agency.stripe_account_id,
                "previous_status": previous_status,
                "current_status": agency.active,
                "charges_enabled": agency.charges_enabled,
                "payouts_enabled": agency.payouts_enabled,
            },
        )

    async def sync_all(self) -> OperationResult:
        """Sincroniza todas las agencias con cuenta conectada; un fallo no detiene el lote."""
        async with self._transaction_manager.start():
            agencies = list(await self._agency_repo.list_with_connected_account())

        results: list[dict] = []
        for agency in agencies:
            previous_status = agency.active
            entry = {
                "agency_id": agency.id,
                "agency_name": agency.name,
                "stripe_account_id": agency.stripe_account_id,
                "previous_status": previous_status,
            }
            try:
                synced = await self.sync_account(agency)
            except DomainError as exc:
                self._logger.error(
                    "Agency Stripe sync failed",
                    extra={"agency_id": agency.id, "code": exc.code, "error": exc.message},
                )
                results.append({**entry, "success": False, "error": exc.message, "new_status": None})
                continue
            results.append({**entry, "success": True, "error": None, "new_status": synced.active})

        successful = sum(1 for r in results if r["success"])
        failed = len(results) - successful
        status_changes = sum(1 for r in results if r["success"] and r["previous_status"] != r["new_status"])
        self._logger.info(
            "Bulk agency Stripe sync finished",
            extra={"total": len(results), "successful": successful, "failed": failed, "status_changes": status_changes},
        )
        return OperationResult.ok(
            "SYNC_COMPLETED",
            f"Sincronización completada. {successful} exitosas, {failed} fallidas, {status_changes} cambios de estado",
            {
                "total": len(results),
                "successful": successful,
                "failed": failed,
                "status_changes": status_changes,
                "results": results,
            },
        )
