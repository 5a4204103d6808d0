import logging
from typing import Any

from tour_booking.application.interfaces.agency_repo import AgencyRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.notifier import NotificationMessage
from tour_booking.application.interfaces.payment_provider import PaymentProvider
from tour_booking.application.interfaces.payment_repo import PaymentRepo
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.notifications import NotificationDispatcher
from tour_booking.application.results import HandlerResult
from tour_booking.application.use_cases.agency_status_sync import AgencyStatusSync
from tour_booking.application.use_cases.payment_event_dispatcher import EventHandler
from tour_booking.application.use_cases.reservation_state_machine import ReservationStateMachine
from tour_booking.domain.entities.payment import Payment, PaymentStatus
from tour_booking.domain.entities.webhook_event import WebhookEventType


def _event_object(event: dict[str, Any]) -> dict[str, Any]:
    data = event.get("data") or {}
    return data.get("object") or {}


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _extract_receipt_url(intent: dict[str, Any]) -> str | None:
    charges = intent.get("charges") or {}
    if charges.get("data"):
        return charges["data"][0].get("receipt_url")
    latest_charge = intent.get("latest_charge")
    if isinstance(latest_charge, dict):
        return latest_charge.get("receipt_url")
    return None


class StripeWebhookHandlers:
    """
    Handlers por tipo de evento.

    Retornan success=False ante condiciones de negocio esperadas y solo lanzan
    excepciones ante errores inesperados (que provocan un reintento de Stripe).
    """

    def __init__(
        self,
        payment_repo: PaymentRepo,
        agency_repo: AgencyRepo,
        state_machine: ReservationStateMachine,
        payment_provider: PaymentProvider,
        transaction_manager: TransactionManager,
        clock: Clock,
        notifications: NotificationDispatcher,
        admin_email: str | None = None,
        agency_sync: AgencyStatusSync | None = None,
    ) -> None:
        self._payment_repo = payment_repo
        self._agency_repo = agency_repo
        self._state_machine = state_machine
        self._payment_provider = payment_provider
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._notifications = notifications
        self._admin_email = admin_email
        self._agency_sync = agency_sync or AgencyStatusSync(agency_repo, payment_provider, transaction_manager, clock)
        self._logger = logging.getLogger(__name__)

    def registry(self) -> dict[WebhookEventType, list[EventHandler]]:
        return {
            WebhookEventType.CHECKOUT_SESSION_COMPLETED: [self.checkout_session_completed],
            WebhookEventType.PAYMENT_INTENT_SUCCEEDED: [self.payment_intent_succeeded],
            WebhookEventType.ACCOUNT_UPDATED: [self.account_updated],
            WebhookEventType.ACCOUNT_APPLICATION_AUTHORIZED: [self.account_authorized],
            WebhookEventType.ACCOUNT_APPLICATION_DEAUTHORIZED: [self.account_deauthorized],
        }

    async def checkout_session_completed(self, event: dict[str, Any]) -> HandlerResult:
        session = _event_object(event)
        metadata = session.get("metadata") or {}
        session_id = session.get("id")

        if session.get("payment_status") != "paid":
            self._logger.warning(
                "Checkout session completed without payment",
                extra={"session_id": session_id, "payment_status": session.get("payment_status")},
            )
            self._notify_admin_unpaid(session)
            return HandlerResult(False, f"Checkout session {session_id} no está pagada")

        reservation_id = _as_int(metadata.get("reservation_id"))
        if reservation_id is None:
            self._logger.error("Checkout session without reservation_id", extra={"session_id": session_id})
            return HandlerResult(False, "No se encontró reservation_id en metadata")

        # confirmar primero: el id real puede diferir del metadata si hubo recuperación
        result = await self._state_machine.confirm(reservation_id, booking_code=metadata.get("booking_code"))
        if result.success and result.data.get("reservation_id") is not None:
            reservation_id = result.data["reservation_id"]

        customer = session.get("customer_details") or {}
        now = self._clock.now()
        async with self._transaction_manager.start():
            existing = await self._payment_repo.get_by_session(session_id)
            if existing:
                await self._payment_repo.mark_succeeded(
                    existing.id,
                    external_status=session.get("payment_status"),
                    now=now,
                    stripe_payment_intent_id=session.get("payment_intent"),
                )
            else:
                await self._payment_repo.add(
                    Payment(
                        reservation_id=reservation_id,
                        agency_id=_as_int(metadata.get("agency_id")),
                        stripe_session_id=session_id,
                        stripe_payment_intent_id=session.get("payment_intent"),
                        amount=session.get("amount_total") or 0,
                        currency=(session.get("currency") or "usd").upper(),
                        platform_fee=_as_int(metadata.get("platform_fee")),
                        status=PaymentStatus.SUCCEEDED,
                        external_status=session.get("payment_status"),
                        customer_email=customer.get("email") or session.get("customer_email"),
                        customer_name=customer.get("name"),
                        created_at=now,
                        updated_at=now,
                    )
                )

        return HandlerResult(result.success, result.message, {"reservation_id": reservation_id, "code": result.code})

    async def payment_intent_succeeded(self, event: dict[str, Any]) -> HandlerResult:
        intent = _event_object(event)
        intent_id = intent.get("id")
        if intent.get("status") != "succeeded":
            return HandlerResult(True, f"PaymentIntent {intent_id} no está en estado succeeded")

        sessions = await self._payment_provider.list_checkout_sessions(intent_id, limit=1)
        if not sessions:
            return HandlerResult(True, f"No hay checkout session para el PaymentIntent {intent_id}")

        async with self._transaction_manager.start():
            updated = await self._payment_repo.mark_succeeded_by_session(
                sessions[0].id,
                external_status="succeeded",
                now=self._clock.now(),
                receipt_url=_extract_receipt_url(intent),
            )
        return HandlerResult(True, f"{updated} pago(s) actualizados para la sesión {sessions[0].id}")

    async def account_updated(self, event: dict[str, Any]) -> HandlerResult:
        return await self._sync_agency(_event_object(event).get("id") or event.get("account"))

    async def account_authorized(self, event: dict[str, Any]) -> HandlerResult:
        return await self._sync_agency(event.get("account"))

    async def account_deauthorized(self, event: dict[str, Any]) -> HandlerResult:
        account_id = event.get("account")
        async with self._transaction_manager.start():
            agency = await self._agency_repo.get_by_stripe_account(account_id) if account_id else None
            if agency is None:
                return HandlerResult(False, f"No hay agencia para la cuenta {account_id}")
            agency.deauthorize(self._clock.now())
            await self._agency_repo.save_stripe_status(agency)
        self._logger.warning(
            "Stripe account deauthorized",
            extra={"agency_id": agency.id, "stripe_account_id": account_id},
        )
        return HandlerResult(True, f"Agencia {agency.id} desautorizada")

    async def _sync_agency(self, account_id: str | None) -> HandlerResult:
        if not account_id:
            return HandlerResult(False, "Evento sin cuenta conectada")
        async with self._transaction_manager.start():
            agency = await self._agency_repo.get_by_stripe_account(account_id)
        if agency is None:
            return HandlerResult(False, f"No hay agencia para la cuenta {account_id}")

        agency = await self._agency_sync.sync_account(agency)
        return HandlerResult(True, f"Agencia {agency.id} sincronizada (activa={agency.active})")

    def _notify_admin_unpaid(self, session: dict[str, Any]) -> None:
        if not self._admin_email:
            return
        self._notifications.dispatch(
            NotificationMessage(
                template="admin-unpaid-checkout",
                to=self._admin_email,
                subject="Checkout completado sin pago",
                data={
                    "session_id": session.get("id"),
                    "payment_status": session.get("payment_status"),
                    "metadata": session.get("metadata") or {},
                },
            )
        )
