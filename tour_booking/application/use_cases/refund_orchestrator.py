import logging
from dataclasses import dataclass
from typing import Sequence

from tour_booking.application.interfaces.agency_repo import AgencyRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.notifier import NotificationMessage
from tour_booking.application.interfaces.payment_provider import PaymentProvider, RefundInfo
from tour_booking.application.interfaces.payment_repo import PaymentRepo
from tour_booking.application.interfaces.refund_repo import RefundRepo
from tour_booking.application.interfaces.reservation_repo import ReservationRepo
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.notifications import NotificationDispatcher
from tour_booking.application.results import OperationResult
from tour_booking.application.use_cases.reservation_state_machine import ReservationStateMachine
from tour_booking.domain.entities.agency import Agency
from tour_booking.domain.entities.payment import Payment, Refund, RefundStatus
from tour_booking.domain.entities.reservation import Reservation
from tour_booking.domain.errors import (
    AgencyNotFoundError,
    DomainError,
    InsufficientBalanceError,
    MissingConnectedAccountError,
    PaymentNotFoundError,
    PaymentNotRefundableError,
    ProviderError,
    ReconciliationDiscrepancyError,
    RefundExceedsPaymentError,
    ReservationAlreadyCancelledError,
    ReservationForbiddenError,
    ReservationNotFoundError,
    ValidationError,
)

# Rechazos de Stripe que indican que la reversión de la transferencia no es posible
REVERSE_TRANSFER_FAILURE_CODES = frozenset(
    {"insufficient_funds", "balance_insufficient", "transfer_reversal_failed"}
)


@dataclass
class RefundRequest:
    reservation_id: int
    authorized_by: str
    requested_amount: int | None = None
    reason: str | None = None
    agency_id: int | None = None


@dataclass
class _RefundPlan:
    reservation: Reservation
    payment: Payment
    agency: Agency
    amount: int


class RefundOrchestrator:
    """
    Cancela una reservación pagada con reembolso vía Stripe Connect.

    Todas las precondiciones y el saldo de la cuenta conectada se validan antes
    de llamar a Stripe. Si el reembolso se ejecuta pero la actualización local
    falla, el resultado es una discrepancia de reconciliación: el reembolso en
    Stripe nunca se revierte.
    """

    def __init__(
        self,
        reservation_repo: ReservationRepo,
        payment_repo: PaymentRepo,
        refund_repo: RefundRepo,
        agency_repo: AgencyRepo,
        payment_provider: PaymentProvider,
        state_machine: ReservationStateMachine,
        transaction_manager: TransactionManager,
        clock: Clock,
        notifications: NotificationDispatcher,
        idempotency_window_seconds: int = 300,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._payment_repo = payment_repo
        self._refund_repo = refund_repo
        self._agency_repo = agency_repo
        self._payment_provider = payment_provider
        self._state_machine = state_machine
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._notifications = notifications
        self._idempotency_window_seconds = idempotency_window_seconds
        self._logger = logging.getLogger(__name__)

    async def refund(self, request: RefundRequest) -> OperationResult:
        try:
            plan = await self._plan(request)
            refund_info, used_fallback, fallback_reason = await self._create_refund_with_fallback(plan)
        except ProviderError as exc:
            self._logger.error(
                "Stripe rejected refund",
                extra={
                    "reservation_id": request.reservation_id,
                    "provider_code": exc.provider_code,
                    "param": exc.param,
                },
            )
            return OperationResult.from_error(exc)
        except DomainError as exc:
            self._logger.warning(
                "Refund rejected",
                extra={"reservation_id": request.reservation_id, "code": exc.code},
            )
            return OperationResult.from_error(exc)

        refund_data = {
            "reservation_id": plan.reservation.id,
            "stripe_refund_id": refund_info.id,
            "refund_amount": refund_info.amount,
            "currency": plan.payment.currency,
            "refund_type": "complete" if refund_info.amount >= plan.payment.amount else "partial",
            "used_fallback": used_fallback,
            "fallback_reason": fallback_reason,
        }
        try:
            async with self._transaction_manager.start():
                await self._state_machine.cancel_in_transaction(plan.reservation.id)
                refund = await self._refund_repo.add(
                    Refund(
                        reservation_id=plan.reservation.id,
                        payment_id=plan.payment.id,
                        stripe_refund_id=refund_info.id,
                        amount=refund_info.amount,
                        currency=plan.payment.currency,
                        status=RefundStatus.COMPLETED,
                        authorized_by=request.authorized_by,
                        reason=request.reason,
                        used_fallback=used_fallback,
                        fallback_reason=fallback_reason,
                        created_at=self._clock.now(),
                        updated_at=self._clock.now(),
                    )
                )
        except Exception as exc:  # noqa: BLE001
            discrepancy = ReconciliationDiscrepancyError(
                "El reembolso se ejecutó en Stripe pero no se pudo registrar localmente",
                context={**refund_data, "cause": getattr(exc, "message", str(exc))},
            )
            self._logger.critical(
                "RECONCILIATION_DISCREPANCY: refund executed but local update failed",
                exc_info=exc,
                extra=discrepancy.details,
            )
            return OperationResult.from_error(discrepancy)

        self._logger.info("Refund completed", extra=refund_data)
        self._notify_customer(plan, refund_data)
        return OperationResult.ok(
            "REFUND_COMPLETED",
            "Reservación cancelada y reembolso procesado",
            {**refund_data, "refund_id": refund.id},
        )

    async def list_refunds(self, reservation_id: int) -> OperationResult:
        async with self._transaction_manager.start():
            reservation = await self._reservation_repo.get(reservation_id)
            refunds = list(await self._refund_repo.list_by_reservation(reservation_id))
        if reservation is None and not refunds:
            return OperationResult.from_error(ReservationNotFoundError(reservation_id))
        return OperationResult.ok(
            "OK",
            data={
                "reservation_id": reservation_id,
                "total_refunded": sum(r.amount for r in refunds),
                "refunds": [
                    {
                        "id": r.id,
                        "stripe_refund_id": r.stripe_refund_id,
                        "amount": r.amount,
                        "currency": r.currency,
                        "status": r.status.value,
                        "authorized_by": r.authorized_by,
                        "reason": r.reason,
                        "used_fallback": r.used_fallback,
                        "fallback_reason": r.fallback_reason,
                        "created_at": r.created_at.isoformat() if r.created_at else None,
                    }
                    for r in refunds
                ],
            },
        )

    async def _plan(self, request: RefundRequest) -> _RefundPlan:
        if request.requested_amount is not None and request.requested_amount <= 0:
            raise ValidationError("refund_amount", "debe ser un entero positivo")
        if not request.authorized_by:
            raise ValidationError("authorized_by", "es requerido")

        async with self._transaction_manager.start():
            reservation = await self._reservation_repo.get(request.reservation_id)
            if reservation is None:
                raise ReservationNotFoundError(request.reservation_id)
            if request.agency_id is not None and reservation.agency_id != request.agency_id:
                raise ReservationForbiddenError(reservation.id, request.agency_id)
            if reservation.is_cancelled:
                raise ReservationAlreadyCancelledError(reservation.id)
            payments = list(await self._payment_repo.list_by_reservation(reservation.id))
            agency = await self._agency_repo.get(reservation.agency_id)
            already_refunded = await self._refund_repo.total_refunded(reservation.id)

        payment = await self._authoritative_payment(reservation, payments)

        if agency is None:
            raise AgencyNotFoundError(reservation.agency_id)
        if not agency.stripe_account_id:
            raise MissingConnectedAccountError(agency.id)

        if not payment.stripe_payment_intent_id:
            raise PaymentNotRefundableError(None, payment.external_status)
        intent = await self._payment_provider.retrieve_payment_intent(payment.stripe_payment_intent_id)
        if intent.status != "succeeded":
            raise PaymentNotRefundableError(intent.id, intent.status)

        if request.requested_amount is not None:
            amount = min(request.requested_amount, payment.amount)
        else:
            amount = agency.net_refundable(payment.amount)
        if amount <= 0:
            raise ValidationError("refund_amount", "el monto neto a reembolsar es cero")
        if already_refunded + amount > payment.amount:
            raise RefundExceedsPaymentError(amount, already_refunded, payment.amount)

        balance = await self._payment_provider.retrieve_balance(agency.stripe_account_id)
        available = balance.available_in(payment.currency)
        if available < amount:
            raise InsufficientBalanceError(required=amount, available=available, currency=payment.currency)

        return _RefundPlan(reservation=reservation, payment=payment, agency=agency, amount=amount)

    async def _authoritative_payment(self, reservation: Reservation, payments: Sequence[Payment]) -> Payment:
        for payment in payments:
            if payment.is_paid:
                return payment

        # Filas atascadas (webhook perdido): se re-verifican contra la sesión de checkout
        for payment in payments:
            if not payment.stripe_session_id:
                continue
            try:
                session = await self._payment_provider.retrieve_checkout_session(payment.stripe_session_id)
            except ProviderError as exc:
                self._logger.warning(
                    "Could not verify checkout session",
                    extra={"payment_id": payment.id, "session_id": payment.stripe_session_id, "error": exc.message},
                )
                continue
            if not session.is_paid:
                continue
            now = self._clock.now()
            intent_id = payment.stripe_payment_intent_id or session.payment_intent_id
            async with self._transaction_manager.start():
                await self._payment_repo.mark_succeeded(
                    payment.id, external_status="complete", now=now, stripe_payment_intent_id=intent_id
                )
            payment.mark_succeeded("complete", now)
            payment.stripe_payment_intent_id = intent_id
            self._logger.info(
                "Payment verified against Stripe checkout session",
                extra={"payment_id": payment.id, "reservation_id": reservation.id},
            )
            return payment

        raise PaymentNotFoundError(reservation.id)

    async def _create_refund_with_fallback(self, plan: _RefundPlan) -> tuple[RefundInfo, bool, str | None]:
        bucket = self._clock.epoch_seconds() // self._idempotency_window_seconds
        idempotency_key = f"refund_{plan.reservation.id}_{bucket}"
        metadata = {
            "reservation_id": str(plan.reservation.id),
            "booking_code": plan.reservation.booking_code,
            "connected_account_id": plan.agency.stripe_account_id or "",
        }
        try:
            refund = await self._payment_provider.create_refund(
                payment_intent_id=plan.payment.stripe_payment_intent_id,
                amount=plan.amount,
                reverse_transfer=True,
                idempotency_key=idempotency_key,
                metadata=metadata,
            )
            return refund, False, None
        except ProviderError as exc:
            if not self._is_reverse_transfer_failure(exc):
                raise
            fallback_reason = exc.provider_code or exc.message
            self._logger.warning(
                "Refund with reverse_transfer rejected, retrying without reversal",
                extra={"reservation_id": plan.reservation.id, "provider_code": exc.provider_code},
            )

        refund = await self._payment_provider.create_refund(
            payment_intent_id=plan.payment.stripe_payment_intent_id,
            amount=plan.amount,
            reverse_transfer=False,
            idempotency_key=f"{idempotency_key}_no_reverse",
            metadata={**metadata, "fallback": "no_reverse_transfer"},
        )
        return refund, True, fallback_reason

    @staticmethod
    def _is_reverse_transfer_failure(exc: ProviderError) -> bool:
        if exc.provider_code in REVERSE_TRANSFER_FAILURE_CODES:
            return True
        return exc.param == "reverse_transfer"

    def _notify_customer(self, plan: _RefundPlan, refund_data: dict) -> None:
        reservation = plan.reservation
        self._notifications.dispatch(
            NotificationMessage(
                template="refund-processed",
                to=reservation.customer_email or plan.payment.customer_email or "",
                subject="Reembolso procesado",
                data={
                    "booking_code": reservation.booking_code,
                    "customer_name": reservation.customer_name,
                    "language": reservation.language,
                    **refund_data,
                },
            )
        )
