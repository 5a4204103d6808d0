import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable

import stripe

from tour_booking.application.interfaces.payment_provider import (
    AccountInfo,
    BalanceEntry,
    BalanceInfo,
    BankAccountInfo,
    CheckoutSessionInfo,
    PaymentIntentInfo,
    PaymentProvider,
    PayoutInfo,
    PayoutSchedule,
    RefundInfo,
)
from tour_booking.config import get_settings
from tour_booking.domain.errors import ProviderError, WebhookNotConfiguredError
from tour_booking.infrastructure.circuit_breaker import CircuitBreakerError, stripe_breaker

logger = logging.getLogger(__name__)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Lee un campo de un StripeObject o de un dict sin asumir que exista."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _receipt_url(intent: Any) -> str | None:
    charges = _get(_get(intent, "charges"), "data") or []
    if charges:
        return _get(charges[0], "receipt_url")
    latest_charge = _get(intent, "latest_charge")
    if latest_charge is not None and not isinstance(latest_charge, str):
        return _get(latest_charge, "receipt_url")
    return None


def _session_info(session: Any) -> CheckoutSessionInfo:
    details = _get(session, "customer_details")
    metadata = _get(session, "metadata")
    return CheckoutSessionInfo(
        id=_get(session, "id"),
        status=_get(session, "status"),
        payment_status=_get(session, "payment_status"),
        payment_intent_id=_get(session, "payment_intent"),
        amount_total=_get(session, "amount_total"),
        currency=_get(session, "currency"),
        customer_email=_get(details, "email") or _get(session, "customer_email"),
        customer_name=_get(details, "name"),
        metadata=metadata.to_dict() if hasattr(metadata, "to_dict") else dict(metadata or {}),
    )


def _balance_entries(entries: Any) -> list[BalanceEntry]:
    return [BalanceEntry(amount=_get(e, "amount", 0), currency=_get(e, "currency", "")) for e in entries or []]


def _payout_info(payout: Any) -> PayoutInfo:
    return PayoutInfo(
        id=_get(payout, "id"),
        amount=_get(payout, "amount", 0),
        currency=_get(payout, "currency", ""),
        status=_get(payout, "status", ""),
        arrival_date=_timestamp(_get(payout, "arrival_date")),
        created=_timestamp(_get(payout, "created")),
        method=_get(payout, "method"),
    )


def _schedule_info(schedule: Any) -> PayoutSchedule:
    return PayoutSchedule(
        interval=_get(schedule, "interval", "daily"),
        delay_days=_get(schedule, "delay_days"),
        weekly_anchor=_get(schedule, "weekly_anchor"),
        monthly_anchor=_get(schedule, "monthly_anchor"),
    )


class StripePaymentProvider(PaymentProvider):
    """
    Stripe Connect vía el SDK oficial.

    El SDK es síncrono: cada llamada corre en un thread y pasa por el circuit
    breaker. Los errores del SDK se traducen a ProviderError conservando
    code, param y http_status para que la lógica de negocio decida.
    """

    def __init__(self, api_key: str | None = None, allow_unsigned_webhooks: bool | None = None) -> None:
        settings = get_settings()
        stripe.api_key = api_key or settings.stripe_api_key
        stripe.max_network_retries = 2
        self._webhook_tolerance = settings.stripe_webhook_tolerance_seconds
        if allow_unsigned_webhooks is None:
            allow_unsigned_webhooks = settings.stripe_allow_unsigned_webhooks
        self._allow_unsigned_webhooks = allow_unsigned_webhooks

    async def _call(self, fn: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(stripe_breaker.call, fn, **kwargs)
        except CircuitBreakerError as exc:
            logger.error(
                "Stripe circuit breaker is open - service unavailable",
                extra={"circuit_state": str(exc)},
            )
            raise ProviderError(
                "Stripe no disponible temporalmente", provider_code="circuit_open", http_status=503
            ) from exc
        except stripe.StripeError as exc:
            error = ProviderError(
                exc.user_message or str(exc),
                provider_code=exc.code,
                param=getattr(exc, "param", None),
                http_status=exc.http_status,
            )
            logger.error(
                "Stripe API error",
                extra={"provider_code": error.provider_code, "param": error.param, "http_status": exc.http_status},
            )
            raise error from exc

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        intent = await self._call(stripe.PaymentIntent.retrieve, id=payment_intent_id, expand=["latest_charge"])
        return PaymentIntentInfo(
            id=intent.id,
            status=intent.status,
            amount=_get(intent, "amount", 0),
            currency=_get(intent, "currency", ""),
            receipt_url=_receipt_url(intent),
        )

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionInfo:
        session = await self._call(stripe.checkout.Session.retrieve, id=session_id)
        return _session_info(session)

    async def list_checkout_sessions(self, payment_intent_id: str, limit: int = 1) -> list[CheckoutSessionInfo]:
        sessions = await self._call(stripe.checkout.Session.list, payment_intent=payment_intent_id, limit=limit)
        return [_session_info(s) for s in _get(sessions, "data") or []]

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int,
        reverse_transfer: bool,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> RefundInfo:
        refund = await self._call(
            stripe.Refund.create,
            payment_intent=payment_intent_id,
            amount=amount,
            reverse_transfer=reverse_transfer,
            metadata=metadata or {},
            idempotency_key=idempotency_key,
        )
        return RefundInfo(
            id=refund.id,
            status=refund.status,
            amount=_get(refund, "amount", amount),
            currency=_get(refund, "currency", ""),
        )

    async def retrieve_balance(self, stripe_account: str) -> BalanceInfo:
        balance = await self._call(stripe.Balance.retrieve, stripe_account=stripe_account)
        return BalanceInfo(
            available=_balance_entries(_get(balance, "available")),
            pending=_balance_entries(_get(balance, "pending")),
        )

    async def retrieve_account(self, stripe_account: str) -> AccountInfo:
        account = await self._call(stripe.Account.retrieve, id=stripe_account)
        schedule = _get(_get(_get(account, "settings"), "payouts"), "schedule")
        external = _get(_get(account, "external_accounts"), "data") or []
        return AccountInfo(
            id=account.id,
            charges_enabled=bool(_get(account, "charges_enabled")),
            payouts_enabled=bool(_get(account, "payouts_enabled")),
            details_submitted=bool(_get(account, "details_submitted")),
            disabled_reason=_get(_get(account, "requirements"), "disabled_reason"),
            payout_schedule=_schedule_info(schedule),
            external_accounts=[
                BankAccountInfo(
                    id=_get(bank, "id"),
                    bank_name=_get(bank, "bank_name"),
                    last4=_get(bank, "last4"),
                    currency=_get(bank, "currency"),
                    country=_get(bank, "country"),
                )
                for bank in external
            ],
        )

    async def create_payout(
        self,
        stripe_account: str,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> PayoutInfo:
        payout = await self._call(
            stripe.Payout.create,
            amount=amount,
            currency=currency,
            metadata=metadata or {},
            stripe_account=stripe_account,
            idempotency_key=idempotency_key,
        )
        return _payout_info(payout)

    async def list_payouts(self, stripe_account: str, limit: int = 1) -> list[PayoutInfo]:
        payouts = await self._call(stripe.Payout.list, limit=limit, stripe_account=stripe_account)
        return [_payout_info(p) for p in _get(payouts, "data") or []]

    async def update_payout_schedule(self, stripe_account: str, schedule: PayoutSchedule) -> PayoutSchedule:
        params: dict[str, Any] = {"interval": schedule.interval}
        if schedule.delay_days is not None:
            params["delay_days"] = schedule.delay_days
        if schedule.interval == "weekly" and schedule.weekly_anchor:
            params["weekly_anchor"] = schedule.weekly_anchor
        if schedule.interval == "monthly" and schedule.monthly_anchor is not None:
            params["monthly_anchor"] = schedule.monthly_anchor

        account = await self._call(
            stripe.Account.modify,
            id=stripe_account,
            settings={"payouts": {"schedule": params}},
        )
        return _schedule_info(_get(_get(_get(account, "settings"), "payouts"), "schedule"))

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        if webhook_secret:
            if not signature_header:
                raise ValueError("Missing Stripe-Signature header")
            try:
                event = stripe.Webhook.construct_event(
                    payload=payload.decode(),
                    sig_header=signature_header,
                    secret=webhook_secret,
                    tolerance=self._webhook_tolerance,
                )
            except stripe.SignatureVerificationError as exc:
                raise ValueError("Invalid Stripe signature") from exc
            except ValueError as exc:
                raise ValueError("Invalid Stripe webhook payload") from exc
            # Stripe ya validó la firma; se trabaja con el JSON plano
            return json.loads(payload.decode())

        if not self._allow_unsigned_webhooks:
            logger.error("Stripe webhook rejected: STRIPE_WEBHOOK_SECRET is not configured")
            raise WebhookNotConfiguredError()

        logger.warning("Stripe webhook secret not configured; signature not verified")
        try:
            return json.loads(payload.decode() or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Invalid webhook payload") from exc
