import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from tour_booking.application.interfaces.payment_provider import (
    AccountInfo,
    BalanceEntry,
    BalanceInfo,
    CheckoutSessionInfo,
    PaymentIntentInfo,
    PaymentProvider,
    PayoutInfo,
    PayoutSchedule,
    RefundInfo,
)
from tour_booking.domain.errors import ProviderError


@dataclass
class ProviderCall:
    method: str
    kwargs: dict[str, Any] = field(default_factory=dict)


class FakePaymentProvider(PaymentProvider):
    """
    Stripe simulado para tests y modo in-memory.

    El estado se configura directamente (intents, sessions, balances, accounts)
    y todas las llamadas quedan registradas en `calls`.
    """

    def __init__(self) -> None:
        self.intents: dict[str, PaymentIntentInfo] = {}
        self.sessions: dict[str, CheckoutSessionInfo] = {}
        self.balances: dict[str, BalanceInfo] = {}
        self.accounts: dict[str, AccountInfo] = {}
        self.payouts: dict[str, list[PayoutInfo]] = {}
        self.refunds: list[RefundInfo] = []
        self.calls: list[ProviderCall] = []
        self.reverse_transfer_error: ProviderError | None = None
        self.refund_error: ProviderError | None = None
        self.schedule_error: ProviderError | None = None
        self._refunds_by_key: dict[str, RefundInfo] = {}
        self._payouts_by_key: dict[str, PayoutInfo] = {}

    def calls_to(self, method: str) -> list[ProviderCall]:
        return [call for call in self.calls if call.method == method]

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        self.calls.append(ProviderCall("retrieve_payment_intent", {"payment_intent_id": payment_intent_id}))
        intent = self.intents.get(payment_intent_id)
        if intent is None:
            raise ProviderError(f"No such payment_intent: '{payment_intent_id}'", "resource_missing", "intent", 404)
        return intent

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionInfo:
        self.calls.append(ProviderCall("retrieve_checkout_session", {"session_id": session_id}))
        session = self.sessions.get(session_id)
        if session is None:
            raise ProviderError(f"No such checkout.session: '{session_id}'", "resource_missing", "session", 404)
        return session

    async def list_checkout_sessions(self, payment_intent_id: str, limit: int = 1) -> list[CheckoutSessionInfo]:
        self.calls.append(ProviderCall("list_checkout_sessions", {"payment_intent_id": payment_intent_id}))
        matches = [s for s in self.sessions.values() if s.payment_intent_id == payment_intent_id]
        return matches[:limit]

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int,
        reverse_transfer: bool,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> RefundInfo:
        self.calls.append(
            ProviderCall(
                "create_refund",
                {
                    "payment_intent_id": payment_intent_id,
                    "amount": amount,
                    "reverse_transfer": reverse_transfer,
                    "idempotency_key": idempotency_key,
                    "metadata": metadata or {},
                },
            )
        )
        if idempotency_key in self._refunds_by_key:
            return self._refunds_by_key[idempotency_key]
        if reverse_transfer and self.reverse_transfer_error is not None:
            raise self.reverse_transfer_error
        if self.refund_error is not None:
            raise self.refund_error
        intent = self.intents.get(payment_intent_id)
        refund = RefundInfo(
            id=f"re_{uuid4().hex[:14]}",
            status="succeeded",
            amount=amount,
            currency=(intent.currency if intent else "usd").lower(),
        )
        self.refunds.append(refund)
        self._refunds_by_key[idempotency_key] = refund
        return refund

    async def retrieve_balance(self, stripe_account: str) -> BalanceInfo:
        self.calls.append(ProviderCall("retrieve_balance", {"stripe_account": stripe_account}))
        return self.balances.get(stripe_account, BalanceInfo())

    async def retrieve_account(self, stripe_account: str) -> AccountInfo:
        self.calls.append(ProviderCall("retrieve_account", {"stripe_account": stripe_account}))
        account = self.accounts.get(stripe_account)
        if account is None:
            raise ProviderError(f"No such account: '{stripe_account}'", "account_invalid", "account", 404)
        return account

    async def create_payout(
        self,
        stripe_account: str,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> PayoutInfo:
        self.calls.append(
            ProviderCall(
                "create_payout",
                {
                    "stripe_account": stripe_account,
                    "amount": amount,
                    "currency": currency,
                    "idempotency_key": idempotency_key,
                    "metadata": metadata or {},
                },
            )
        )
        if idempotency_key in self._payouts_by_key:
            return self._payouts_by_key[idempotency_key]
        payout = PayoutInfo(
            id=f"po_{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            status="pending",
            created=datetime.now(timezone.utc),
            method="standard",
        )
        balance = self.balances.get(stripe_account)
        if balance is not None:
            balance.available.append(BalanceEntry(amount=-amount, currency=currency))
        self.payouts.setdefault(stripe_account, []).insert(0, payout)
        self._payouts_by_key[idempotency_key] = payout
        return payout

    async def list_payouts(self, stripe_account: str, limit: int = 1) -> list[PayoutInfo]:
        self.calls.append(ProviderCall("list_payouts", {"stripe_account": stripe_account}))
        return self.payouts.get(stripe_account, [])[:limit]

    async def update_payout_schedule(self, stripe_account: str, schedule: PayoutSchedule) -> PayoutSchedule:
        self.calls.append(ProviderCall("update_payout_schedule", {"stripe_account": stripe_account}))
        if self.schedule_error is not None:
            raise self.schedule_error
        account = self.accounts.get(stripe_account)
        if account is None:
            raise ProviderError(f"No such account: '{stripe_account}'", "account_invalid", "account", 404)
        account.payout_schedule = schedule
        return schedule

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        if not payload:
            raise ValueError("Empty webhook payload")
        try:
            return json.loads(payload.decode() or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Invalid webhook payload") from exc
