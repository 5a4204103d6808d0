from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class PaymentIntentInfo:
    id: str
    status: str
    amount: int
    currency: str
    receipt_url: str | None = None


@dataclass
class CheckoutSessionInfo:
    id: str
    status: str | None
    payment_status: str | None
    payment_intent_id: str | None = None
    amount_total: int | None = None
    currency: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.status == "complete" and self.payment_status == "paid"


@dataclass
class RefundInfo:
    id: str
    status: str
    amount: int
    currency: str


@dataclass
class BalanceEntry:
    amount: int
    currency: str


@dataclass
class BalanceInfo:
    available: list[BalanceEntry] = field(default_factory=list)
    pending: list[BalanceEntry] = field(default_factory=list)

    def available_in(self, currency: str) -> int:
        return sum(e.amount for e in self.available if e.currency.lower() == currency.lower())


@dataclass
class PayoutSchedule:
    interval: str = "daily"
    delay_days: int | None = None
    weekly_anchor: str | None = None
    monthly_anchor: int | None = None


@dataclass
class BankAccountInfo:
    id: str
    bank_name: str | None = None
    last4: str | None = None
    currency: str | None = None
    country: str | None = None


@dataclass
class AccountInfo:
    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    disabled_reason: str | None = None
    payout_schedule: PayoutSchedule = field(default_factory=PayoutSchedule)
    external_accounts: list[BankAccountInfo] = field(default_factory=list)


@dataclass
class PayoutInfo:
    id: str
    amount: int
    currency: str
    status: str
    arrival_date: datetime | None = None
    created: datetime | None = None
    method: str | None = None


class PaymentProvider:
    """
    Puerto hacia el procesador de pagos (Stripe Connect).

    Los errores del proveedor se exponen como ProviderError (code, param, message).
    """

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        raise NotImplementedError

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionInfo:
        raise NotImplementedError

    async def list_checkout_sessions(self, payment_intent_id: str, limit: int = 1) -> list[CheckoutSessionInfo]:
        raise NotImplementedError

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int,
        reverse_transfer: bool,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> RefundInfo:
        raise NotImplementedError

    async def retrieve_balance(self, stripe_account: str) -> BalanceInfo:
        raise NotImplementedError

    async def retrieve_account(self, stripe_account: str) -> AccountInfo:
        raise NotImplementedError

    async def create_payout(
        self,
        stripe_account: str,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> PayoutInfo:
        raise NotImplementedError

    async def list_payouts(self, stripe_account: str, limit: int = 1) -> list[PayoutInfo]:
        raise NotImplementedError

    async def update_payout_schedule(self, stripe_account: str, schedule: PayoutSchedule) -> PayoutSchedule:
        raise NotImplementedError

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        raise NotImplementedError
