import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from tour_booking.application.interfaces.agency_repo import AgencyRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.payment_provider import (
    AccountInfo,
    BalanceInfo,
    PaymentProvider,
    PayoutInfo,
    PayoutSchedule,
)
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.results import OperationResult
from tour_booking.domain.entities.agency import Agency
from tour_booking.domain.errors import (
    AgencyNotFoundError,
    DomainError,
    InsufficientBalanceError,
    InvalidPayoutScheduleError,
    MissingConnectedAccountError,
    NoExternalAccountError,
    PayoutScheduleNotManualError,
    PayoutsDisabledError,
    ProviderError,
    ValidationError,
)
from tour_booking.domain.value_objects.money import Money

PAYOUT_CURRENCIES = ("usd", "eur", "crc")
PAYOUT_INTERVALS = ("manual", "daily", "weekly", "monthly")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_SCHEDULE_PARAM = "settings[payouts][schedule][{}]"


@dataclass
class PayoutScheduleRequest:
    interval: str
    delay_days: int | None = None
    weekly_anchor: str | None = None
    monthly_anchor: int | None = None


def next_payout_date(schedule: PayoutSchedule, today: date) -> date | None:
    """Fecha estimada del próximo payout automático (None si es manual)."""
    if schedule.interval == "daily":
        next_date = today + timedelta(days=1)
    elif schedule.interval == "weekly":
        anchor = (schedule.weekly_anchor or "monday").lower()
        target = WEEKDAYS.index(anchor) if anchor in WEEKDAYS else 0
        days_until = (target - today.weekday()) % 7 or 7
        next_date = today + timedelta(days=days_until)
    elif schedule.interval == "monthly":
        year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
        day = min(schedule.monthly_anchor or 1, calendar.monthrange(year, month)[1])
        next_date = date(year, month, day)
    else:
        return None
    if schedule.delay_days:
        next_date += timedelta(days=schedule.delay_days)
    return next_date if next_date > today else None


def translate_schedule_error(exc: ProviderError) -> str:
    """Traduce errores de validación de Stripe a mensajes para el usuario."""
    message = (exc.message or "").lower()
    if exc.param == _SCHEDULE_PARAM.format("delay_days"):
        if "lower" in message and "delay" in message:
            return "No se puede reducir el retraso de payout por debajo del mínimo permitido por Stripe"
        if "higher" in message and "delay" in message:
            return "El retraso de payout no puede exceder el máximo permitido por Stripe"
        return "El valor de días de retraso no es válido"
    if exc.param == _SCHEDULE_PARAM.format("interval"):
        return "El intervalo de payout seleccionado no es válido"
    if exc.param == _SCHEDULE_PARAM.format("weekly_anchor"):
        return "El día de la semana seleccionado no es válido"
    if exc.param == _SCHEDULE_PARAM.format("monthly_anchor"):
        return "El día del mes seleccionado no es válido"
    return "Error al actualizar la configuración"


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class PayoutReconciler:
    """
    Saldos multi-moneda, payouts manuales y calendario de payouts de la cuenta
    conectada de cada agencia.

    La conversión a la moneda canónica usa tasas estáticas configurables; es una
    aproximación para mostrar, no un valor contable.
    """

    def __init__(
        self,
        agency_repo: AgencyRepo,
        payment_provider: PaymentProvider,
        transaction_manager: TransactionManager,
        clock: Clock,
        canonical_currency: str = "USD",
        fx_rates_to_canonical: dict[str, Decimal] | None = None,
        idempotency_window_seconds: int = 60,
    ) -> None:
        self._agency_repo = agency_repo
        self._payment_provider = payment_provider
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._canonical_currency = canonical_currency.upper()
        self._fx_rates = {k.upper(): Decimal(str(v)) for k, v in (fx_rates_to_canonical or {}).items()}
        self._fx_rates.setdefault(self._canonical_currency, Decimal("1"))
        self._idempotency_window_seconds = idempotency_window_seconds
        self._logger = logging.getLogger(__name__)

    async def get_payout_info(self, agency_id: int) -> OperationResult:
        try:
            agency = await self._connected_agency(agency_id)
            balance = await self._payment_provider.retrieve_balance(agency.stripe_account_id)
            account = await self._payment_provider.retrieve_account(agency.stripe_account_id)
            payouts = await self._payment_provider.list_payouts(agency.stripe_account_id, limit=1)
        except DomainError as exc:
            return OperationResult.from_error(exc)

        by_currency = self._balances_by_currency(balance)
        canonical = {"available": 0, "pending": 0, "total": 0, "currency": self._canonical_currency}
        for currency, amounts in by_currency.items():
            rate = self._rate_for(currency)
            for key in ("available", "pending", "total"):
                canonical[key] += Money.from_cents(amounts[key], currency).convert(rate, self._canonical_currency).cents

        primary_currency = max(by_currency, key=lambda c: by_currency[c]["total"]) if by_currency else None
        schedule = account.payout_schedule
        next_date = next_payout_date(schedule, self._clock.now().date())
        last_payout = payouts[0] if payouts else None

        data = {
            "agency_id": agency.id,
            "balance": canonical,
            "balances_by_currency": by_currency,
            "primary_currency": primary_currency,
            "primary_balance": by_currency.get(primary_currency) if primary_currency else None,
            "next_payout": {
                "date": next_date.isoformat() if next_date else None,
                "estimated_amount": canonical["total"],
                "interval": schedule.interval or "manual",
            },
            "last_payout": self._serialize_payout(last_payout) if last_payout else None,
        }
        self._logger.info(
            "Payout info retrieved",
            extra={"agency_id": agency.id, "balance": canonical, "interval": schedule.interval},
        )
        return OperationResult.ok("OK", data=data)

    async def create_manual_payout(
        self,
        agency_id: int,
        amount: int,
        currency: str,
        requested_by: str | None = None,
    ) -> OperationResult:
        currency = (currency or "").lower()
        try:
            if amount is None or amount <= 0:
                raise ValidationError("amount", "debe ser mayor a cero")
            if currency not in PAYOUT_CURRENCIES:
                raise ValidationError("currency", f"debe ser una de {', '.join(PAYOUT_CURRENCIES)}")

            agency = await self._connected_agency(agency_id)
            account = await self._payment_provider.retrieve_account(agency.stripe_account_id)
            self._ensure_manual_payouts_allowed(account)

            balance = await self._payment_provider.retrieve_balance(agency.stripe_account_id)
            available = balance.available_in(currency)
            if available < amount:
                raise InsufficientBalanceError(required=amount, available=available, currency=currency)

            bucket = self._clock.epoch_seconds() // self._idempotency_window_seconds
            payout = await self._payment_provider.create_payout(
                stripe_account=agency.stripe_account_id,
                amount=amount,
                currency=currency,
                idempotency_key=f"manual_payout_{agency.id}_{amount}_{currency}_{bucket}",
                metadata={
                    "agency_id": str(agency.id),
                    "payout_type": "manual",
                    "requested_by": requested_by or "",
                },
            )
        except ProviderError as exc:
            self._logger.error(
                "Stripe rejected manual payout",
                extra={"agency_id": agency_id, "provider_code": exc.provider_code},
            )
            return OperationResult.from_error(exc)
        except DomainError as exc:
            self._logger.warning("Manual payout rejected", extra={"agency_id": agency_id, "code": exc.code})
            return OperationResult.from_error(exc)

        self._logger.info(
            "Manual payout created",
            extra={"agency_id": agency_id, "payout_id": payout.id, "amount": amount, "currency": currency},
        )
        return OperationResult.ok("PAYOUT_CREATED", "Payout creado", self._serialize_payout(payout))

    async def get_payout_settings(self, agency_id: int) -> OperationResult:
        try:
            agency = await self._connected_agency(agency_id)
            account = await self._payment_provider.retrieve_account(agency.stripe_account_id)
        except DomainError as exc:
            return OperationResult.from_error(exc)

        bank = account.external_accounts[0] if account.external_accounts else None
        return OperationResult.ok(
            "OK",
            data={
                "agency_id": agency.id,
                "payout_schedule": self._serialize_schedule(account.payout_schedule),
                "bank_account": (
                    {
                        "id": bank.id,
                        "bank_name": bank.bank_name,
                        "last4": bank.last4,
                        "currency": bank.currency,
                        "country": bank.country,
                    }
                    if bank
                    else None
                ),
                "payouts_enabled": account.payouts_enabled,
                "charges_enabled": account.charges_enabled,
            },
        )

    async def update_payout_schedule(self, agency_id: int, request: PayoutScheduleRequest) -> OperationResult:
        try:
            schedule = self._validate_schedule(request)
            agency = await self._connected_agency(agency_id)
            try:
                updated = await self._payment_provider.update_payout_schedule(agency.stripe_account_id, schedule)
            except ProviderError as exc:
                if exc.http_status is not None and exc.http_status >= 500:
                    raise
                self._logger.warning(
                    "Stripe rejected payout schedule",
                    extra={"agency_id": agency_id, "param": exc.param, "stripe_message": exc.message},
                )
                raise InvalidPayoutScheduleError(translate_schedule_error(exc), exc.param) from exc
        except DomainError as exc:
            return OperationResult.from_error(exc)

        self._logger.info(
            "Payout schedule updated",
            extra={"agency_id": agency_id, "interval": updated.interval},
        )
        return OperationResult.ok(
            "PAYOUT_SCHEDULE_UPDATED",
            "Configuración de payout actualizada",
            {"agency_id": agency_id, "payout_schedule": self._serialize_schedule(updated)},
        )

    async def _connected_agency(self, agency_id: int) -> Agency:
        async with self._transaction_manager.start():
            agency = await self._agency_repo.get(agency_id)
        if agency is None:
            raise AgencyNotFoundError(agency_id)
        if not agency.stripe_account_id:
            raise MissingConnectedAccountError(agency_id)
        return agency

    @staticmethod
    def _ensure_manual_payouts_allowed(account: AccountInfo) -> None:
        if account.payout_schedule.interval != "manual":
            raise PayoutScheduleNotManualError(account.payout_schedule.interval)
        if not account.payouts_enabled:
            raise PayoutsDisabledError(account.id)
        if not account.external_accounts:
            raise NoExternalAccountError(account.id)

    @staticmethod
    def _validate_schedule(request: PayoutScheduleRequest) -> PayoutSchedule:
        interval = (request.interval or "").lower()
        if not interval:
            raise InvalidPayoutScheduleError("El intervalo es requerido", "interval")
        if interval not in PAYOUT_INTERVALS:
            raise InvalidPayoutScheduleError(
                "Intervalo inválido. Debe ser manual, daily, weekly o monthly", "interval"
            )
        weekly_anchor = (request.weekly_anchor or "").lower() or None
        if interval == "weekly":
            if not weekly_anchor:
                raise InvalidPayoutScheduleError("weekly_anchor es requerido para intervalos semanales", "weekly_anchor")
            if weekly_anchor not in WEEKDAYS:
                raise InvalidPayoutScheduleError("El día de la semana seleccionado no es válido", "weekly_anchor")
        if interval == "monthly":
            if not request.monthly_anchor:
                raise InvalidPayoutScheduleError("monthly_anchor es requerido para intervalos mensuales", "monthly_anchor")
            if not 1 <= request.monthly_anchor <= 31:
                raise InvalidPayoutScheduleError("El día del mes seleccionado no es válido", "monthly_anchor")
        if request.delay_days is not None and request.delay_days < 0:
            raise InvalidPayoutScheduleError("El valor de días de retraso no es válido", "delay_days")

        return PayoutSchedule(
            interval=interval,
            delay_days=request.delay_days or 0,
            weekly_anchor=weekly_anchor if interval == "weekly" else None,
            monthly_anchor=request.monthly_anchor if interval == "monthly" else None,
        )

    def _balances_by_currency(self, balance: BalanceInfo) -> dict[str, dict[str, int]]:
        by_currency: dict[str, dict[str, int]] = {}
        for key, entries in (("available", balance.available), ("pending", balance.pending)):
            for entry in entries:
                amounts = by_currency.setdefault(entry.currency.upper(), {"available": 0, "pending": 0, "total": 0})
                amounts[key] += entry.amount
                amounts["total"] += entry.amount
        return by_currency

    def _rate_for(self, currency: str) -> Decimal:
        rate = self._fx_rates.get(currency.upper())
        if rate is None:
            self._logger.warning(
                "No conversion rate configured, assuming 1:1",
                extra={"currency": currency, "canonical_currency": self._canonical_currency},
            )
            return Decimal("1")
        return rate

    @staticmethod
    def _serialize_schedule(schedule: PayoutSchedule) -> dict:
        return {
            "interval": schedule.interval,
            "delay_days": schedule.delay_days or 0,
            "weekly_anchor": schedule.weekly_anchor,
            "monthly_anchor": schedule.monthly_anchor,
        }

    @staticmethod
    def _serialize_payout(payout: PayoutInfo) -> dict:
        return {
            "id": payout.id,
            "amount": payout.amount,
            "currency": payout.currency,
            "status": payout.status,
            "method": payout.method,
            "created": _isoformat(payout.created),
            "arrival_date": _isoformat(payout.arrival_date),
        }
