import logging
from datetime import date

import pytest

from tests.conftest import STRIPE_ACCOUNT
from tour_booking.application.interfaces.payment_provider import (
    BalanceEntry,
    BalanceInfo,
    PayoutInfo,
    PayoutSchedule,
)
from tour_booking.application.use_cases.payout_reconciler import (
    PayoutScheduleRequest,
    next_payout_date,
    translate_schedule_error,
)
from tour_booking.domain.errors import ProviderError

MONDAY = date(2025, 3, 10)


def _balance(env, *entries: tuple[int, str], pending: tuple[tuple[int, str], ...] = ()) -> None:
    env.provider.balances[STRIPE_ACCOUNT] = BalanceInfo(
        available=[BalanceEntry(amount=amount, currency=currency) for amount, currency in entries],
        pending=[BalanceEntry(amount=amount, currency=currency) for amount, currency in pending],
    )


@pytest.mark.asyncio
async def test_manual_payout_requires_manual_schedule(env):
    agency = await env.add_agency()
    env.add_account(interval="weekly", weekly_anchor="friday")
    _balance(env, (50000, "usd"))

    result = await env.payouts.create_manual_payout(agency.id, 20000, "usd", requested_by="admin@agencia.com")

    assert not result.success
    assert result.code == "PAYOUT_SCHEDULE_NOT_MANUAL"
    assert result.data["interval"] == "weekly"
    assert env.provider.calls_to("retrieve_balance") == []
    assert env.provider.calls_to("create_payout") == []


@pytest.mark.asyncio
async def test_manual_payout_is_created(env):
    agency = await env.add_agency()
    env.add_account()
    _balance(env, (50000, "usd"))

    result = await env.payouts.create_manual_payout(agency.id, 20000, "USD", requested_by="admin@agencia.com")

    assert result.success, result
    assert result.code == "PAYOUT_CREATED"
    assert result.data["amount"] == 20000
    assert result.data["status"] == "pending"
    (call,) = env.provider.calls_to("create_payout")
    assert call.kwargs["currency"] == "usd"
    assert call.kwargs["idempotency_key"] == f"manual_payout_{agency.id}_20000_usd_{env.clock.epoch_seconds() // 60}"
    assert call.kwargs["metadata"] == {
        "agency_id": str(agency.id),
        "payout_type": "manual",
        "requested_by": "admin@agencia.com",
    }
    assert env.provider.balances[STRIPE_ACCOUNT].available_in("usd") == 30000


@pytest.mark.asyncio
async def test_repeated_request_within_window_reuses_payout(env):
    agency = await env.add_agency()
    env.add_account()
    _balance(env, (50000, "usd"))

    first = await env.payouts.create_manual_payout(agency.id, 10000, "usd")
    second = await env.payouts.create_manual_payout(agency.id, 10000, "usd")

    assert first.data["id"] == second.data["id"]
    assert len(env.provider.payouts[STRIPE_ACCOUNT]) == 1


@pytest.mark.asyncio
async def test_payouts_disabled(env):
    agency = await env.add_agency()
    env.add_account(payouts_enabled=False)
    _balance(env, (50000, "usd"))

    result = await env.payouts.create_manual_payout(agency.id, 1000, "usd")

    assert result.code == "PAYOUTS_DISABLED"


@pytest.mark.asyncio
async def test_payout_without_bank_account(env):
    agency = await env.add_agency()
    env.add_account(with_bank=False)
    _balance(env, (50000, "usd"))

    result = await env.payouts.create_manual_payout(agency.id, 1000, "usd")

    assert result.code == "NO_EXTERNAL_ACCOUNT"


@pytest.mark.asyncio
async def test_payout_exceeding_available_balance(env):
    agency = await env.add_agency()
    env.add_account()
    _balance(env, (1500, "usd"), pending=((90000, "usd"),))

    result = await env.payouts.create_manual_payout(agency.id, 2000, "usd")

    assert result.code == "INSUFFICIENT_BALANCE"
    assert result.data["shortfall"] == 500
    assert env.provider.calls_to("create_payout") == []


@pytest.mark.parametrize("amount, currency", [(0, "usd"), (-5, "usd"), (1000, "gbp")])
@pytest.mark.asyncio
async def test_invalid_payout_requests(env, amount, currency):
    agency = await env.add_agency()
    env.add_account()

    result = await env.payouts.create_manual_payout(agency.id, amount, currency)

    assert result.code == "VALIDATION_ERROR"
    assert env.provider.calls == []


@pytest.mark.asyncio
async def test_unknown_agency_and_missing_connected_account(env):
    without_account = await env.add_agency(stripe_account_id=None)

    assert (await env.payouts.get_payout_info(999)).code == "AGENCY_NOT_FOUND"
    assert (await env.payouts.get_payout_info(without_account.id)).code == "MISSING_CONNECTED_ACCOUNT"


@pytest.mark.asyncio
async def test_payout_info_converts_balances_to_canonical_currency(env):
    agency = await env.add_agency()
    env.add_account(interval="weekly", weekly_anchor="friday")
    _balance(env, (10000, "usd"), (1_000_000, "crc"), pending=((2000, "usd"),))

    result = await env.payouts.get_payout_info(agency.id)

    assert result.success
    assert result.data["balance"] == {"available": 11900, "pending": 2000, "total": 13900, "currency": "USD"}
    assert result.data["balances_by_currency"]["USD"] == {"available": 10000, "pending": 2000, "total": 12000}
    assert result.data["balances_by_currency"]["CRC"]["total"] == 1_000_000
    assert result.data["primary_currency"] == "CRC"
    assert result.data["next_payout"] == {"date": "2025-03-14", "estimated_amount": 13900, "interval": "weekly"}
    assert result.data["last_payout"] is None


@pytest.mark.asyncio
async def test_payout_info_assumes_parity_for_unconfigured_currency(env, caplog):
    agency = await env.add_agency()
    env.add_account()
    _balance(env, (700, "eur"))
    env.provider.payouts[STRIPE_ACCOUNT] = [
        PayoutInfo(id="po_last", amount=5000, currency="usd", status="paid", method="standard")
    ]

    with caplog.at_level(logging.WARNING):
        result = await env.payouts.get_payout_info(agency.id)

    assert result.data["balance"]["total"] == 700
    assert result.data["next_payout"]["date"] is None
    assert result.data["last_payout"]["id"] == "po_last"
    assert "No conversion rate configured, assuming 1:1" in caplog.text


@pytest.mark.asyncio
async def test_payout_settings(env):
    agency = await env.add_agency()
    env.add_account(interval="daily", delay_days=2)

    result = await env.payouts.get_payout_settings(agency.id)

    assert result.data["payout_schedule"] == {
        "interval": "daily",
        "delay_days": 2,
        "weekly_anchor": None,
        "monthly_anchor": None,
    }
    assert result.data["bank_account"]["last4"] == "6789"
    assert result.data["payouts_enabled"] is True


@pytest.mark.asyncio
async def test_update_schedule_to_weekly(env):
    agency = await env.add_agency()
    account = env.add_account()

    result = await env.payouts.update_payout_schedule(
        agency.id, PayoutScheduleRequest(interval="Weekly", weekly_anchor="Friday", monthly_anchor=15)
    )

    assert result.code == "PAYOUT_SCHEDULE_UPDATED"
    assert result.data["payout_schedule"] == {
        "interval": "weekly",
        "delay_days": 0,
        "weekly_anchor": "friday",
        "monthly_anchor": None,
    }
    assert account.payout_schedule.weekly_anchor == "friday"


@pytest.mark.parametrize(
    "request_kwargs, param",
    [
        ({"interval": ""}, "interval"),
        ({"interval": "yearly"}, "interval"),
        ({"interval": "weekly"}, "weekly_anchor"),
        ({"interval": "weekly", "weekly_anchor": "someday"}, "weekly_anchor"),
        ({"interval": "monthly"}, "monthly_anchor"),
        ({"interval": "monthly", "monthly_anchor": 32}, "monthly_anchor"),
        ({"interval": "daily", "delay_days": -1}, "delay_days"),
    ],
)
@pytest.mark.asyncio
async def test_schedule_validation(env, request_kwargs, param):
    agency = await env.add_agency()
    env.add_account()

    result = await env.payouts.update_payout_schedule(agency.id, PayoutScheduleRequest(**request_kwargs))

    assert result.code == "INVALID_PAYOUT_SCHEDULE"
    assert result.data["param"] == param
    assert env.provider.calls_to("update_payout_schedule") == []


@pytest.mark.asyncio
async def test_stripe_schedule_rejection_is_translated(env):
    agency = await env.add_agency()
    env.add_account()
    env.provider.schedule_error = ProviderError(
        "You cannot lower the delay_days below the minimum of 7",
        "parameter_invalid_integer",
        "settings[payouts][schedule][delay_days]",
        400,
    )

    result = await env.payouts.update_payout_schedule(
        agency.id, PayoutScheduleRequest(interval="daily", delay_days=2)
    )

    assert result.code == "INVALID_PAYOUT_SCHEDULE"
    assert result.message == "No se puede reducir el retraso de payout por debajo del mínimo permitido por Stripe"


@pytest.mark.asyncio
async def test_stripe_outage_during_schedule_update_is_a_provider_error(env):
    agency = await env.add_agency()
    env.add_account()
    env.provider.schedule_error = ProviderError("Stripe unavailable", "api_error", None, 503)

    result = await env.payouts.update_payout_schedule(agency.id, PayoutScheduleRequest(interval="manual"))

    assert result.code == "PROVIDER_ERROR"


@pytest.mark.parametrize(
    "schedule, expected",
    [
        (PayoutSchedule(interval="manual"), None),
        (PayoutSchedule(interval="daily"), date(2025, 3, 11)),
        (PayoutSchedule(interval="daily", delay_days=2), date(2025, 3, 13)),
        (PayoutSchedule(interval="weekly", weekly_anchor="friday"), date(2025, 3, 14)),
        (PayoutSchedule(interval="weekly", weekly_anchor="monday"), date(2025, 3, 17)),
        (PayoutSchedule(interval="monthly", monthly_anchor=31), date(2025, 4, 30)),
    ],
)
def test_next_payout_date(schedule, expected):
    assert next_payout_date(schedule, MONDAY) == expected


def test_next_monthly_payout_rolls_over_the_year():
    schedule = PayoutSchedule(interval="monthly", monthly_anchor=15)

    assert next_payout_date(schedule, date(2025, 12, 20)) == date(2026, 1, 15)


@pytest.mark.parametrize(
    "param, message, expected",
    [
        ("settings[payouts][schedule][delay_days]", "Delay days higher than max", "El retraso de payout no puede exceder el máximo permitido por Stripe"),
        ("settings[payouts][schedule][delay_days]", "Invalid integer", "El valor de días de retraso no es válido"),
        ("settings[payouts][schedule][interval]", "Invalid interval", "El intervalo de payout seleccionado no es válido"),
        ("settings[payouts][schedule][monthly_anchor]", "Invalid anchor", "El día del mes seleccionado no es válido"),
        (None, "Something else", "Error al actualizar la configuración"),
    ],
)
def test_translate_schedule_error(param, message, expected):
    assert translate_schedule_error(ProviderError(message, "invalid_request_error", param, 400)) == expected
