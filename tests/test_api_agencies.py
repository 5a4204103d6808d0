from decimal import Decimal

import pytest

from tour_booking.application.interfaces.payment_provider import (
    AccountInfo,
    BalanceEntry,
    BalanceInfo,
    BankAccountInfo,
    PayoutSchedule,
)
from tour_booking.domain.entities.agency import Agency

BASE = "/api/v1"
ACCOUNT = "acct_api_payouts"


@pytest.fixture
def agency(api_bundle):
    api_bundle.store.agencies[1] = Agency(
        id=1, name="Tours del Pacífico", stripe_account_id=ACCOUNT, fee_percentage=Decimal("10"), active=True
    )
    api_bundle.payment_provider.accounts[ACCOUNT] = AccountInfo(
        id=ACCOUNT,
        charges_enabled=True,
        payouts_enabled=True,
        details_submitted=True,
        payout_schedule=PayoutSchedule(interval="manual"),
        external_accounts=[BankAccountInfo(id="ba_api", bank_name="BCR", last4="4321", currency="crc", country="CR")],
    )
    api_bundle.payment_provider.balances[ACCOUNT] = BalanceInfo(
        available=[BalanceEntry(amount=20000, currency="usd"), BalanceEntry(amount=500000, currency="crc")],
    )
    return api_bundle.store.agencies[1]


def test_payout_info(client, agency):
    response = client.get(f"{BASE}/agencies/{agency.id}/payout-info")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["balance"]["available"] == 20950
    assert data["balances_by_currency"]["CRC"]["available"] == 500000
    assert data["next_payout"]["interval"] == "manual"


def test_manual_payout_created(client, agency, api_bundle):
    response = client.post(
        f"{BASE}/agencies/{agency.id}/payouts",
        json={"amount": 15000, "currency": "usd", "requested_by": "admin@agencia.com"},
    )

    assert response.status_code == 201
    assert response.json()["code"] == "PAYOUT_CREATED"
    assert api_bundle.payment_provider.calls_to("create_payout")[0].kwargs["amount"] == 15000


def test_manual_payout_rejected_on_automatic_schedule(client, agency, api_bundle):
    api_bundle.payment_provider.accounts[ACCOUNT].payout_schedule = PayoutSchedule(interval="daily")

    response = client.post(f"{BASE}/agencies/{agency.id}/payouts", json={"amount": 1000, "currency": "usd"})

    assert response.status_code == 400
    assert response.json()["code"] == "PAYOUT_SCHEDULE_NOT_MANUAL"


def test_manual_payout_over_balance(client, agency):
    response = client.post(f"{BASE}/agencies/{agency.id}/payouts", json={"amount": 25000, "currency": "usd"})

    assert response.status_code == 409
    assert response.json()["data"]["shortfall"] == 5000


def test_payout_settings_roundtrip(client, agency):
    updated = client.put(
        f"{BASE}/agencies/{agency.id}/payout-settings",
        json={"interval": "monthly", "monthly_anchor": 15, "delay_days": 3},
    )
    settings = client.get(f"{BASE}/agencies/{agency.id}/payout-settings")

    assert updated.status_code == 200
    assert updated.json()["code"] == "PAYOUT_SCHEDULE_UPDATED"
    assert settings.json()["data"]["payout_schedule"] == {
        "interval": "monthly",
        "delay_days": 3,
        "weekly_anchor": None,
        "monthly_anchor": 15,
    }
    assert settings.json()["data"]["bank_account"]["last4"] == "4321"


def test_invalid_payout_settings(client, agency):
    response = client.put(f"{BASE}/agencies/{agency.id}/payout-settings", json={"interval": "weekly"})

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_PAYOUT_SCHEDULE"


def test_unknown_agency(client):
    response = client.get(f"{BASE}/agencies/404/payout-info")

    assert response.status_code == 404
    assert response.json()["code"] == "AGENCY_NOT_FOUND"


def test_sync_agency_stripe_status(client, agency, api_bundle):
    api_bundle.payment_provider.accounts[ACCOUNT].disabled_reason = "requirements.past_due"

    response = client.post(f"{BASE}/agencies/{agency.id}/sync-stripe-status")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["previous_status"] is True
    assert data["current_status"] is False
    assert api_bundle.store.agencies[1].active is False


def test_sync_agency_without_connected_account(client, api_bundle):
    api_bundle.store.agencies[5] = Agency(id=5, name="Sin Stripe")

    response = client.post(f"{BASE}/agencies/5/sync-stripe-status")

    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_CONNECTED_ACCOUNT"


def test_sync_all_agencies_reports_each_result(client, agency, api_bundle):
    api_bundle.store.agencies[2] = Agency(id=2, name="Cuenta borrada", stripe_account_id="acct_gone", active=True)
    api_bundle.store.agencies[3] = Agency(id=3, name="Sin Stripe")

    response = client.post(f"{BASE}/agencies/sync-stripe-status")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    assert data["successful"] == 1
    assert data["failed"] == 1
    assert data["status_changes"] == 0
    assert [r["agency_id"] for r in data["results"]] == [1, 2]
    assert data["results"][1]["success"] is False
    assert api_bundle.store.agencies[2].active is True
