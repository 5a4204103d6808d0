from decimal import Decimal

from tests.conftest import FIXED_NOW
from tour_booking.application.interfaces.payment_provider import BalanceEntry, BalanceInfo, PaymentIntentInfo
from tour_booking.config import Settings, get_settings
from tour_booking.domain.entities.agency import Agency
from tour_booking.domain.entities.payment import Payment, PaymentStatus
from tour_booking.domain.entities.turno import Turno
from tour_booking.main import app

BASE = "/api/v1"


def _payload(**overrides):
    payload = {
        "turno_id": 1,
        "agency_id": 1,
        "currency": "USD",
        "customer_email": "cliente@example.com",
        "customer_name": "Ana Pérez",
        "language": "es",
        "items": [
            {"item_type": "rate", "quantity": 2, "unit_price": 5000, "catalog_ref_id": 10},
            {"item_type": "addon", "quantity": 1, "unit_price": 1500},
        ],
    }
    payload.update(overrides)
    return payload


def _add_turno(bundle, max_capacity=10):
    bundle.store.turnos[1] = Turno(id=1, max_capacity=max_capacity)
    bundle.store.bump_sequence("turnos", 1)


def _add_paid_reservation(client, bundle, balance=50000):
    _add_turno(bundle)
    created = client.post(f"{BASE}/reservations", json=_payload()).json()["data"]
    client.post(f"{BASE}/reservations/{created['reservation_id']}/confirm")

    bundle.store.agencies[1] = Agency(
        id=1, name="Tours del Pacífico", stripe_account_id="acct_api", fee_percentage=Decimal("10"), active=True
    )
    bundle.store.payments[1] = Payment(
        id=1,
        reservation_id=created["reservation_id"],
        agency_id=1,
        stripe_session_id="cs_api",
        stripe_payment_intent_id="pi_api",
        amount=11500,
        currency="USD",
        status=PaymentStatus.SUCCEEDED,
        external_status="paid",
        created_at=FIXED_NOW,
    )
    bundle.store.bump_sequence("payments", 1)
    bundle.payment_provider.intents["pi_api"] = PaymentIntentInfo(
        id="pi_api", status="succeeded", amount=11500, currency="usd"
    )
    bundle.payment_provider.balances["acct_api"] = BalanceInfo(
        available=[BalanceEntry(amount=balance, currency="usd")]
    )
    return created


def test_create_reservation_returns_hold(client, api_bundle):
    _add_turno(api_bundle)

    response = client.post(f"{BASE}/reservations", json=_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["code"] == "HOLD_CREATED"
    assert body["data"]["state"] == "hold"
    assert body["data"]["total_amount"] == 11500
    assert body["data"]["occupant_count"] == 2
    assert body["data"]["booking_code"].startswith("RES-")
    assert api_bundle.store.turnos[1].occupied == 2


def test_create_reservation_without_capacity(client, api_bundle):
    _add_turno(api_bundle, max_capacity=1)

    response = client.post(f"{BASE}/reservations", json=_payload())

    assert response.status_code == 409
    assert response.json()["code"] == "CAPACITY_EXCEEDED"
    assert response.json()["data"]["shortfall"] == 1


def test_create_reservation_unknown_turno(client):
    response = client.post(f"{BASE}/reservations", json=_payload(turno_id=77))

    assert response.status_code == 404
    assert response.json()["code"] == "TURNO_NOT_FOUND"


def test_create_reservation_without_rate_line(client, api_bundle):
    _add_turno(api_bundle)

    response = client.post(
        f"{BASE}/reservations",
        json=_payload(items=[{"item_type": "transport", "quantity": 1, "unit_price": 2000}]),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_create_reservation_schema_errors(client):
    assert client.post(f"{BASE}/reservations", json=_payload(items=[])).status_code == 422
    assert client.post(f"{BASE}/reservations", json=_payload(customer_email="no-es-email")).status_code == 422
    assert client.post(f"{BASE}/reservations", json=_payload(unexpected="x")).status_code == 422


def test_confirm_is_idempotent(client, api_bundle):
    _add_turno(api_bundle)
    created = client.post(f"{BASE}/reservations", json=_payload()).json()["data"]

    first = client.post(f"{BASE}/reservations/{created['reservation_id']}/confirm")
    second = client.post(
        f"{BASE}/reservations/{created['reservation_id']}/confirm",
        json={"booking_code": created["booking_code"]},
    )

    assert first.status_code == 200
    assert first.json()["code"] == "CONFIRMED"
    assert second.status_code == 200
    assert second.json()["code"] == "ALREADY_CONFIRMED"
    assert api_bundle.store.turnos[1].occupied == 2


def test_confirm_unknown_reservation(client):
    response = client.post(f"{BASE}/reservations/999/confirm")

    assert response.status_code == 404
    assert response.json()["code"] == "RESERVATION_NOT_FOUND"


def test_refund_paid_reservation(client, api_bundle):
    created = _add_paid_reservation(client, api_bundle)

    response = client.post(
        f"{BASE}/reservations/{created['reservation_id']}/refund",
        json={"authorized_by": "admin@agencia.com", "reason": "Cliente enfermo"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "REFUND_COMPLETED"
    assert body["data"]["refund_amount"] == 10350
    assert api_bundle.store.turnos[1].occupied == 0

    listed = client.get(f"{BASE}/reservations/{created['reservation_id']}/refunds").json()
    assert listed["data"]["total_refunded"] == 10350


def test_refund_with_insufficient_connected_balance(client, api_bundle):
    created = _add_paid_reservation(client, api_bundle, balance=350)

    response = client.post(
        f"{BASE}/reservations/{created['reservation_id']}/refund",
        json={"authorized_by": "admin@agencia.com"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "INSUFFICIENT_BALANCE"
    assert response.json()["data"]["shortfall"] == 10000


def test_refund_for_other_agency_is_forbidden(client, api_bundle):
    created = _add_paid_reservation(client, api_bundle)

    response = client.post(
        f"{BASE}/reservations/{created['reservation_id']}/refund",
        json={"authorized_by": "admin@agencia.com", "agency_id": 2},
    )

    assert response.status_code == 403


def test_refund_without_payment(client, api_bundle):
    _add_turno(api_bundle)
    created = client.post(f"{BASE}/reservations", json=_payload()).json()["data"]

    response = client.post(
        f"{BASE}/reservations/{created['reservation_id']}/refund",
        json={"authorized_by": "admin@agencia.com"},
    )

    assert response.status_code == 404
    assert response.json()["code"] == "PAYMENT_NOT_FOUND"


def test_sweep_and_recover_abandoned_cart(client, api_bundle):
    _add_turno(api_bundle)
    created = client.post(f"{BASE}/reservations", json=_payload()).json()["data"]
    api_bundle.adapters.clock.advance(minutes=8)

    sweep = client.post(f"{BASE}/cron/sweep-abandoned-reservations")
    assert sweep.status_code == 200
    assert sweep.json()["data"]["moved_count"] == 1
    assert api_bundle.store.turnos[1].occupied == 0

    recovered = client.post(f"{BASE}/abandoned-carts/{created['booking_code']}/recover")
    assert recovered.status_code == 200
    assert recovered.json()["code"] == "RECOVERED"
    assert api_bundle.store.turnos[1].occupied == 2


def test_recover_unknown_cart(client):
    response = client.post(f"{BASE}/abandoned-carts/RES-NOPE0000/recover")

    assert response.status_code == 404
    assert response.json()["code"] == "ABANDONED_CART_NOT_FOUND"


def test_cron_sweep_requires_token_when_configured(client):
    app.dependency_overrides[get_settings] = lambda: Settings(cron_secret_token="s3cret")

    assert client.post(f"{BASE}/cron/sweep-abandoned-reservations").status_code == 401
    assert (
        client.post(
            f"{BASE}/cron/sweep-abandoned-reservations", headers={"Authorization": "Bearer wrong"}
        ).status_code
        == 401
    )
    response = client.post(
        f"{BASE}/cron/sweep-abandoned-reservations", headers={"Authorization": "Bearer s3cret"}
    )
    assert response.status_code == 200
    assert response.json()["code"] == "SWEEP_COMPLETED"
