"""
Pytest configuration and shared fixtures.

Provee:
- Un entorno in-memory completo (repos, Stripe simulado, notificador, FakeClock)
- Engine SQLite in-memory para los tests de repositorios SQL
- Cliente HTTP de prueba con el bundle in-memory de la API
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tour_booking.api.dependencies import get_in_memory_bundle
from tour_booking.application.interfaces.clock import FakeClock
from tour_booking.application.interfaces.payment_provider import (
    AccountInfo,
    BalanceEntry,
    BalanceInfo,
    BankAccountInfo,
    PaymentIntentInfo,
    PayoutSchedule,
)
from tour_booking.application.notifications import NotificationDispatcher
from tour_booking.application.use_cases.abandoned_cart_sweeper import AbandonedCartSweeper
from tour_booking.application.use_cases.agency_status_sync import AgencyStatusSync
from tour_booking.application.use_cases.capacity_ledger import CapacityLedger
from tour_booking.application.use_cases.payment_event_dispatcher import PaymentEventDispatcher
from tour_booking.application.use_cases.payout_reconciler import PayoutReconciler
from tour_booking.application.use_cases.refund_orchestrator import RefundOrchestrator
from tour_booking.application.use_cases.reservation_state_machine import (
    CreateHoldCommand,
    ReservationStateMachine,
)
from tour_booking.application.use_cases.webhook_handlers import StripeWebhookHandlers
from tour_booking.domain.entities.agency import Agency
from tour_booking.domain.entities.payment import Payment, PaymentStatus
from tour_booking.domain.entities.reservation import ItemType, ReservationItem
from tour_booking.domain.entities.turno import Turno
from tour_booking.infrastructure.circuit_breaker import stripe_breaker
from tour_booking.infrastructure.db.tables import metadata
from tour_booking.infrastructure.in_memory import (
    FakePaymentProvider,
    InMemoryAbandonedCartRepo,
    InMemoryAgencyRepo,
    InMemoryNotifier,
    InMemoryPaymentRepo,
    InMemoryRefundRepo,
    InMemoryReservationRepo,
    InMemoryStore,
    InMemoryTransactionManager,
    InMemoryTurnoRepo,
    InMemoryWebhookEventRepo,
)
from tour_booking.main import app

# Lunes 10 de marzo de 2025, 12:00 UTC
FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
ADMIN_EMAIL = "ops@example.com"
STRIPE_ACCOUNT = "acct_agency_1"


# ============================================================================
# ENTORNO IN-MEMORY
# ============================================================================


@dataclass
class Env:
    store: InMemoryStore
    clock: FakeClock
    provider: FakePaymentProvider
    notifier: InMemoryNotifier
    notifications: NotificationDispatcher
    tx: InMemoryTransactionManager
    reservation_repo: InMemoryReservationRepo
    turno_repo: InMemoryTurnoRepo
    payment_repo: InMemoryPaymentRepo
    refund_repo: InMemoryRefundRepo
    cart_repo: InMemoryAbandonedCartRepo
    webhook_repo: InMemoryWebhookEventRepo
    agency_repo: InMemoryAgencyRepo
    ledger: CapacityLedger
    state_machine: ReservationStateMachine
    sweeper: AbandonedCartSweeper
    handlers: StripeWebhookHandlers
    dispatcher: PaymentEventDispatcher
    refunds: RefundOrchestrator
    payouts: PayoutReconciler
    agency_sync: AgencyStatusSync

    async def add_turno(self, max_capacity: int = 10, occupied: int = 0) -> Turno:
        return await self.turno_repo.add(Turno(max_capacity=max_capacity, occupied=occupied))

    async def occupied(self, turno_id: int) -> int:
        return (await self.turno_repo.get(turno_id)).occupied

    async def add_agency(
        self,
        stripe_account_id: str | None = STRIPE_ACCOUNT,
        fee_percentage: str = "10",
        processor_fee_amount: int = 0,
    ) -> Agency:
        return await self.agency_repo.add(
            Agency(
                name="Tours del Pacífico",
                contact_email="agencia@example.com",
                stripe_account_id=stripe_account_id,
                fee_percentage=Decimal(fee_percentage),
                processor_fee_amount=processor_fee_amount,
                charges_enabled=True,
                payouts_enabled=True,
                active=True,
            )
        )

    async def hold(
        self,
        turno_id: int,
        agency_id: int = 1,
        seats: int = 2,
        unit_price: int = 5000,
        language: str = "es",
        email: str | None = "cliente@example.com",
    ) -> dict:
        result = await self.state_machine.create_hold(
            CreateHoldCommand(
                turno_id=turno_id,
                agency_id=agency_id,
                items=[ReservationItem(item_type=ItemType.RATE, quantity=seats, unit_price=unit_price)],
                currency="USD",
                customer_email=email,
                customer_name="Ana Pérez",
                language=language,
            )
        )
        assert result.success, result
        return result.data

    async def paid_reservation(
        self,
        turno_id: int,
        agency_id: int,
        seats: int = 2,
        unit_price: int = 5000,
        intent_id: str = "pi_paid_1",
        available_balance: int = 50000,
    ) -> dict:
        """Reservación confirmada con su pago, el PaymentIntent y saldo en la cuenta conectada."""
        data = await self.hold(turno_id, agency_id=agency_id, seats=seats, unit_price=unit_price)
        confirmed = await self.state_machine.confirm(data["reservation_id"])
        assert confirmed.success, confirmed
        amount = seats * unit_price
        await self.payment_repo.add(
            Payment(
                reservation_id=data["reservation_id"],
                agency_id=agency_id,
                stripe_session_id=f"cs_{intent_id}",
                stripe_payment_intent_id=intent_id,
                amount=amount,
                currency="USD",
                status=PaymentStatus.SUCCEEDED,
                external_status="paid",
                customer_email="cliente@example.com",
                created_at=self.clock.now(),
                updated_at=self.clock.now(),
            )
        )
        self.provider.intents[intent_id] = PaymentIntentInfo(
            id=intent_id, status="succeeded", amount=amount, currency="usd"
        )
        self.provider.balances[STRIPE_ACCOUNT] = BalanceInfo(
            available=[BalanceEntry(amount=available_balance, currency="usd")]
        )
        return data

    def add_account(
        self,
        interval: str = "manual",
        payouts_enabled: bool = True,
        with_bank: bool = True,
        **schedule,
    ) -> AccountInfo:
        account = AccountInfo(
            id=STRIPE_ACCOUNT,
            charges_enabled=True,
            payouts_enabled=payouts_enabled,
            details_submitted=True,
            payout_schedule=PayoutSchedule(interval=interval, **schedule),
            external_accounts=(
                [BankAccountInfo(id="ba_1", bank_name="BAC", last4="6789", currency="usd", country="CR")]
                if with_bank
                else []
            ),
        )
        self.provider.accounts[STRIPE_ACCOUNT] = account
        return account


def build_env(clock: FakeClock, notifier: InMemoryNotifier | None = None, clamp_underflow: bool = False) -> Env:
    store = InMemoryStore()
    provider = FakePaymentProvider()
    notifier = notifier or InMemoryNotifier()
    notifications = NotificationDispatcher(notifier)
    tx = InMemoryTransactionManager(store)
    reservation_repo = InMemoryReservationRepo(store)
    turno_repo = InMemoryTurnoRepo(store)
    payment_repo = InMemoryPaymentRepo(store)
    refund_repo = InMemoryRefundRepo(store)
    cart_repo = InMemoryAbandonedCartRepo(store)
    webhook_repo = InMemoryWebhookEventRepo(store)
    agency_repo = InMemoryAgencyRepo(store)

    ledger = CapacityLedger(turno_repo, clamp_underflow=clamp_underflow)
    state_machine = ReservationStateMachine(
        reservation_repo=reservation_repo,
        capacity_ledger=ledger,
        transaction_manager=tx,
        clock=clock,
        notifications=notifications,
    )
    sweeper = AbandonedCartSweeper(
        reservation_repo=reservation_repo,
        abandoned_cart_repo=cart_repo,
        capacity_ledger=ledger,
        transaction_manager=tx,
        clock=clock,
    )
    state_machine.attach_sweeper(sweeper)
    agency_sync = AgencyStatusSync(agency_repo, provider, tx, clock)
    handlers = StripeWebhookHandlers(
        payment_repo=payment_repo,
        agency_repo=agency_repo,
        state_machine=state_machine,
        payment_provider=provider,
        transaction_manager=tx,
        clock=clock,
        notifications=notifications,
        admin_email=ADMIN_EMAIL,
        agency_sync=agency_sync,
    )
    dispatcher = PaymentEventDispatcher(
        webhook_event_repo=webhook_repo,
        handlers=handlers.registry(),
        transaction_manager=tx,
        clock=clock,
        payment_provider=provider,
    )
    refunds = RefundOrchestrator(
        reservation_repo=reservation_repo,
        payment_repo=payment_repo,
        refund_repo=refund_repo,
        agency_repo=agency_repo,
        payment_provider=provider,
        state_machine=state_machine,
        transaction_manager=tx,
        clock=clock,
        notifications=notifications,
    )
    payouts = PayoutReconciler(
        agency_repo=agency_repo,
        payment_provider=provider,
        transaction_manager=tx,
        clock=clock,
        canonical_currency="USD",
        fx_rates_to_canonical={"USD": Decimal("1"), "CRC": Decimal("0.0019")},
    )
    return Env(
        store=store,
        clock=clock,
        provider=provider,
        notifier=notifier,
        notifications=notifications,
        tx=tx,
        reservation_repo=reservation_repo,
        turno_repo=turno_repo,
        payment_repo=payment_repo,
        refund_repo=refund_repo,
        cart_repo=cart_repo,
        webhook_repo=webhook_repo,
        agency_repo=agency_repo,
        ledger=ledger,
        state_machine=state_machine,
        sweeper=sweeper,
        handlers=handlers,
        dispatcher=dispatcher,
        refunds=refunds,
        payouts=payouts,
        agency_sync=agency_sync,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture
def env(clock: FakeClock) -> Env:
    return build_env(clock)


# ============================================================================
# FIXTURES DE BASE DE DATOS
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Engine SQLite in-memory; StaticPool para compartir la única conexión."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Sesión sin transacción abierta: cada caso de uso la gestiona con su TransactionManager."""
    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


# ============================================================================
# HOOKS
# ============================================================================


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Evita que un breaker abierto en un test afecte al siguiente."""
    stripe_breaker.close()
    yield
    stripe_breaker.close()


# ============================================================================
# FIXTURES DE API
# ============================================================================


@pytest.fixture
def api_bundle():
    """Bundle in-memory limpio para cada test de API."""
    get_in_memory_bundle.cache_clear()
    bundle = get_in_memory_bundle()
    bundle.adapters.clock = FakeClock(FIXED_NOW)
    yield bundle
    app.dependency_overrides.clear()
    get_in_memory_bundle.cache_clear()


@pytest.fixture
def client(api_bundle):
    with TestClient(app) as test_client:
        yield test_client
