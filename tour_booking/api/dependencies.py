from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.api.deps import AsyncSessionLocal
from tour_booking.application.interfaces.abandoned_cart_repo import AbandonedCartRepo
from tour_booking.application.interfaces.agency_repo import AgencyRepo
from tour_booking.application.interfaces.clock import Clock, SystemClock
from tour_booking.application.interfaces.notifier import Notifier
from tour_booking.application.interfaces.payment_provider import PaymentProvider
from tour_booking.application.interfaces.payment_repo import PaymentRepo
from tour_booking.application.interfaces.refund_repo import RefundRepo
from tour_booking.application.interfaces.reservation_repo import ReservationRepo
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.interfaces.turno_repo import TurnoRepo
from tour_booking.application.interfaces.webhook_event_repo import WebhookEventRepo
from tour_booking.application.notifications import NotificationDispatcher
from tour_booking.application.use_cases.abandoned_cart_sweeper import AbandonedCartSweeper
from tour_booking.application.use_cases.agency_status_sync import AgencyStatusSync
from tour_booking.application.use_cases.capacity_ledger import CapacityLedger
from tour_booking.application.use_cases.payment_event_dispatcher import PaymentEventDispatcher
from tour_booking.application.use_cases.payout_reconciler import PayoutReconciler
from tour_booking.application.use_cases.refund_orchestrator import RefundOrchestrator
from tour_booking.application.use_cases.reservation_state_machine import ReservationStateMachine
from tour_booking.application.use_cases.webhook_handlers import StripeWebhookHandlers
from tour_booking.config import Settings, get_settings
from tour_booking.infrastructure.db.repositories import (
    AbandonedCartRepoSQL,
    AgencyRepoSQL,
    PaymentRepoSQL,
    RefundRepoSQL,
    ReservationRepoSQL,
    TurnoRepoSQL,
    WebhookEventRepoSQL,
)
from tour_booking.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from tour_booking.infrastructure.gateways.http_notifier import HttpNotifier, LoggingNotifier
from tour_booking.infrastructure.gateways.stripe_payment_provider import StripePaymentProvider
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


@dataclass
class Adapters:
    reservation_repo: ReservationRepo
    turno_repo: TurnoRepo
    payment_repo: PaymentRepo
    refund_repo: RefundRepo
    abandoned_cart_repo: AbandonedCartRepo
    webhook_event_repo: WebhookEventRepo
    agency_repo: AgencyRepo
    transaction_manager: TransactionManager
    payment_provider: PaymentProvider
    notifications: NotificationDispatcher
    clock: Clock


@dataclass
class InMemoryBundle:
    store: InMemoryStore
    payment_provider: FakePaymentProvider
    notifier: InMemoryNotifier
    adapters: Adapters


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncSession | None:
    if settings.use_in_memory:
        yield None
        return
    async with AsyncSessionLocal() as session:
        yield session


@lru_cache(maxsize=1)
def get_in_memory_bundle() -> InMemoryBundle:
    store = InMemoryStore()
    payment_provider = FakePaymentProvider()
    notifier = InMemoryNotifier()
    adapters = Adapters(
        reservation_repo=InMemoryReservationRepo(store),
        turno_repo=InMemoryTurnoRepo(store),
        payment_repo=InMemoryPaymentRepo(store),
        refund_repo=InMemoryRefundRepo(store),
        abandoned_cart_repo=InMemoryAbandonedCartRepo(store),
        webhook_event_repo=InMemoryWebhookEventRepo(store),
        agency_repo=InMemoryAgencyRepo(store),
        transaction_manager=InMemoryTransactionManager(store),
        payment_provider=payment_provider,
        notifications=NotificationDispatcher(notifier),
        clock=SystemClock(),
    )
    return InMemoryBundle(store=store, payment_provider=payment_provider, notifier=notifier, adapters=adapters)


@lru_cache(maxsize=1)
def _sql_notifications(notifications_url: str | None, timeout_seconds: float) -> NotificationDispatcher:
    notifier: Notifier
    if notifications_url:
        notifier = HttpNotifier(base_url=notifications_url, timeout_seconds=timeout_seconds)
    else:
        notifier = LoggingNotifier()
    return NotificationDispatcher(notifier)


async def drain_notifications(settings: Settings) -> None:
    """Espera los correos en curso antes de cerrar la aplicación."""
    if settings.use_in_memory:
        dispatcher = get_in_memory_bundle().adapters.notifications
    else:
        dispatcher = _sql_notifications(settings.notifications_url, settings.notifications_timeout_seconds)
    await dispatcher.drain()


def _sql_adapters(settings: Settings, session: AsyncSession) -> Adapters:
    return Adapters(
        reservation_repo=ReservationRepoSQL(session),
        turno_repo=TurnoRepoSQL(session),
        payment_repo=PaymentRepoSQL(session),
        refund_repo=RefundRepoSQL(session),
        abandoned_cart_repo=AbandonedCartRepoSQL(session),
        webhook_event_repo=WebhookEventRepoSQL(session),
        agency_repo=AgencyRepoSQL(session),
        transaction_manager=SQLAlchemyTransactionManager(session),
        payment_provider=StripePaymentProvider(api_key=settings.stripe_api_key),
        notifications=_sql_notifications(settings.notifications_url, settings.notifications_timeout_seconds),
        clock=SystemClock(),
    )


def build_use_cases(settings: Settings, adapters: Adapters) -> dict:
    capacity_ledger = CapacityLedger(adapters.turno_repo, clamp_underflow=settings.clamp_capacity_underflow)
    state_machine = ReservationStateMachine(
        reservation_repo=adapters.reservation_repo,
        capacity_ledger=capacity_ledger,
        transaction_manager=adapters.transaction_manager,
        clock=adapters.clock,
        notifications=adapters.notifications,
        hold_minutes=settings.hold_minutes,
    )
    sweeper = AbandonedCartSweeper(
        reservation_repo=adapters.reservation_repo,
        abandoned_cart_repo=adapters.abandoned_cart_repo,
        capacity_ledger=capacity_ledger,
        transaction_manager=adapters.transaction_manager,
        clock=adapters.clock,
        threshold_minutes=settings.abandoned_hold_minutes,
    )
    state_machine.attach_sweeper(sweeper)
    agency_sync = AgencyStatusSync(
        agency_repo=adapters.agency_repo,
        payment_provider=adapters.payment_provider,
        transaction_manager=adapters.transaction_manager,
        clock=adapters.clock,
    )
    handlers = StripeWebhookHandlers(
        payment_repo=adapters.payment_repo,
        agency_repo=adapters.agency_repo,
        state_machine=state_machine,
        payment_provider=adapters.payment_provider,
        transaction_manager=adapters.transaction_manager,
        clock=adapters.clock,
        notifications=adapters.notifications,
        admin_email=settings.admin_email,
        agency_sync=agency_sync,
    )
    return {
        "state_machine": state_machine,
        "sweeper": sweeper,
        "dispatcher": PaymentEventDispatcher(
            webhook_event_repo=adapters.webhook_event_repo,
            handlers=handlers.registry(),
            transaction_manager=adapters.transaction_manager,
            clock=adapters.clock,
            payment_provider=adapters.payment_provider,
            webhook_secret=settings.stripe_webhook_secret,
        ),
        "refunds": RefundOrchestrator(
            reservation_repo=adapters.reservation_repo,
            payment_repo=adapters.payment_repo,
            refund_repo=adapters.refund_repo,
            agency_repo=adapters.agency_repo,
            payment_provider=adapters.payment_provider,
            state_machine=state_machine,
            transaction_manager=adapters.transaction_manager,
            clock=adapters.clock,
            notifications=adapters.notifications,
            idempotency_window_seconds=settings.refund_idempotency_window_seconds,
        ),
        "payouts": PayoutReconciler(
            agency_repo=adapters.agency_repo,
            payment_provider=adapters.payment_provider,
            transaction_manager=adapters.transaction_manager,
            clock=adapters.clock,
            canonical_currency=settings.canonical_currency,
            fx_rates_to_canonical=settings.fx_rates_to_canonical,
            idempotency_window_seconds=settings.payout_idempotency_window_seconds,
        ),
        "agency_sync": agency_sync,
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
):
    if settings.use_in_memory:
        return build_use_cases(settings, get_in_memory_bundle().adapters)

    if not session:
        raise RuntimeError("DB session not available")
    return build_use_cases(settings, _sql_adapters(settings, session))
