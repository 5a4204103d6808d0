import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.payment_provider import PaymentProvider
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.interfaces.webhook_event_repo import WebhookEventRepo
from tour_booking.application.results import HandlerResult, OperationResult
from tour_booking.domain.entities.webhook_event import ProcessedWebhookEvent, WebhookEventType
from tour_booking.domain.errors import DuplicateWebhookEventError, ValidationError

EventHandler = Callable[[dict[str, Any]], Awaitable[HandlerResult]]


class PaymentEventDispatcher:
    """
    Aplica cada evento de Stripe exactamente una vez por event.id.

    El evento se registra en el ledger solo cuando todos sus handlers
    retornaron; si un handler lanza una excepción no se registra y Stripe
    reintenta la entrega.
    """

    def __init__(
        self,
        webhook_event_repo: WebhookEventRepo,
        handlers: Mapping[WebhookEventType, Sequence[EventHandler]],
        transaction_manager: TransactionManager,
        clock: Clock,
        payment_provider: PaymentProvider | None = None,
        webhook_secret: str | None = None,
    ) -> None:
        missing = [event_type.value for event_type in WebhookEventType if not handlers.get(event_type)]
        if missing:
            raise ValueError(f"Missing webhook handlers for: {', '.join(missing)}")
        self._webhook_event_repo = webhook_event_repo
        self._handlers = {event_type: list(fns) for event_type, fns in handlers.items()}
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._payment_provider = payment_provider
        self._webhook_secret = webhook_secret
        self._logger = logging.getLogger(__name__)

    async def handle_payload(self, raw_body: bytes, signature: str | None) -> OperationResult:
        """Verifica la firma (si hay secreto) y despacha el evento."""
        if not raw_body:
            raise ValidationError("body", "webhook vacío")
        if self._payment_provider is None:
            raise RuntimeError("PaymentProvider is required to parse webhook payloads")
        try:
            event = await self._payment_provider.parse_webhook_event(
                payload=raw_body,
                signature_header=signature,
                webhook_secret=self._webhook_secret,
            )
        except ValueError as exc:
            raise ValidationError("payload", str(exc)) from exc
        return await self.dispatch(event)

    async def dispatch(self, event: dict[str, Any]) -> OperationResult:
        event_id = event.get("id")
        raw_type = event.get("type")
        if not event_id or not raw_type or not isinstance(event.get("data"), dict):
            raise ValidationError("event", "evento sin id, type o data")

        async with self._transaction_manager.start():
            already_processed = await self._webhook_event_repo.exists(event_id)
        if already_processed:
            self._logger.info(
                "Stripe event already processed",
                extra={"stripe_event_id": event_id, "event_type": raw_type},
            )
            return OperationResult.ok("ALREADY_PROCESSED", "Evento ya procesado", {"event_id": event_id})

        event_type = WebhookEventType.parse(raw_type)
        if event_type is None:
            self._logger.info("Ignoring unhandled Stripe event type", extra={"event_type": raw_type})
            return OperationResult.ok("EVENT_IGNORED", f"Tipo de evento no manejado: {raw_type}", {"event_id": event_id})

        results: list[HandlerResult] = []
        for handler in self._handlers[event_type]:
            results.append(await handler(event))

        success = all(result.success for result in results)
        outcome = "; ".join(result.message for result in results if result.message)
        try:
            async with self._transaction_manager.start():
                await self._webhook_event_repo.record(
                    ProcessedWebhookEvent(
                        event_id=event_id,
                        event_type=raw_type,
                        processed_at=self._clock.now(),
                        success=success,
                        outcome=outcome[:500] or None,
                    )
                )
        except DuplicateWebhookEventError:
            self._logger.info(
                "Concurrent delivery already recorded Stripe event",
                extra={"stripe_event_id": event_id},
            )
            return OperationResult.ok("ALREADY_PROCESSED", "Evento ya procesado", {"event_id": event_id})

        log = self._logger.info if success else self._logger.warning
        log(
            "Stripe event processed",
            extra={"stripe_event_id": event_id, "event_type": raw_type, "success": success, "outcome": outcome},
        )
        data: dict[str, Any] = {"event_id": event_id, "event_type": raw_type}
        for result in results:
            data.update(result.data)
        return OperationResult(
            success=success,
            code="EVENT_PROCESSED" if success else "EVENT_REJECTED",
            message=outcome,
            data=data,
        )
