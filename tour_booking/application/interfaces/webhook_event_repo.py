from tour_booking.domain.entities.webhook_event import ProcessedWebhookEvent


class WebhookEventRepo:
    async def exists(self, event_id: str) -> bool:
        raise NotImplementedError

    async def record(self, event: ProcessedWebhookEvent) -> None:
        """
        Registra el evento como procesado.

        Raises:
            DuplicateWebhookEventError: Si otra entrega ya lo registró.
        """
        raise NotImplementedError
