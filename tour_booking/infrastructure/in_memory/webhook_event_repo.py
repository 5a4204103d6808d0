import copy

from tour_booking.application.interfaces.webhook_event_repo import WebhookEventRepo
from tour_booking.domain.entities.webhook_event import ProcessedWebhookEvent
from tour_booking.domain.errors import DuplicateWebhookEventError
from tour_booking.infrastructure.in_memory.store import InMemoryStore


class InMemoryWebhookEventRepo(WebhookEventRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def exists(self, event_id: str) -> bool:
        return event_id in self._store.webhook_events

    async def record(self, event: ProcessedWebhookEvent) -> None:
        if event.event_id in self._store.webhook_events:
            raise DuplicateWebhookEventError(event.event_id)
        self._store.webhook_events[event.event_id] = copy.deepcopy(event)
