from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.webhook_event_repo import WebhookEventRepo
from tour_booking.domain.entities.webhook_event import ProcessedWebhookEvent
from tour_booking.domain.errors import DuplicateWebhookEventError
from tour_booking.infrastructure.db.datetimes import to_db
from tour_booking.infrastructure.db.tables import processed_webhook_events


class WebhookEventRepoSQL(WebhookEventRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, event_id: str) -> bool:
        stmt = (
            select(processed_webhook_events.c.id)
            .where(processed_webhook_events.c.event_id == event_id)
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar() is not None

    async def record(self, event: ProcessedWebhookEvent) -> None:
        stmt = insert(processed_webhook_events).values(
            event_id=event.event_id,
            event_type=event.event_type,
            success=event.success,
            outcome=(event.outcome or "")[:500] or None,
            processed_at=to_db(event.processed_at),
        )
        try:
            await self._session.execute(stmt)
        except IntegrityError as exc:
            # el UNIQUE(event_id) resuelve entregas concurrentes del mismo evento
            raise DuplicateWebhookEventError(event.event_id) from exc
