import logging

from tour_booking.application.interfaces.notifier import NotificationMessage, Notifier

logger = logging.getLogger(__name__)


class InMemoryNotifier(Notifier):
    """Registra los mensajes en memoria y en el log (tests y modo demo)."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.sent: list[NotificationMessage] = []
        self.fail_with = fail_with

    async def send(self, message: NotificationMessage) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(message)
        logger.info("Notification queued", extra={"template": message.template, "to": message.to})
