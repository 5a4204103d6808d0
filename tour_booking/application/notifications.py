import asyncio
import logging

from tour_booking.application.interfaces.notifier import NotificationMessage, Notifier

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Envía notificaciones en segundo plano (fire-and-forget).

    Un fallo del notificador se registra en el log y nunca se propaga al
    caso de uso que originó el envío.
    """

    def __init__(self, notifier: Notifier) -> None:
        self._notifier = notifier
        self._pending: set[asyncio.Task] = set()

    def dispatch(self, message: NotificationMessage) -> None:
        if not message.to:
            logger.warning(
                "Notification skipped: missing recipient",
                extra={"template": message.template},
            )
            return
        task = asyncio.create_task(self._send(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, message: NotificationMessage) -> None:
        try:
            await self._notifier.send(message)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Notification delivery failed",
                exc_info=exc,
                extra={"template": message.template, "to": message.to},
            )

    async def drain(self) -> None:
        """Espera los envíos pendientes (shutdown y tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
