import logging

import httpx

from tour_booking.application.interfaces.notifier import NotificationMessage, Notifier

logger = logging.getLogger(__name__)


class HttpNotifier(Notifier):
    """Envía notificaciones transaccionales a un servicio de correo vía HTTP."""

    def __init__(self, base_url: str, timeout_seconds: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client

    async def send(self, message: NotificationMessage) -> None:
        body = {
            "template": message.template,
            "to": message.to,
            "subject": message.subject,
            "data": message.data,
        }
        if self._client is not None:
            response = await self._client.post(f"{self._base_url}/send", json=body)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(f"{self._base_url}/send", json=body)
        response.raise_for_status()
        logger.info("Notification sent", extra={"template": message.template, "to": message.to})


class LoggingNotifier(Notifier):
    """Notificador sin transporte: solo registra el mensaje."""

    async def send(self, message: NotificationMessage) -> None:
        logger.info(
            "Notification (no transport configured)",
            extra={"template": message.template, "to": message.to, "subject": message.subject},
        )
