from dataclasses import dataclass, field
from typing import Any


@dataclass
class NotificationMessage:
    template: str
    to: str
    subject: str = ""
    data: dict[str, Any] = field(default_factory=dict)


class Notifier:
    """Puerto de envío de correos; el render de plantillas vive fuera del motor."""

    async def send(self, message: NotificationMessage) -> None:
        raise NotImplementedError
