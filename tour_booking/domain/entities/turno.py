"""Entidad Turno - franja horaria con cupo limitado."""

from dataclasses import dataclass


@dataclass
class Turno:
    """Cupo de una actividad en una fecha/hora. 0 <= occupied <= max_capacity."""

    id: int | None = None
    max_capacity: int = 0
    occupied: int = 0

    @property
    def available(self) -> int:
        return self.max_capacity - self.occupied
