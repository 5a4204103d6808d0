"""Resultados estructurados devueltos por las operaciones públicas."""

from dataclasses import dataclass, field
from typing import Any

from tour_booking.domain.errors import DomainError


@dataclass
class OperationResult:
    success: bool
    code: str
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, code: str = "OK", message: str = "", data: dict[str, Any] | None = None) -> "OperationResult":
        return cls(success=True, code=code, message=message, data=data or {})

    @classmethod
    def from_error(cls, exc: DomainError, data: dict[str, Any] | None = None) -> "OperationResult":
        return cls(
            success=False,
            code=exc.code,
            message=exc.message,
            data={**exc.details, **(data or {})},
        )


@dataclass
class HandlerResult:
    """Resultado de un handler de webhook; success=False es una condición de negocio esperada."""

    success: bool
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
