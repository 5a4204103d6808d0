"""
Circuit Breaker para las llamadas a Stripe.

Estados:
- CLOSED: operación normal
- OPEN: demasiados fallos consecutivos, las llamadas fallan de inmediato
- HALF_OPEN: se deja pasar una llamada de prueba tras reset_timeout

Los rechazos de negocio de Stripe (errores 4xx como fondos insuficientes o
parámetros inválidos) no cuentan como fallos del servicio.
"""

import logging

import stripe
from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

logger = logging.getLogger(__name__)


def _is_business_rejection(exc: BaseException) -> bool:
    if isinstance(exc, (stripe.InvalidRequestError, stripe.CardError)):
        return True
    status = getattr(exc, "http_status", None)
    return isinstance(status, int) and 400 <= status < 500 and status != 429


class BreakerStateListener(CircuitBreakerListener):
    def __init__(self, name: str) -> None:
        self.name = name

    def state_change(self, cb, old_state, new_state) -> None:
        logger.warning(
            "Circuit breaker state changed",
            extra={
                "breaker_name": self.name,
                "old_state": getattr(old_state, "name", str(old_state)),
                "new_state": getattr(new_state, "name", str(new_state)),
            },
        )


stripe_breaker = CircuitBreaker(
    fail_max=5,
    reset_timeout=60,
    exclude=[_is_business_rejection],
    listeners=[BreakerStateListener("stripe")],
    name="stripe_circuit_breaker",
)


__all__ = [
    "stripe_breaker",
    "CircuitBreakerError",
]
