"""Value Object Money - monto en unidades menores con su moneda."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True)
class Money:
    """
    Value Object inmutable que representa un monto monetario.

    Attributes:
        cents: Monto entero en unidades menores (ej: centavos). Puede ser
            negativo para saldos de Stripe.
        currency: Código ISO 4217 de la moneda (ej: USD, CRC, EUR).
    """

    cents: int
    currency: str

    def __post_init__(self) -> None:
        if not isinstance(self.cents, int) or isinstance(self.cents, bool):
            raise TypeError(f"cents debe ser entero: {self.cents!r}")

        if len(self.currency) != 3:
            raise ValueError(f"currency debe ser de 3 caracteres: {self.currency}")

        object.__setattr__(self, "currency", self.currency.upper())

    def __str__(self) -> str:
        return f"{self.as_decimal():.2f} {self.currency}"

    def as_decimal(self) -> Decimal:
        return Decimal(self.cents) / 100

    def convert(self, rate: Decimal, target_currency: str) -> "Money":
        """Convierte con una tasa fija, redondeando a la unidad menor (half-up)."""
        converted = (Decimal(self.cents) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return Money(cents=int(converted), currency=target_currency)

    @classmethod
    def from_cents(cls, cents: int, currency: str) -> "Money":
        return cls(cents=cents, currency=currency)
