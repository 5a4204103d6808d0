"""Entidad Agency - tenant con su cuenta conectada de Stripe."""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal


@dataclass
class Agency:
    id: int | None = None
    name: str = ""
    contact_email: str | None = None
    stripe_account_id: str | None = None

    # Comisión de la plataforma (porcentaje) y componente fijo del procesador
    fee_percentage: Decimal = Decimal("0")
    processor_fee_amount: int = 0

    charges_enabled: bool = False
    payouts_enabled: bool = False
    active: bool = False
    updated_at: datetime | None = None

    def platform_fee_for(self, total: int) -> int:
        """floor(total * fee% / 100) en unidades menores."""
        fee = (Decimal(total) * self.fee_percentage / Decimal(100)).to_integral_value(rounding=ROUND_FLOOR)
        return int(fee)

    def net_refundable(self, total: int) -> int:
        """Monto reembolsable neto: total menos comisión y cargo del procesador, nunca negativo."""
        return max(0, total - self.platform_fee_for(total) - self.processor_fee_amount)

    def sync_from_account(
        self,
        charges_enabled: bool,
        payouts_enabled: bool,
        details_submitted: bool,
        disabled_reason: str | None,
        now: datetime,
    ) -> None:
        self.charges_enabled = charges_enabled
        self.payouts_enabled = payouts_enabled
        self.active = charges_enabled and details_submitted and not disabled_reason
        self.updated_at = now

    def deauthorize(self, now: datetime) -> None:
        self.charges_enabled = False
        self.payouts_enabled = False
        self.active = False
        self.updated_at = now
