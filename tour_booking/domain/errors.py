"""Excepciones de dominio para el motor de reservaciones y pagos."""

from typing import Any


class DomainError(Exception):
    """Clase base para todos los errores de dominio."""

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


# === Errores de Validación ===


class ValidationError(DomainError):
    """Error de validación de datos de entrada."""

    def __init__(self, field: str, message: str):
        super().__init__(
            message=f"Validación fallida en '{field}': {message}",
            code="VALIDATION_ERROR",
            details={"field": field},
        )
        self.field = field


# === Errores de Reservación ===


class ReservationNotFoundError(DomainError):
    """La reservación no existe."""

    def __init__(self, reservation_ref: int | str):
        super().__init__(
            message=f"Reservación no encontrada: {reservation_ref}",
            code="RESERVATION_NOT_FOUND",
            details={"reservation": reservation_ref},
        )
        self.reservation_ref = reservation_ref


class InvalidReservationStatusError(DomainError):
    """El estado de la reservación no permite la operación."""

    def __init__(self, current_status: str, expected_status: str | list[str], operation: str):
        expected = expected_status if isinstance(expected_status, str) else ", ".join(expected_status)
        super().__init__(
            message=f"No se puede {operation}: estado actual '{current_status}', esperado '{expected}'",
            code="INVALID_RESERVATION_STATUS",
            details={"current_status": current_status, "expected_status": expected},
        )
        self.current_status = current_status
        self.expected_status = expected_status
        self.operation = operation


class ReservationAlreadyCancelledError(DomainError):
    """La reservación ya fue cancelada."""

    def __init__(self, reservation_id: int):
        super().__init__(
            message=f"La reservación {reservation_id} ya está cancelada",
            code="RESERVATION_ALREADY_CANCELLED",
            details={"reservation_id": reservation_id},
        )
        self.reservation_id = reservation_id


class ReservationForbiddenError(DomainError):
    """La reservación pertenece a otra agencia."""

    def __init__(self, reservation_id: int, agency_id: int):
        super().__init__(
            message=f"La reservación {reservation_id} no pertenece a la agencia {agency_id}",
            code="FORBIDDEN",
            details={"reservation_id": reservation_id, "agency_id": agency_id},
        )


class AbandonedCartNotFoundError(DomainError):
    """No existe un carrito abandonado para el código dado."""

    def __init__(self, booking_code: str):
        super().__init__(
            message=f"Carrito abandonado no encontrado: {booking_code}",
            code="ABANDONED_CART_NOT_FOUND",
            details={"booking_code": booking_code},
        )
        self.booking_code = booking_code


class ReservationConflictError(DomainError):
    """La reservación choca con otra ya almacenada (id o booking_code)."""

    def __init__(self, booking_code: str, reservation_id: int | None = None):
        super().__init__(
            message=f"Conflicto al guardar la reservación {booking_code}",
            code="RESERVATION_CONFLICT",
            details={"booking_code": booking_code, "reservation_id": reservation_id},
        )
        self.booking_code = booking_code
        self.reservation_id = reservation_id


# === Errores de Capacidad ===


class TurnoNotFoundError(DomainError):
    """El turno no existe."""

    def __init__(self, turno_id: int):
        super().__init__(
            message=f"Turno no encontrado: {turno_id}",
            code="TURNO_NOT_FOUND",
            details={"turno_id": turno_id},
        )
        self.turno_id = turno_id


class CapacityExceededError(DomainError):
    """No hay cupo suficiente en el turno."""

    def __init__(self, turno_id: int, requested: int, available: int):
        shortfall = requested - available
        super().__init__(
            message=f"Sin cupo en turno {turno_id}: solicitados {requested}, disponibles {available}",
            code="CAPACITY_EXCEEDED",
            details={
                "turno_id": turno_id,
                "requested": requested,
                "available": available,
                "shortfall": shortfall,
            },
        )
        self.turno_id = turno_id
        self.requested = requested
        self.available = available
        self.shortfall = shortfall


class CapacityUnderflowError(DomainError):
    """Se intentó liberar más cupos de los ocupados."""

    def __init__(self, turno_id: int, requested: int, occupied: int):
        super().__init__(
            message=f"Liberación inválida en turno {turno_id}: solicitados {requested}, ocupados {occupied}",
            code="CAPACITY_UNDERFLOW",
            details={"turno_id": turno_id, "requested": requested, "occupied": occupied},
        )
        self.turno_id = turno_id
        self.requested = requested
        self.occupied = occupied


# === Errores de Pago y Reembolso ===


class PaymentNotFoundError(DomainError):
    """No hay un pago válido para la reservación."""

    def __init__(self, reservation_id: int):
        super().__init__(
            message=f"No se encontró un pago válido para la reservación {reservation_id}",
            code="PAYMENT_NOT_FOUND",
            details={"reservation_id": reservation_id},
        )
        self.reservation_id = reservation_id


class PaymentNotRefundableError(DomainError):
    """El PaymentIntent no está en un estado reembolsable."""

    def __init__(self, payment_intent_id: str | None, status: str | None):
        super().__init__(
            message=f"El pago {payment_intent_id} no es reembolsable (estado: {status})",
            code="PAYMENT_NOT_REFUNDABLE",
            details={"payment_intent_id": payment_intent_id, "status": status},
        )


class RefundExceedsPaymentError(DomainError):
    """El reembolso acumulado superaría el monto pagado."""

    def __init__(self, requested: int, already_refunded: int, payment_amount: int):
        super().__init__(
            message=(
                f"El reembolso de {requested} más lo ya reembolsado ({already_refunded}) "
                f"excede el pago de {payment_amount}"
            ),
            code="REFUND_EXCEEDS_PAYMENT",
            details={
                "requested": requested,
                "already_refunded": already_refunded,
                "payment_amount": payment_amount,
            },
        )


class InsufficientBalanceError(DomainError):
    """Saldo disponible insuficiente en la cuenta conectada."""

    def __init__(self, required: int, available: int, currency: str):
        shortfall = required - available
        super().__init__(
            message=f"Saldo insuficiente: requerido {required}, disponible {available} {currency.upper()}",
            code="INSUFFICIENT_BALANCE",
            details={
                "required": required,
                "available": available,
                "shortfall": shortfall,
                "currency": currency.lower(),
            },
        )
        self.required = required
        self.available = available
        self.shortfall = shortfall


# === Errores de Agencia y Payouts ===


class AgencyNotFoundError(DomainError):
    """La agencia no existe."""

    def __init__(self, agency_id: int | str):
        super().__init__(
            message=f"Agencia no encontrada: {agency_id}",
            code="AGENCY_NOT_FOUND",
            details={"agency_id": agency_id},
        )


class MissingConnectedAccountError(DomainError):
    """La agencia no tiene una cuenta conectada configurada."""

    def __init__(self, agency_id: int):
        super().__init__(
            message=f"La agencia {agency_id} no tiene cuenta de Stripe configurada",
            code="MISSING_CONNECTED_ACCOUNT",
            details={"agency_id": agency_id},
        )


class PayoutScheduleNotManualError(DomainError):
    """Los payouts manuales requieren calendario manual."""

    def __init__(self, interval: str):
        super().__init__(
            message=f"Los payouts manuales solo están permitidos con calendario manual (actual: {interval})",
            code="PAYOUT_SCHEDULE_NOT_MANUAL",
            details={"interval": interval},
        )


class PayoutsDisabledError(DomainError):
    """La cuenta conectada no tiene payouts habilitados."""

    def __init__(self, account_id: str):
        super().__init__(
            message=f"Los payouts no están habilitados para la cuenta {account_id}",
            code="PAYOUTS_DISABLED",
            details={"account_id": account_id},
        )


class NoExternalAccountError(DomainError):
    """La cuenta conectada no tiene cuenta bancaria asociada."""

    def __init__(self, account_id: str):
        super().__init__(
            message=f"No hay cuenta bancaria configurada para la cuenta {account_id}",
            code="NO_EXTERNAL_ACCOUNT",
            details={"account_id": account_id},
        )


class InvalidPayoutScheduleError(DomainError):
    """Configuración de calendario de payouts inválida."""

    def __init__(self, message: str, param: str | None = None):
        super().__init__(
            message=message,
            code="INVALID_PAYOUT_SCHEDULE",
            details={"param": param} if param else None,
        )
        self.param = param


# === Errores externos y de reconciliación ===


class ProviderError(DomainError):
    """Error devuelto por el procesador de pagos."""

    def __init__(
        self,
        message: str,
        provider_code: str | None = None,
        param: str | None = None,
        http_status: int | None = None,
    ):
        super().__init__(
            message=message,
            code="PROVIDER_ERROR",
            details={"provider_code": provider_code, "param": param},
        )
        self.provider_code = provider_code
        self.param = param
        self.http_status = http_status


class DuplicateWebhookEventError(DomainError):
    """El evento ya fue registrado por otra entrega concurrente."""

    def __init__(self, event_id: str):
        super().__init__(
            message=f"Evento de Stripe ya procesado: {event_id}",
            code="DUPLICATE_WEBHOOK_EVENT",
            details={"event_id": event_id},
        )
        self.event_id = event_id


class WebhookNotConfiguredError(DomainError):
    """No hay secreto para verificar la firma de los webhooks."""

    def __init__(self):
        super().__init__(
            message="STRIPE_WEBHOOK_SECRET no está configurado",
            code="WEBHOOK_NOT_CONFIGURED",
        )


class ReconciliationDiscrepancyError(DomainError):
    """El proveedor y el almacenamiento local quedaron desalineados."""

    def __init__(self, message: str, context: dict[str, Any]):
        super().__init__(message=message, code="RECONCILIATION_DISCREPANCY", details=context)
