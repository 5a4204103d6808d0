"""
Capa de Dominio - Motor de reservaciones y pagos.

Esta capa contiene la lógica de negocio pura, sin dependencias de frameworks.

Estructura:
- entities/: Entidades del dominio (Reservation, Payment, Agency, etc.)
- value_objects/: Objetos de valor inmutables (Money, BookingCode)
- errors.py: Excepciones específicas del dominio
"""
