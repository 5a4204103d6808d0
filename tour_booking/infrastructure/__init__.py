"""
Capa de Infraestructura.

Implementaciones concretas de los puertos:
- db/: Tablas, repositorios SQL y transacciones (SQLAlchemy async)
- gateways/: Adaptadores externos (Stripe, notificaciones HTTP)
- in_memory/: Implementaciones in-memory para testing
- circuit_breaker.py: Circuit breaker para llamadas a Stripe
"""
