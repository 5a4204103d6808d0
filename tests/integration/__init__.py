"""
Tests de integración sobre SQLAlchemy.

Usan SQLite in-memory (aiosqlite) para verificar los UPDATE/DELETE
condicionales, el UNIQUE de eventos de webhook y el ciclo hold → sweep →
pago tardío sobre los repositorios SQL.

Para ejecutar solo tests de integración:
    pytest -m integration
"""
