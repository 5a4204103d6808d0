"""
Health checks para orquestadores (K8s, Docker).

- /health y /health/live: liveness, siempre 200
- /health/db: conectividad con la base de datos
- /health/ready: readiness (503 si alguna dependencia falla)
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.api.deps import get_db_session
from tour_booking.infrastructure.circuit_breaker import stripe_breaker

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "tour-booking-reconciliation"


async def _database_healthy(session: AsyncSession) -> bool:
    """True si la base responde a SELECT 1; los fallos quedan en el log."""
    try:
        result = await session.execute(text("SELECT 1"))
        result.scalar()
        return True
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Database health check failed", exc_info=exc)
        return False


@router.get("/health")
async def health_check():
    """Liveness básica: 200 mientras el proceso responde."""
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/health/db")
async def health_check_db(session: AsyncSession = Depends(get_db_session)):
    """
    Conectividad con la base de datos.

    Ejecuta SELECT 1; responde 503 si la base no acepta consultas.
    """
    if await _database_healthy(session):
        return {"status": "healthy", "component": "database"}
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "component": "database", "error": "Database connection failed"},
    )


@router.get("/health/ready")
async def health_check_ready(session: AsyncSession = Depends(get_db_session)):
    """Readiness: base de datos alcanzable; el estado del breaker de Stripe se reporta sin bloquear."""
    health_status = {
        "status": "ready",
        "checks": {"stripe_circuit": stripe_breaker.current_state},
    }
    if not await _database_healthy(session):
        health_status["status"] = "not_ready"
        health_status["checks"]["database"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    health_status["checks"]["database"] = "healthy"
    return health_status


@router.get("/health/live")
async def health_check_live():
    """Liveness para el orquestador; no consulta dependencias."""
    return {"status": "ok", "service": SERVICE_NAME}
