import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tour_booking.api.dependencies import drain_notifications
from tour_booking.api.deps import engine
from tour_booking.api.routers.abandoned_carts import router as abandoned_carts_router
from tour_booking.api.routers.agencies import router as agencies_router
from tour_booking.api.routers.health import router as health_router
from tour_booking.api.routers.reservations import router as reservations_router
from tour_booking.api.routers.webhooks import router as webhooks_router
from tour_booking.config import get_settings
from tour_booking.infrastructure.db.tables import metadata

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tablas para dev/demo; en producción el esquema lo gestionan migraciones
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Tour booking API started", extra={"dialect": engine.dialect.name})
    yield
    await drain_notifications(get_settings())
    await engine.dispose()


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Errores no previstos por los casos de uso.

    Se registran completos con un error_id; el cliente solo recibe el id para
    correlacionar con los logs.
    """
    error_id = str(uuid.uuid4())
    logger.error(
        "Unhandled error while processing request",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        },
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "message": "Ocurrió un error inesperado. Contacte a soporte indicando el error_id.",
        },
    )


app = FastAPI(
    title="Tour Booking Reconciliation API",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(health_router, tags=["Health"])
app.include_router(reservations_router, prefix=API_PREFIX, tags=["Reservations"])
app.include_router(abandoned_carts_router, prefix=API_PREFIX, tags=["Abandoned carts"])
app.include_router(webhooks_router, prefix=API_PREFIX, tags=["Webhooks"])
app.include_router(agencies_router, prefix=API_PREFIX, tags=["Agencies"])
