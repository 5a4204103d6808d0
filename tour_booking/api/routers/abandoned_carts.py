import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse

from tour_booking.api.dependencies import get_use_cases
from tour_booking.api.responses import result_response
from tour_booking.config import Settings, get_settings

router = APIRouter()


def require_cron_token(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Sin CRON_SECRET_TOKEN configurado el endpoint queda abierto (entornos locales)."""
    expected = settings.cron_secret_token
    if not expected:
        return
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {expected}"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.post("/abandoned-carts/{booking_code}/recover")
async def recover_abandoned_cart(
    booking_code: str,
    use_cases=Depends(get_use_cases),
) -> JSONResponse:
    return result_response(await use_cases["sweeper"].recover(booking_code))


@router.post("/cron/sweep-abandoned-reservations", dependencies=[Depends(require_cron_token)])
async def sweep_abandoned_reservations(use_cases=Depends(get_use_cases)) -> JSONResponse:
    return result_response(await use_cases["sweeper"].sweep())
