import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from tour_booking.api.dependencies import get_use_cases
from tour_booking.domain.errors import ValidationError, WebhookNotConfiguredError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe", status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    use_cases=Depends(get_use_cases),
) -> dict:
    """
    Recibe eventos de Stripe.

    Responde 200 también cuando un handler rechaza el evento por una condición
    de negocio (queda registrado); solo los errores inesperados devuelven 500
    para que Stripe reintente.
    """
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    try:
        result = await use_cases["dispatcher"].handle_payload(raw_body=raw_body, signature=signature)
    except ValidationError as exc:
        logger.warning("Rejected Stripe webhook", extra={"reason": exc.message})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    except WebhookNotConfiguredError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message) from exc
    return {"received": True, "code": result.code, "success": result.success, "message": result.message}
