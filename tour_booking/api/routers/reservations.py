from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from tour_booking.api.dependencies import get_use_cases
from tour_booking.api.responses import result_response
from tour_booking.api.schemas.reservations import (
    ConfirmReservationRequest,
    CreateReservationRequest,
    RefundReservationRequest,
)
from tour_booking.application.use_cases.refund_orchestrator import RefundRequest
from tour_booking.application.use_cases.reservation_state_machine import CreateHoldCommand
from tour_booking.domain.entities.reservation import ReservationItem

router = APIRouter()


@router.post("/reservations", status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: CreateReservationRequest,
    use_cases=Depends(get_use_cases),
) -> JSONResponse:
    command = CreateHoldCommand(
        turno_id=payload.turno_id,
        agency_id=payload.agency_id,
        items=[
            ReservationItem(
                item_type=item.item_type,
                quantity=item.quantity,
                unit_price=item.unit_price,
                catalog_ref_id=item.catalog_ref_id,
            )
            for item in payload.items
        ],
        currency=payload.currency,
        customer_id=payload.customer_id,
        customer_email=payload.customer_email,
        customer_name=payload.customer_name,
        language=payload.language,
    )
    result = await use_cases["state_machine"].create_hold(command)
    return result_response(result, success_status=status.HTTP_201_CREATED)


@router.post("/reservations/{reservation_id}/confirm")
async def confirm_reservation(
    reservation_id: int,
    payload: ConfirmReservationRequest | None = None,
    use_cases=Depends(get_use_cases),
) -> JSONResponse:
    booking_code = payload.booking_code if payload else None
    result = await use_cases["state_machine"].confirm(reservation_id, booking_code=booking_code)
    return result_response(result)


@router.post("/reservations/{reservation_id}/refund")
async def refund_reservation(
    reservation_id: int,
    payload: RefundReservationRequest,
    use_cases=Depends(get_use_cases),
) -> JSONResponse:
    result = await use_cases["refunds"].refund(
        RefundRequest(
            reservation_id=reservation_id,
            authorized_by=payload.authorized_by,
            requested_amount=payload.refund_amount,
            reason=payload.reason,
            agency_id=payload.agency_id,
        )
    )
    return result_response(result)


@router.get("/reservations/{reservation_id}/refunds")
async def list_refunds(
    reservation_id: int,
    use_cases=Depends(get_use_cases),
) -> JSONResponse:
    return result_response(await use_cases["refunds"].list_refunds(reservation_id))
