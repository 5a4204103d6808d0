from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from tour_booking.api.dependencies import get_use_cases
from tour_booking.api.responses import result_response
from tour_booking.api.schemas.agencies import ManualPayoutRequest, PayoutScheduleUpdateRequest
from tour_booking.application.use_cases.payout_reconciler import PayoutScheduleRequest

router = APIRouter()


@router.get("/agencies/{agency_id}/payout-info")
async def get_payout_info(agency_id: int, use_cases=Depends(get_use_cases)) -> JSONResponse:
    return result_response(await use_cases["payouts"].get_payout_info(agency_id))


@router.post("/agencies/{agency_id}/payouts")
async def create_manual_payout(
    agency_id: int,
    payload: ManualPayoutRequest,
    use_cases=Depends(get_use_cases),
) -> JSONResponse:
    result = await use_cases["payouts"].create_manual_payout(
        agency_id=agency_id,
        amount=payload.amount,
        currency=payload.currency,
        requested_by=payload.requested_by,
    )
    return result_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/agencies/{agency_id}/payout-settings")
async def get_payout_settings(agency_id: int, use_cases=Depends(get_use_cases)) -> JSONResponse:
    return result_response(await use_cases["payouts"].get_payout_settings(agency_id))


@router.put("/agencies/{agency_id}/payout-settings")
async def update_payout_settings(
    agency_id: int,
    payload: PayoutScheduleUpdateRequest,
    use_cases=Depends(get_use_cases),
) -> JSONResponse:
    result = await use_cases["payouts"].update_payout_schedule(
        agency_id,
        PayoutScheduleRequest(
            interval=payload.interval,
            delay_days=payload.delay_days,
            weekly_anchor=payload.weekly_anchor,
            monthly_anchor=payload.monthly_anchor,
        ),
    )
    return result_response(result)


@router.post("/agencies/{agency_id}/sync-stripe-status")
async def sync_agency_stripe_status(agency_id: int, use_cases=Depends(get_use_cases)) -> JSONResponse:
    """Relee la cuenta conectada en Stripe y actualiza los flags de la agencia."""
    return result_response(await use_cases["agency_sync"].sync_agency_status(agency_id))


@router.post("/agencies/sync-stripe-status")
async def sync_all_agencies_stripe_status(use_cases=Depends(get_use_cases)) -> JSONResponse:
    return result_response(await use_cases["agency_sync"].sync_all())
