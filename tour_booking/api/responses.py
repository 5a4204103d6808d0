from fastapi import status
from fastapi.responses import JSONResponse

from tour_booking.application.results import OperationResult

ERROR_STATUS = {
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "INVALID_PAYOUT_SCHEDULE": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "RESERVATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ABANDONED_CART_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "TURNO_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PAYMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "AGENCY_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "INVALID_RESERVATION_STATUS": status.HTTP_409_CONFLICT,
    "RESERVATION_ALREADY_CANCELLED": status.HTTP_409_CONFLICT,
    "RESERVATION_CONFLICT": status.HTTP_409_CONFLICT,
    "PAYMENT_NOT_REFUNDABLE": status.HTTP_409_CONFLICT,
    "REFUND_EXCEEDS_PAYMENT": status.HTTP_409_CONFLICT,
    "CAPACITY_EXCEEDED": status.HTTP_409_CONFLICT,
    "CAPACITY_UNDERFLOW": status.HTTP_409_CONFLICT,
    "INSUFFICIENT_BALANCE": status.HTTP_409_CONFLICT,
    "MISSING_CONNECTED_ACCOUNT": status.HTTP_400_BAD_REQUEST,
    "PAYOUT_SCHEDULE_NOT_MANUAL": status.HTTP_400_BAD_REQUEST,
    "PAYOUTS_DISABLED": status.HTTP_400_BAD_REQUEST,
    "NO_EXTERNAL_ACCOUNT": status.HTTP_400_BAD_REQUEST,
    "PROVIDER_ERROR": status.HTTP_502_BAD_GATEWAY,
    "RECONCILIATION_DISCREPANCY": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "WEBHOOK_NOT_CONFIGURED": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(result: OperationResult, success_status: int = status.HTTP_200_OK) -> int:
    if result.success:
        return success_status
    return ERROR_STATUS.get(result.code, status.HTTP_400_BAD_REQUEST)


def result_response(result: OperationResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(result, success_status),
        content={
            "success": result.success,
            "code": result.code,
            "message": result.message,
            "data": result.data,
        },
    )
