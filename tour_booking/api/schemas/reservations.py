from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr

from tour_booking.domain.entities.reservation import ItemType


class ReservationItemIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    item_type: ItemType
    quantity: int
    unit_price: int
    catalog_ref_id: int | None = None


class CreateReservationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    turno_id: int
    agency_id: int
    currency: constr(strip_whitespace=True, min_length=3, max_length=3) = "USD"
    customer_id: int | None = None
    customer_email: EmailStr | None = None
    customer_name: str | None = None
    language: constr(strip_whitespace=True, min_length=2, max_length=5) = "es"
    items: list[ReservationItemIn] = Field(min_length=1)


class ConfirmReservationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    booking_code: str | None = None


class RefundReservationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    authorized_by: str
    refund_amount: int | None = None
    reason: str | None = None
    agency_id: int | None = None
