from pydantic import BaseModel, ConfigDict


class ManualPayoutRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: int
    currency: str
    requested_by: str | None = None


class PayoutScheduleUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    interval: str
    delay_days: int | None = None
    weekly_anchor: str | None = None
    monthly_anchor: int | None = None
