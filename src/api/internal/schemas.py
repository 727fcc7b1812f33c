"""Internal credits API schemas (combined models/requests)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.api.core.messages import APIResponse
from src.database.models import CreditLogType

REVOKE_LOG_TYPES = {
    CreditLogType.REFUND_REVOKE,
    CreditLogType.SUBSCRIPTION_ENDED_REVOKE,
}


class CreditLogModel(BaseModel):
    id: UUID
    user_id: UUID
    type: str
    amount: int
    notes: str | None
    one_time_balance_after: int
    subscription_balance_after: int
    related_order_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class GrantOneTimeCreditsRequest(BaseModel):
    user_id: UUID
    credits: int = Field(gt=0)
    related_order_id: UUID | None = None


class GrantMonthlyCreditsRequest(BaseModel):
    user_id: UUID
    monthly_credits: int = Field(gt=0)
    related_order_id: UUID | None = None


class InitializeYearlyAllocationRequest(BaseModel):
    user_id: UUID
    monthly_credits: int = Field(gt=0)
    total_months: int = Field(default=12, gt=0, le=120)
    start_date: datetime
    related_order_id: UUID | None = None


class GrantWelcomeCreditsRequest(BaseModel):
    user_id: UUID
    credits: int | None = Field(default=None, gt=0)


class RevokeOneTimeCreditsRequest(BaseModel):
    user_id: UUID
    credits: int = Field(gt=0)
    notes: str = "Refund revoke"
    related_order_id: UUID | None = None


class RevokeSubscriptionCreditsRequest(BaseModel):
    user_id: UUID
    # Omit to revoke one period of the allocation being cleared
    credits: int | None = Field(default=None, gt=0)
    log_type: CreditLogType = CreditLogType.REFUND_REVOKE
    notes: str = "Subscription refund revoke"
    clear_monthly: bool = False
    clear_yearly: bool = False
    related_order_id: UUID | None = None

    @field_validator("log_type")
    @classmethod
    def _only_revoke_types(cls, value: CreditLogType) -> CreditLogType:
        if value not in REVOKE_LOG_TYPES:
            allowed = sorted(t.value for t in REVOKE_LOG_TYPES)
            raise ValueError(f"log_type must be one of {allowed}")
        return value


class RevokeRemainingSubscriptionCreditsRequest(BaseModel):
    user_id: UUID
    notes: str = "Subscription ended"


# Response type aliases
CreditLogResponse = APIResponse[CreditLogModel]
