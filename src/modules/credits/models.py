"""Domain models for the credit ledger."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.utils.date_helpers import ensure_utc


class YearlyAllocationDetails(BaseModel):
    """Drip schedule of a yearly plan that grants credits every month."""

    monthly_credits: int = Field(ge=0)
    remaining_months: int = Field(ge=0)
    next_credit_date: datetime | None = None
    last_allocated_month: str | None = None
    # Day-of-month the term started on
    anchor_day: int | None = Field(default=None, ge=1, le=31)

    @field_validator("next_credit_date")
    @classmethod
    def _normalize_next_credit_date(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value else None


class MonthlyAllocationDetails(BaseModel):
    monthly_credits: int = Field(ge=0)


class UserBenefits(BaseModel):
    """Read-only projection of a user's current entitlements."""

    active_plan_id: str | None = None
    subscription_status: str | None = None
    current_period_end: datetime | None = None
    next_credit_date: datetime | None = None
    total_available_credits: int = 0
    subscription_credits_balance: int = 0
    one_time_credits_balance: int = 0


class DeductionResult(BaseModel):
    success: bool
    message: str
    new_one_time_balance: int
    new_subscription_balance: int
    new_total_balance: int

    @classmethod
    def from_balances(
        cls, success: bool, message: str, one_time: int, subscription: int
    ) -> "DeductionResult":
        return cls(
            success=success,
            message=message,
            new_one_time_balance=one_time,
            new_subscription_balance=subscription,
            new_total_balance=one_time + subscription,
        )
