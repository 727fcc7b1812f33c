"""Credits API schemas (combined models/requests)."""

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse
from src.modules.credits.models import DeductionResult, UserBenefits


class DeductCreditsRequest(BaseModel):
    amount: int = Field(gt=0, strict=True)
    notes: str | None = Field(default=None, max_length=500)


# Response type aliases
UserBenefitsResponse = APIResponse[UserBenefits]
DeductionResponse = APIResponse[DeductionResult]
