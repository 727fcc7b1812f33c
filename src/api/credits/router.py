"""Credits domain router."""

from src.api.core.dependencies import (
    CreditDeductionServiceDep,
    CurrentUserAuthDep,
    UserBenefitsServiceDep,
)
from src.api.core.messages import APIResponse, MessageCode
from src.modules.credits.models import DeductionResult
from fastapi import APIRouter

from .schemas import DeductCreditsRequest, DeductionResponse, UserBenefitsResponse

router = APIRouter(
    prefix="/credits",
    tags=["credits"],
)


def _deduction_response(result: DeductionResult) -> DeductionResponse:
    if not result.success:
        return APIResponse.error(
            message_code=MessageCode.INSUFFICIENT_CREDITS,
            message=result.message,
            data=result,
        )
    return APIResponse.success(
        message_code=MessageCode.CREDITS_DEDUCTED,
        message=result.message,
        data=result,
    )


@router.get("/benefits", response_model=UserBenefitsResponse)
async def get_user_benefits(
    current_user: CurrentUserAuthDep,
    benefits_service: UserBenefitsServiceDep,
) -> UserBenefitsResponse:
    """Get the caller's plan and credit balances, applying any due monthly credits."""
    benefits = await benefits_service.get_user_benefits(current_user.user_id)
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=benefits)


@router.post("/deduct/one-time", response_model=DeductionResponse)
async def deduct_one_time_credits(
    body: DeductCreditsRequest,
    current_user: CurrentUserAuthDep,
    deduction_service: CreditDeductionServiceDep,
) -> DeductionResponse:
    result = await deduction_service.deduct_one_time_credits(
        current_user.user_id, body.amount, body.notes
    )
    return _deduction_response(result)


@router.post("/deduct/subscription", response_model=DeductionResponse)
async def deduct_subscription_credits(
    body: DeductCreditsRequest,
    current_user: CurrentUserAuthDep,
    deduction_service: CreditDeductionServiceDep,
) -> DeductionResponse:
    result = await deduction_service.deduct_subscription_credits(
        current_user.user_id, body.amount, body.notes
    )
    return _deduction_response(result)


@router.post("/deduct/priority-subscription", response_model=DeductionResponse)
async def deduct_credits_prioritizing_subscription(
    body: DeductCreditsRequest,
    current_user: CurrentUserAuthDep,
    deduction_service: CreditDeductionServiceDep,
) -> DeductionResponse:
    """Spend subscription credits first, then one-time credits for the rest."""
    result = await deduction_service.deduct_credits_prioritizing_subscription(
        current_user.user_id, body.amount, body.notes
    )
    return _deduction_response(result)


@router.post("/deduct/priority-one-time", response_model=DeductionResponse)
async def deduct_credits_prioritizing_one_time(
    body: DeductCreditsRequest,
    current_user: CurrentUserAuthDep,
    deduction_service: CreditDeductionServiceDep,
) -> DeductionResponse:
    """Spend one-time credits first, then subscription credits for the rest."""
    result = await deduction_service.deduct_credits_prioritizing_one_time(
        current_user.user_id, body.amount, body.notes
    )
    return _deduction_response(result)
