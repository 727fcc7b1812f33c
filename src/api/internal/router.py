"""Internal credits router for the billing-sync process."""

from fastapi import APIRouter, Depends

from src.api.core.dependencies import CreditGrantServiceDep, require_internal_service
from src.api.core.messages import APIResponse, MessageCode
from src.database.models import CreditLog

from .schemas import (
    CreditLogModel,
    CreditLogResponse,
    GrantMonthlyCreditsRequest,
    GrantOneTimeCreditsRequest,
    GrantWelcomeCreditsRequest,
    InitializeYearlyAllocationRequest,
    RevokeOneTimeCreditsRequest,
    RevokeRemainingSubscriptionCreditsRequest,
    RevokeSubscriptionCreditsRequest,
)

router = APIRouter(
    prefix="/internal/credits",
    tags=["internal"],
    dependencies=[Depends(require_internal_service)],
)


def _log_response(
    entry: CreditLog | None, message_code: MessageCode
) -> CreditLogResponse:
    if entry is None:
        return APIResponse.success(message_code=MessageCode.NO_CREDITS_CHANGED)
    return APIResponse.success(
        message_code=message_code, data=CreditLogModel.model_validate(entry)
    )


@router.post("/grants/one-time", response_model=CreditLogResponse)
async def grant_one_time_credits(
    body: GrantOneTimeCreditsRequest,
    grant_service: CreditGrantServiceDep,
) -> CreditLogResponse:
    entry = await grant_service.grant_one_time_credits(
        body.user_id, body.credits, body.related_order_id
    )
    return _log_response(entry, MessageCode.CREDITS_GRANTED)


@router.post("/grants/subscription/monthly", response_model=CreditLogResponse)
async def grant_monthly_subscription_credits(
    body: GrantMonthlyCreditsRequest,
    grant_service: CreditGrantServiceDep,
) -> CreditLogResponse:
    """Reset the subscription balance at the start of a monthly billing period."""
    entry = await grant_service.grant_monthly_subscription_credits(
        body.user_id, body.monthly_credits, body.related_order_id
    )
    return _log_response(entry, MessageCode.CREDITS_GRANTED)


@router.post("/grants/subscription/yearly", response_model=CreditLogResponse)
async def initialize_yearly_allocation(
    body: InitializeYearlyAllocationRequest,
    grant_service: CreditGrantServiceDep,
) -> CreditLogResponse:
    """Grant the first month of a yearly plan and schedule the rest."""
    entry = await grant_service.initialize_yearly_allocation(
        body.user_id,
        body.monthly_credits,
        body.total_months,
        body.start_date,
        body.related_order_id,
    )
    return _log_response(entry, MessageCode.CREDITS_GRANTED)


@router.post("/grants/welcome", response_model=CreditLogResponse)
async def grant_welcome_credits(
    body: GrantWelcomeCreditsRequest,
    grant_service: CreditGrantServiceDep,
) -> CreditLogResponse:
    entry = await grant_service.grant_welcome_credits(body.user_id, body.credits)
    return _log_response(entry, MessageCode.CREDITS_GRANTED)


@router.post("/revocations/one-time", response_model=CreditLogResponse)
async def revoke_one_time_credits(
    body: RevokeOneTimeCreditsRequest,
    grant_service: CreditGrantServiceDep,
) -> CreditLogResponse:
    entry = await grant_service.revoke_one_time_credits(
        body.user_id, body.credits, body.notes, body.related_order_id
    )
    return _log_response(entry, MessageCode.CREDITS_REVOKED)


@router.post("/revocations/subscription", response_model=CreditLogResponse)
async def revoke_subscription_credits(
    body: RevokeSubscriptionCreditsRequest,
    grant_service: CreditGrantServiceDep,
) -> CreditLogResponse:
    entry = await grant_service.revoke_subscription_credits(
        body.user_id,
        body.credits,
        body.log_type,
        body.notes,
        clear_monthly=body.clear_monthly,
        clear_yearly=body.clear_yearly,
        related_order_id=body.related_order_id,
    )
    return _log_response(entry, MessageCode.CREDITS_REVOKED)


@router.post("/revocations/subscription-ended", response_model=CreditLogResponse)
async def revoke_remaining_subscription_credits(
    body: RevokeRemainingSubscriptionCreditsRequest,
    grant_service: CreditGrantServiceDep,
) -> CreditLogResponse:
    """Drop the remaining subscription balance once a subscription has ended."""
    entry = await grant_service.revoke_remaining_subscription_credits(
        body.user_id, body.notes
    )
    return _log_response(entry, MessageCode.CREDITS_REVOKED)
