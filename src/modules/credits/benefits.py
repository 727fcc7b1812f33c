"""User benefits projection."""

from datetime import datetime
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.base import BaseService
from src.database.models import Subscription, SubscriptionStatus, UsageRecord
from src.modules.credits.allocation import AllocationCatchUpService
from src.modules.credits.constants import ACTIVE_PLAN_STATUSES
from src.modules.credits.exceptions import CreditValidationError
from src.modules.credits.models import UserBenefits, YearlyAllocationDetails
from src.modules.credits.store import (
    get_latest_subscription,
    get_usage_record,
    read_yearly_details,
)
from src.utils.date_helpers import ensure_utc, utc_now
from src.utils.logger import get_logger
from src.utils.settings.credits import CreditSettings

logger = get_logger(__name__)


def _projected_yearly_details(usage: UsageRecord) -> YearlyAllocationDetails | None:
    try:
        return read_yearly_details(usage.balance_metadata)
    except ValidationError as e:
        logger.warning(
            "Ignoring unreadable yearly allocation details",
            user_id=str(usage.user_id),
            error=str(e),
        )
        return None


def build_user_benefits(
    usage: UsageRecord | None,
    subscription: Subscription | None,
    now: datetime,
) -> UserBenefits:
    """Combine a usage row and the latest subscription into a benefits view."""
    subscription_credits = usage.subscription_credits_balance if usage else 0
    one_time_credits = usage.one_time_credits_balance if usage else 0
    yearly_details = _projected_yearly_details(usage) if usage else None

    status = subscription.status if subscription else None
    current_period_end = (
        ensure_utc(subscription.current_period_end)
        if subscription and subscription.current_period_end
        else None
    )
    # Billing-cycle lapse wins over a stale provider status
    if status and current_period_end and current_period_end < now:
        status = SubscriptionStatus.INACTIVE_PERIOD_ENDED.value

    return UserBenefits(
        active_plan_id=(
            subscription.plan_id
            if subscription and status in ACTIVE_PLAN_STATUSES
            else None
        ),
        subscription_status=status,
        current_period_end=current_period_end,
        next_credit_date=yearly_details.next_credit_date if yearly_details else None,
        total_available_credits=subscription_credits + one_time_credits,
        subscription_credits_balance=subscription_credits,
        one_time_credits_balance=one_time_credits,
    )


class UserBenefitsService(BaseService):
    """Projects a user's plan and credit balances after catching up allocations.

    Apart from the catch-up this is a read; the welcome bonus is granted
    through ``CreditGrantService.grant_welcome_credits`` only.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        allocation_service: AllocationCatchUpService | None = None,
        settings: CreditSettings | None = None,
    ):
        super().__init__(session_factory)
        self.settings = settings or CreditSettings()
        self.allocation_service = allocation_service or AllocationCatchUpService(
            session_factory, self.settings
        )

    async def get_user_benefits(self, user_id: UUID) -> UserBenefits:
        if not user_id:
            raise CreditValidationError("User id is required")

        await self.allocation_service.catch_up(user_id)

        async with self.session_factory() as session:
            usage = await get_usage_record(session, user_id)
            subscription = await get_latest_subscription(session, user_id)

        return build_user_benefits(usage, subscription, utc_now())
