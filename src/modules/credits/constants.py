"""Credit ledger constants."""

from enum import Enum

from src.database.models import SubscriptionStatus


class DeductionStrategy(str, Enum):
    """Which balance a deduction draws from, and in what order."""

    ONE_TIME_ONLY = "one_time_only"
    SUBSCRIPTION_ONLY = "subscription_only"
    PRIORITY_SUBSCRIPTION = "priority_subscription"
    PRIORITY_ONE_TIME = "priority_one_time"


# Statuses for which the benefits view exposes the plan id
ACTIVE_PLAN_STATUSES = {
    SubscriptionStatus.ACTIVE.value,
    SubscriptionStatus.TRIALING.value,
}

# Keys inside UsageRecord.balance_metadata
YEARLY_ALLOCATION_KEY = "yearly_allocation_details"
MONTHLY_ALLOCATION_KEY = "monthly_allocation_details"

DEFAULT_DEDUCTION_NOTES = {
    DeductionStrategy.ONE_TIME_ONLY: "One-time credits used",
    DeductionStrategy.SUBSCRIPTION_ONLY: "Subscription credits used",
    DeductionStrategy.PRIORITY_SUBSCRIPTION: "Credits used (subscription first)",
    DeductionStrategy.PRIORITY_ONE_TIME: "Credits used (one-time first)",
}

INSUFFICIENT_CREDITS_MESSAGES = {
    DeductionStrategy.ONE_TIME_ONLY: "Insufficient one-time credits.",
    DeductionStrategy.SUBSCRIPTION_ONLY: "Insufficient subscription credits.",
    DeductionStrategy.PRIORITY_SUBSCRIPTION: "Insufficient credits.",
    DeductionStrategy.PRIORITY_ONE_TIME: "Insufficient credits.",
}

DEDUCTION_SUCCESS_MESSAGE = "Credits deducted successfully."
