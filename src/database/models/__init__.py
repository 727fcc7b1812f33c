"""Database models for the credit ledger."""

from .base import Base
from .credit_logs import CreditLog, CreditLogType
from .subscriptions import Subscription, SubscriptionStatus
from .usage import UsageRecord

# Export all models and enums
__all__ = [
    # Base
    "Base",
    # Enums
    "CreditLogType",
    "SubscriptionStatus",
    # Models
    "UsageRecord",
    "Subscription",
    "CreditLog",
]
