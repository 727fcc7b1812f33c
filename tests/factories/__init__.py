"""Test factories for credit ledger models."""

from .base import AsyncSQLAlchemyModelFactory
from .credit_logs import CreditLogFactory
from .subscriptions import SubscriptionFactory
from .usage import UsageRecordFactory

__all__ = [
    "AsyncSQLAlchemyModelFactory",
    "CreditLogFactory",
    "SubscriptionFactory",
    "UsageRecordFactory",
]
