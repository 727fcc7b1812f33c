"""Factory for Subscription models."""

from datetime import timezone

import factory
from src.database.models import Subscription, SubscriptionStatus
from src.utils.date_helpers import utc_now
from .base import AsyncSQLAlchemyModelFactory, UUIDFactory


class SubscriptionFactory(AsyncSQLAlchemyModelFactory[Subscription]):
    """Factory for creating Subscription instances."""

    class Meta:
        model = Subscription

    id = UUIDFactory()
    user_id = UUIDFactory()
    plan_id = factory.Faker("bothify", text="plan_????????")
    stripe_subscription_id = factory.Faker("bothify", text="sub_??????????")
    stripe_customer_id = factory.Faker("bothify", text="cus_??????????")
    status = SubscriptionStatus.ACTIVE.value
    current_period_end = factory.Faker(
        "future_datetime", end_date="+30d", tzinfo=timezone.utc
    )
    created_at = factory.LazyFunction(utc_now)
    updated_at = factory.LazyFunction(utc_now)
