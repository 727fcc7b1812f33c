"""User benefits projection tests."""

from datetime import timedelta

import pytest

from src.database.models import Subscription, SubscriptionStatus
from src.modules.credits.benefits import UserBenefitsService, build_user_benefits
from src.modules.credits.constants import YEARLY_ALLOCATION_KEY
from src.modules.credits.exceptions import CreditValidationError
from src.utils.date_helpers import add_months, utc_now
from src.utils.settings.credits import CreditSettings
from tests.factories import SubscriptionFactory, UsageRecordFactory


def make_subscription(status: str, period_end_delta: timedelta) -> Subscription:
    return SubscriptionFactory.build(
        plan_id="plan_pro_monthly",
        status=status,
        current_period_end=utc_now() + period_end_delta,
    )


class TestBuildUserBenefits:
    """Projection rules that do not need the store."""

    def test_no_records_projects_zero_balances(self):
        benefits = build_user_benefits(None, None, utc_now())

        assert benefits.active_plan_id is None
        assert benefits.subscription_status is None
        assert benefits.total_available_credits == 0
        assert benefits.next_credit_date is None

    @pytest.mark.parametrize(
        "status", [SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value]
    )
    def test_active_statuses_expose_plan(self, status):
        subscription = make_subscription(status, timedelta(days=10))

        benefits = build_user_benefits(None, subscription, utc_now())

        assert benefits.active_plan_id == "plan_pro_monthly"
        assert benefits.subscription_status == status

    def test_lapsed_period_overrides_status(self):
        subscription = make_subscription(
            SubscriptionStatus.ACTIVE.value, -timedelta(days=1)
        )

        benefits = build_user_benefits(None, subscription, utc_now())

        assert benefits.subscription_status == "inactive_period_ended"
        assert benefits.active_plan_id is None

    def test_inactive_status_hides_plan(self):
        subscription = make_subscription(
            SubscriptionStatus.CANCELED.value, timedelta(days=5)
        )

        benefits = build_user_benefits(None, subscription, utc_now())

        assert benefits.subscription_status == "canceled"
        assert benefits.active_plan_id is None

    def test_totals_and_next_credit_date(self):
        next_credit_date = add_months(utc_now(), 1)
        usage = UsageRecordFactory.build(
            subscription_credits_balance=40,
            one_time_credits_balance=15,
            balance_metadata={
                YEARLY_ALLOCATION_KEY: {
                    "monthly_credits": 100,
                    "remaining_months": 4,
                    "next_credit_date": next_credit_date.isoformat(),
                    "last_allocated_month": None,
                }
            },
        )

        benefits = build_user_benefits(usage, None, utc_now())

        assert benefits.total_available_credits == 55
        assert benefits.subscription_credits_balance == 40
        assert benefits.one_time_credits_balance == 15
        assert benefits.next_credit_date == next_credit_date

    def test_unreadable_yearly_details_are_treated_as_absent(self):
        usage = UsageRecordFactory.build(
            subscription_credits_balance=9,
            one_time_credits_balance=4,
            balance_metadata={YEARLY_ALLOCATION_KEY: {"remaining_months": "soon"}},
        )

        benefits = build_user_benefits(usage, None, utc_now())

        assert benefits.total_available_credits == 13
        assert benefits.next_credit_date is None


class TestUserBenefitsService:
    """Test suite for benefits read through the store."""

    @pytest.fixture
    def service(self, session_factory, credit_settings):
        return UserBenefitsService(session_factory, settings=credit_settings)

    @pytest.mark.asyncio
    async def test_rejects_missing_user(self, service):
        with pytest.raises(CreditValidationError):
            await service.get_user_benefits(None)

    @pytest.mark.asyncio
    async def test_unknown_user_gets_zero_defaults(self, service, user_id):
        benefits = await service.get_user_benefits(user_id)

        assert benefits.total_available_credits == 0
        assert benefits.active_plan_id is None

    @pytest.mark.asyncio
    async def test_uses_most_recent_subscription(self, service, persist, user_id):
        now = utc_now()
        await persist(
            SubscriptionFactory,
            user_id=user_id,
            plan_id="plan_old",
            status=SubscriptionStatus.CANCELED.value,
            created_at=now - timedelta(days=40),
        )
        await persist(
            SubscriptionFactory,
            user_id=user_id,
            plan_id="plan_new",
            status=SubscriptionStatus.ACTIVE.value,
            current_period_end=now + timedelta(days=20),
            created_at=now - timedelta(days=1),
        )

        benefits = await service.get_user_benefits(user_id)

        assert benefits.active_plan_id == "plan_new"
        assert benefits.subscription_status == "active"

    @pytest.mark.asyncio
    async def test_applies_due_allocation_first(self, service, persist, user_id):
        due = utc_now() - timedelta(hours=3)
        await persist(
            UsageRecordFactory,
            user_id=user_id,
            subscription_credits_balance=2,
            one_time_credits_balance=8,
            balance_metadata={
                YEARLY_ALLOCATION_KEY: {
                    "monthly_credits": 100,
                    "remaining_months": 3,
                    "next_credit_date": due.isoformat(),
                    "last_allocated_month": None,
                }
            },
        )

        benefits = await service.get_user_benefits(user_id)

        assert benefits.subscription_credits_balance == 100
        assert benefits.total_available_credits == 108
        assert benefits.next_credit_date == add_months(due, 1)


    @pytest.mark.asyncio
    async def test_unreadable_yearly_details_still_project_balances(
        self, service, persist, user_id
    ):
        await persist(
            UsageRecordFactory,
            user_id=user_id,
            subscription_credits_balance=9,
            one_time_credits_balance=4,
            balance_metadata={
                YEARLY_ALLOCATION_KEY: {"monthly_credits": -5, "remaining_months": 1}
            },
        )

        benefits = await service.get_user_benefits(user_id)

        assert benefits.total_available_credits == 13
        assert benefits.subscription_credits_balance == 9
        assert benefits.next_credit_date is None

    @pytest.mark.asyncio
    async def test_does_not_grant_welcome_bonus(
        self, session_factory, fetch_usage, fetch_credit_logs, user_id
    ):
        service = UserBenefitsService(
            session_factory,
            settings=CreditSettings(
                CREDITS_WELCOME_BONUS=25, CREDITS_GRANT_RETRY_DELAY_SECONDS=0
            ),
        )

        benefits = await service.get_user_benefits(user_id)

        assert benefits.total_available_credits == 0
        assert await fetch_usage(user_id) is None
        assert await fetch_credit_logs(user_id) == []
