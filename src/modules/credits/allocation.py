"""Monthly drip allocation for yearly plans."""

from dataclasses import dataclass
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.base import BaseService
from src.modules.credits.store import (
    lock_usage_record,
    read_yearly_details,
    with_yearly_details,
)
from src.utils.date_helpers import add_months, utc_now, year_month
from src.utils.settings.credits import CreditSettings


@dataclass(frozen=True)
class AllocationStep:
    """One applied allocation period."""

    year_month: str
    credits: int
    remaining_before: int
    remaining_after: int


class AllocationCatchUpService(BaseService):
    """Brings subscription balances up to date with elapsed allocation periods."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: CreditSettings | None = None,
    ):
        super().__init__(session_factory)
        self.settings = settings or CreditSettings()

    async def catch_up(self, user_id: UUID) -> int:
        """Apply every allocation period that has fallen due.

        Each period is its own locked transaction. The loop is bounded by the
        remaining months seen on the first pass; a failed period stops the
        loop and leaves the last committed state in place.

        Returns the number of periods applied.
        """
        applied: list[AllocationStep] = []
        budget: int | None = None

        while budget is None or len(applied) < budget:
            try:
                step = await self._allocate_next_period(user_id)
            except (SQLAlchemyError, ValidationError) as e:
                self.logger.warning(
                    "Allocation catch-up stopped after failed period",
                    user_id=str(user_id),
                    periods_applied=len(applied),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                break

            if step is None:
                break

            if budget is None:
                budget = min(
                    step.remaining_before, self.settings.CREDITS_MAX_CATCH_UP_PERIODS
                )
            applied.append(step)

            if step.remaining_after <= 0:
                break

        if applied:
            self.logger.info(
                "Applied subscription credit allocations",
                user_id=str(user_id),
                periods=[step.year_month for step in applied],
                subscription_balance=applied[-1].credits,
                remaining_months=applied[-1].remaining_after,
            )
        return len(applied)

    async def _allocate_next_period(self, user_id: UUID) -> AllocationStep | None:
        now = utc_now()
        async with self.session_factory() as session:
            async with session.begin():
                usage = await lock_usage_record(
                    session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
                )
                if usage is None:
                    return None

                details = read_yearly_details(usage.balance_metadata)
                if (
                    details is None
                    or details.remaining_months <= 0
                    or details.next_credit_date is None
                    or now < details.next_credit_date
                ):
                    return None

                token = year_month(details.next_credit_date)
                if details.last_allocated_month == token:
                    return None

                remaining_after = details.remaining_months - 1
                next_credit_date = (
                    add_months(details.next_credit_date, 1, details.anchor_day)
                    if remaining_after > 0
                    else None
                )

                # Replace, not add: unused credits from the previous period lapse
                usage.subscription_credits_balance = details.monthly_credits
                usage.balance_metadata = with_yearly_details(
                    usage.balance_metadata,
                    details.model_copy(
                        update={
                            "remaining_months": remaining_after,
                            "next_credit_date": next_credit_date,
                            "last_allocated_month": token,
                        }
                    ),
                )

                return AllocationStep(
                    year_month=token,
                    credits=details.monthly_credits,
                    remaining_before=details.remaining_months,
                    remaining_after=remaining_after,
                )
