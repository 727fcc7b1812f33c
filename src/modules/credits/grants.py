"""Credit grants and revocations applied on behalf of the billing-sync process."""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, TypeVar
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.base import BaseService
from src.database.models import CreditLog, CreditLogType
from src.modules.credits.models import MonthlyAllocationDetails, YearlyAllocationDetails
from src.modules.credits.store import (
    append_credit_log,
    has_credit_log_of_type,
    lock_or_create_usage_record,
    lock_usage_record,
    stored_period_credits,
    with_monthly_details,
    with_yearly_details,
)
from src.utils.date_helpers import add_months, ensure_utc, year_month
from src.utils.settings.credits import CreditSettings

T = TypeVar("T")


def is_transient_store_error(exc: Exception) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class CreditGrantService(BaseService):
    """Grants and revokes credits, one locked transaction and log entry each."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: CreditSettings | None = None,
    ):
        super().__init__(session_factory)
        self.settings = settings or CreditSettings()

    async def _run_in_transaction(
        self,
        action: str,
        user_id: UUID,
        work: Callable[[AsyncSession], Awaitable[T]],
        retry: bool = True,
    ) -> T:
        """Run ``work`` in its own transaction, retrying transient store errors."""
        max_attempts = self.settings.CREDITS_GRANT_MAX_ATTEMPTS if retry else 1
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        return await work(session)
            except DBAPIError as e:
                if attempt >= max_attempts or not is_transient_store_error(e):
                    self.logger.error(
                        f"Failed to {action}",
                        user_id=str(user_id),
                        attempts=attempt,
                        error=str(e),
                    )
                    raise
                delay = attempt * self.settings.CREDITS_GRANT_RETRY_DELAY_SECONDS
                self.logger.warning(
                    f"Attempt {attempt} to {action} failed, retrying in {delay}s",
                    user_id=str(user_id),
                    error=str(e),
                )
                await asyncio.sleep(delay)

    async def grant_one_time_credits(
        self,
        user_id: UUID,
        credits: int,
        related_order_id: UUID | None = None,
        notes: str = "One-time credit purchase",
        log_type: CreditLogType = CreditLogType.ONE_TIME_PURCHASE,
    ) -> CreditLog | None:
        """Add purchased credits to the one-time balance."""
        if credits <= 0:
            self.logger.info(
                "No one-time credits to grant, skipping",
                user_id=str(user_id),
                credits=credits,
            )
            return None

        async def work(session: AsyncSession) -> CreditLog:
            usage = await lock_or_create_usage_record(
                session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
            )
            usage.one_time_credits_balance += credits
            return append_credit_log(
                session, usage, log_type, credits, notes, related_order_id
            )

        entry = await self._run_in_transaction(
            "grant one-time credits", user_id, work
        )
        self.logger.info(
            "Granted one-time credits",
            user_id=str(user_id),
            credits=credits,
            log_type=log_type.value,
            one_time_balance=entry.one_time_balance_after,
        )
        return entry

    async def grant_welcome_credits(
        self, user_id: UUID, credits: int | None = None
    ) -> CreditLog | None:
        """Grant the sign-up bonus once per user."""
        credits = self.settings.CREDITS_WELCOME_BONUS if credits is None else credits
        if credits <= 0:
            return None

        async def work(session: AsyncSession) -> CreditLog | None:
            usage = await lock_or_create_usage_record(
                session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
            )
            if await has_credit_log_of_type(
                session, user_id, CreditLogType.WELCOME_BONUS
            ):
                return None
            usage.one_time_credits_balance += credits
            return append_credit_log(
                session, usage, CreditLogType.WELCOME_BONUS, credits, "Welcome bonus"
            )

        entry = await self._run_in_transaction("grant welcome credits", user_id, work)
        if entry is None:
            self.logger.debug("Welcome bonus already granted", user_id=str(user_id))
        else:
            self.logger.info(
                "Granted welcome credits", user_id=str(user_id), credits=credits
            )
        return entry

    async def grant_monthly_subscription_credits(
        self,
        user_id: UUID,
        monthly_credits: int,
        related_order_id: UUID | None = None,
    ) -> CreditLog | None:
        """Reset the subscription balance for a monthly plan's new period."""
        if monthly_credits <= 0:
            self.logger.info(
                "No monthly credits defined, skipping",
                user_id=str(user_id),
                monthly_credits=monthly_credits,
            )
            return None

        async def work(session: AsyncSession) -> CreditLog:
            usage = await lock_or_create_usage_record(
                session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
            )
            usage.subscription_credits_balance = monthly_credits
            usage.balance_metadata = with_monthly_details(
                usage.balance_metadata,
                MonthlyAllocationDetails(monthly_credits=monthly_credits),
            )
            return append_credit_log(
                session,
                usage,
                CreditLogType.SUBSCRIPTION_GRANT,
                monthly_credits,
                "Subscription credits granted/reset",
                related_order_id,
            )

        entry = await self._run_in_transaction(
            "grant monthly subscription credits", user_id, work
        )
        self.logger.info(
            "Granted monthly subscription credits",
            user_id=str(user_id),
            monthly_credits=monthly_credits,
        )
        return entry

    async def initialize_yearly_allocation(
        self,
        user_id: UUID,
        monthly_credits: int,
        total_months: int,
        start_date: datetime,
        related_order_id: UUID | None = None,
    ) -> CreditLog | None:
        """Start (or restart) a yearly plan's monthly drip.

        The first month is granted immediately; the remaining months are left
        to the allocation catch-up, one per calendar month after ``start_date``.
        """
        if monthly_credits <= 0 or total_months <= 0:
            self.logger.info(
                "Yearly plan defines no credits, skipping",
                user_id=str(user_id),
                monthly_credits=monthly_credits,
                total_months=total_months,
            )
            return None

        start_date = ensure_utc(start_date)
        remaining_months = total_months - 1
        details = YearlyAllocationDetails(
            monthly_credits=monthly_credits,
            remaining_months=remaining_months,
            next_credit_date=add_months(start_date, 1) if remaining_months else None,
            last_allocated_month=year_month(start_date),
            anchor_day=start_date.day,
        )

        async def work(session: AsyncSession) -> CreditLog:
            usage = await lock_or_create_usage_record(
                session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
            )
            usage.subscription_credits_balance = monthly_credits
            usage.balance_metadata = with_yearly_details(
                usage.balance_metadata, details
            )
            return append_credit_log(
                session,
                usage,
                CreditLogType.SUBSCRIPTION_GRANT,
                monthly_credits,
                "Yearly plan initial credits granted",
                related_order_id,
            )

        entry = await self._run_in_transaction(
            "initialize yearly allocation", user_id, work
        )
        self.logger.info(
            "Initialized yearly allocation",
            user_id=str(user_id),
            monthly_credits=monthly_credits,
            remaining_months=remaining_months,
            next_credit_date=(
                details.next_credit_date.isoformat()
                if details.next_credit_date
                else None
            ),
        )
        return entry

    async def revoke_one_time_credits(
        self,
        user_id: UUID,
        credits: int,
        notes: str,
        related_order_id: UUID | None = None,
    ) -> CreditLog | None:
        """Take back refunded one-time credits, never below zero."""
        if credits <= 0:
            return None

        async def work(session: AsyncSession) -> CreditLog | None:
            usage = await lock_usage_record(
                session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
            )
            if usage is None:
                return None
            revoked = min(usage.one_time_credits_balance, credits)
            if revoked <= 0:
                return None
            usage.one_time_credits_balance -= revoked
            return append_credit_log(
                session,
                usage,
                CreditLogType.REFUND_REVOKE,
                -revoked,
                notes,
                related_order_id,
            )

        entry = await self._run_in_transaction(
            "revoke one-time credits", user_id, work, retry=False
        )
        self.logger.info(
            "Revoked one-time credits",
            user_id=str(user_id),
            requested=credits,
            revoked=-entry.amount if entry else 0,
        )
        return entry

    async def revoke_subscription_credits(
        self,
        user_id: UUID,
        credits: int | None,
        log_type: CreditLogType,
        notes: str,
        clear_monthly: bool = False,
        clear_yearly: bool = False,
        related_order_id: UUID | None = None,
    ) -> CreditLog | None:
        """Take back subscription credits, optionally ending the allocation schedule.

        When ``credits`` is None a refund is sized to one period of the
        allocation being cleared (yearly first, then monthly). Nothing is
        written when no credits end up revoked.
        """
        if credits is not None and credits <= 0:
            return None

        async def work(session: AsyncSession) -> CreditLog | None:
            usage = await lock_usage_record(
                session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
            )
            if usage is None:
                return None

            requested = credits
            if requested is None:
                try:
                    requested = stored_period_credits(
                        usage.balance_metadata,
                        yearly=clear_yearly,
                        monthly=clear_monthly,
                    )
                except ValidationError as e:
                    self.logger.warning(
                        "Unreadable allocation details, nothing to revoke",
                        user_id=str(user_id),
                        error=str(e),
                    )
                    return None

            revoked = min(usage.subscription_credits_balance, requested)
            if revoked <= 0:
                return None

            metadata = usage.balance_metadata
            if clear_yearly:
                metadata = with_yearly_details(metadata, None)
            if clear_monthly:
                metadata = with_monthly_details(metadata, None)

            usage.subscription_credits_balance -= revoked
            usage.balance_metadata = metadata
            return append_credit_log(
                session, usage, log_type, -revoked, notes, related_order_id
            )

        entry = await self._run_in_transaction(
            "revoke subscription credits", user_id, work, retry=False
        )
        self.logger.info(
            "Revoked subscription credits",
            user_id=str(user_id),
            requested=credits,
            revoked=-entry.amount if entry else 0,
            log_type=log_type.value,
        )
        return entry

    async def revoke_remaining_subscription_credits(
        self, user_id: UUID, notes: str
    ) -> CreditLog | None:
        """Subscription ended: drop whatever subscription credits are left."""

        async def work(session: AsyncSession) -> CreditLog | None:
            usage = await lock_usage_record(
                session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
            )
            if usage is None or usage.subscription_credits_balance <= 0:
                return None
            revoked = usage.subscription_credits_balance
            usage.subscription_credits_balance = 0
            usage.balance_metadata = with_monthly_details(
                with_yearly_details(usage.balance_metadata, None), None
            )
            return append_credit_log(
                session,
                usage,
                CreditLogType.SUBSCRIPTION_ENDED_REVOKE,
                -revoked,
                notes,
            )

        entry = await self._run_in_transaction(
            "revoke remaining subscription credits", user_id, work, retry=False
        )
        self.logger.info(
            "Revoked remaining subscription credits",
            user_id=str(user_id),
            revoked=-entry.amount if entry else 0,
        )
        return entry
