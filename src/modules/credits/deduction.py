"""Atomic credit deduction."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.base import BaseService
from src.database.models import CreditLogType
from src.modules.credits.allocation import AllocationCatchUpService
from src.modules.credits.constants import (
    DEDUCTION_SUCCESS_MESSAGE,
    DEFAULT_DEDUCTION_NOTES,
    INSUFFICIENT_CREDITS_MESSAGES,
    DeductionStrategy,
)
from src.modules.credits.exceptions import CreditValidationError
from src.modules.credits.models import DeductionResult
from src.modules.credits.store import append_credit_log, lock_usage_record
from src.utils.settings.credits import CreditSettings


@dataclass(frozen=True)
class DeductionSplit:
    from_subscription: int
    from_one_time: int


def plan_deduction(
    strategy: DeductionStrategy,
    amount: int,
    subscription_balance: int,
    one_time_balance: int,
) -> DeductionSplit | None:
    """Decide how much to take from each balance, or None if funds are short."""
    if strategy == DeductionStrategy.ONE_TIME_ONLY:
        if one_time_balance < amount:
            return None
        return DeductionSplit(from_subscription=0, from_one_time=amount)

    if strategy == DeductionStrategy.SUBSCRIPTION_ONLY:
        if subscription_balance < amount:
            return None
        return DeductionSplit(from_subscription=amount, from_one_time=0)

    if subscription_balance + one_time_balance < amount:
        return None

    if strategy == DeductionStrategy.PRIORITY_SUBSCRIPTION:
        from_subscription = min(subscription_balance, amount)
        return DeductionSplit(
            from_subscription=from_subscription,
            from_one_time=amount - from_subscription,
        )

    if strategy == DeductionStrategy.PRIORITY_ONE_TIME:
        from_one_time = min(one_time_balance, amount)
        return DeductionSplit(
            from_subscription=amount - from_one_time,
            from_one_time=from_one_time,
        )

    raise CreditValidationError(f"Unknown deduction strategy: {strategy}")


def validate_deduction_request(user_id: UUID | None, amount: int) -> None:
    if not user_id:
        raise CreditValidationError("User id is required")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise CreditValidationError("Amount to deduct must be an integer")
    if amount <= 0:
        raise CreditValidationError("Amount to deduct must be positive")


class CreditDeductionService(BaseService):
    """Debits credits under a caller-selected strategy and records the usage."""

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

    async def deduct_one_time_credits(
        self, user_id: UUID, amount: int, notes: str | None = None
    ) -> DeductionResult:
        return await self.deduct(
            user_id, amount, DeductionStrategy.ONE_TIME_ONLY, notes
        )

    async def deduct_subscription_credits(
        self, user_id: UUID, amount: int, notes: str | None = None
    ) -> DeductionResult:
        return await self.deduct(
            user_id, amount, DeductionStrategy.SUBSCRIPTION_ONLY, notes
        )

    async def deduct_credits_prioritizing_subscription(
        self, user_id: UUID, amount: int, notes: str | None = None
    ) -> DeductionResult:
        return await self.deduct(
            user_id, amount, DeductionStrategy.PRIORITY_SUBSCRIPTION, notes
        )

    async def deduct_credits_prioritizing_one_time(
        self, user_id: UUID, amount: int, notes: str | None = None
    ) -> DeductionResult:
        return await self.deduct(
            user_id, amount, DeductionStrategy.PRIORITY_ONE_TIME, notes
        )

    async def deduct(
        self,
        user_id: UUID,
        amount: int,
        strategy: DeductionStrategy,
        notes: str | None = None,
    ) -> DeductionResult:
        """
        Deduct credits in a single locked transaction:
        1. Catch up any due subscription allocations
        2. Lock the usage row and check funds for the strategy
        3. Update balances and append a feature_usage credit log

        Insufficient funds are returned as an unsuccessful result and leave
        balances untouched. Store errors propagate.
        """
        validate_deduction_request(user_id, amount)
        try:
            strategy = DeductionStrategy(strategy)
        except ValueError:
            raise CreditValidationError(f"Unknown deduction strategy: {strategy}")

        await self.allocation_service.catch_up(user_id)

        async with self.session_factory() as session:
            async with session.begin():
                usage = await lock_usage_record(
                    session, user_id, self.settings.CREDITS_LOCK_TIMEOUT_MS
                )
                if usage is None:
                    self.logger.info(
                        "Deduction rejected, no usage record",
                        user_id=str(user_id),
                        amount=amount,
                        strategy=strategy.value,
                    )
                    return DeductionResult.from_balances(
                        False, INSUFFICIENT_CREDITS_MESSAGES[strategy], 0, 0
                    )

                split = plan_deduction(
                    strategy,
                    amount,
                    usage.subscription_credits_balance,
                    usage.one_time_credits_balance,
                )
                if split is None:
                    self.logger.info(
                        "Deduction rejected, insufficient credits",
                        user_id=str(user_id),
                        amount=amount,
                        strategy=strategy.value,
                        subscription_balance=usage.subscription_credits_balance,
                        one_time_balance=usage.one_time_credits_balance,
                    )
                    return DeductionResult.from_balances(
                        False,
                        INSUFFICIENT_CREDITS_MESSAGES[strategy],
                        usage.one_time_credits_balance,
                        usage.subscription_credits_balance,
                    )

                usage.subscription_credits_balance -= split.from_subscription
                usage.one_time_credits_balance -= split.from_one_time
                append_credit_log(
                    session,
                    usage,
                    CreditLogType.FEATURE_USAGE,
                    -amount,
                    notes or DEFAULT_DEDUCTION_NOTES[strategy],
                )
                new_one_time = usage.one_time_credits_balance
                new_subscription = usage.subscription_credits_balance

        self.logger.info(
            "Credits deducted",
            user_id=str(user_id),
            amount=amount,
            strategy=strategy.value,
            from_subscription=split.from_subscription,
            from_one_time=split.from_one_time,
            subscription_balance=new_subscription,
            one_time_balance=new_one_time,
        )
        return DeductionResult.from_balances(
            True, DEDUCTION_SUCCESS_MESSAGE, new_one_time, new_subscription
        )
