"""Usage and subscription store access.

Every helper takes an open session; callers own the transaction scope.
"""

from uuid import UUID

from sqlalchemy import exists, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import CreditLog, CreditLogType, Subscription, UsageRecord
from src.modules.credits.constants import MONTHLY_ALLOCATION_KEY, YEARLY_ALLOCATION_KEY
from src.modules.credits.models import MonthlyAllocationDetails, YearlyAllocationDetails


async def _apply_lock_timeout(session: AsyncSession, lock_timeout_ms: int) -> None:
    """Bound lock waits for the rest of the transaction (PostgreSQL only)."""
    if session.get_bind().dialect.name != "postgresql":
        return
    await session.execute(text(f"SET LOCAL lock_timeout = {int(lock_timeout_ms)}"))


async def lock_usage_record(
    session: AsyncSession, user_id: UUID, lock_timeout_ms: int
) -> UsageRecord | None:
    """Load the user's usage row with an exclusive row lock."""
    await _apply_lock_timeout(session, lock_timeout_ms)
    stmt = (
        select(UsageRecord)
        .where(UsageRecord.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def lock_or_create_usage_record(
    session: AsyncSession, user_id: UUID, lock_timeout_ms: int
) -> UsageRecord:
    """Lock the user's usage row, inserting an empty one first if needed."""
    usage = await lock_usage_record(session, user_id, lock_timeout_ms)
    if usage is not None:
        return usage

    try:
        async with session.begin_nested():
            session.add(
                UsageRecord(
                    user_id=user_id,
                    subscription_credits_balance=0,
                    one_time_credits_balance=0,
                    balance_metadata={},
                )
            )
    except IntegrityError:
        # A concurrent request created the row first
        pass

    usage = await lock_usage_record(session, user_id, lock_timeout_ms)
    if usage is None:
        raise RuntimeError(f"Usage record for user {user_id} could not be created")
    return usage


async def get_usage_record(session: AsyncSession, user_id: UUID) -> UsageRecord | None:
    result = await session.execute(
        select(UsageRecord).where(UsageRecord.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_latest_subscription(
    session: AsyncSession, user_id: UUID
) -> Subscription | None:
    """Get the user's most recently created subscription, whatever its status."""
    stmt = (
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def has_credit_log_of_type(
    session: AsyncSession, user_id: UUID, log_type: CreditLogType
) -> bool:
    stmt = select(
        exists().where(CreditLog.user_id == user_id, CreditLog.type == log_type.value)
    )
    result = await session.execute(stmt)
    return bool(result.scalar())


def append_credit_log(
    session: AsyncSession,
    usage: UsageRecord,
    log_type: CreditLogType,
    amount: int,
    notes: str | None,
    related_order_id: UUID | None = None,
) -> CreditLog:
    """Record a balance change using the usage row's current (post-change) state."""
    entry = CreditLog(
        user_id=usage.user_id,
        type=log_type.value,
        amount=amount,
        notes=notes,
        one_time_balance_after=usage.one_time_credits_balance,
        subscription_balance_after=usage.subscription_credits_balance,
        related_order_id=related_order_id,
    )
    session.add(entry)
    return entry


def read_yearly_details(metadata: dict | None) -> YearlyAllocationDetails | None:
    raw = (metadata or {}).get(YEARLY_ALLOCATION_KEY)
    if not raw:
        return None
    return YearlyAllocationDetails.model_validate(raw)


def read_monthly_details(metadata: dict | None) -> MonthlyAllocationDetails | None:
    raw = (metadata or {}).get(MONTHLY_ALLOCATION_KEY)
    if not raw:
        return None
    return MonthlyAllocationDetails.model_validate(raw)


def with_yearly_details(
    metadata: dict | None, details: YearlyAllocationDetails | None
) -> dict:
    """Return a new metadata dict; JSON columns only persist on reassignment."""
    updated = dict(metadata or {})
    if details is None:
        updated.pop(YEARLY_ALLOCATION_KEY, None)
    else:
        updated[YEARLY_ALLOCATION_KEY] = details.model_dump(mode="json")
    return updated


def with_monthly_details(
    metadata: dict | None, details: MonthlyAllocationDetails | None
) -> dict:
    updated = dict(metadata or {})
    if details is None:
        updated.pop(MONTHLY_ALLOCATION_KEY, None)
    else:
        updated[MONTHLY_ALLOCATION_KEY] = details.model_dump(mode="json")
    return updated


def stored_period_credits(
    metadata: dict | None, yearly: bool = False, monthly: bool = False
) -> int:
    """Credits of one allocation period, read from the yearly or monthly details."""
    details: YearlyAllocationDetails | MonthlyAllocationDetails | None = None
    if yearly:
        details = read_yearly_details(metadata)
    if details is None and monthly:
        details = read_monthly_details(metadata)
    return details.monthly_credits if details else 0
