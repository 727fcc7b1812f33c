"""Append-only credit ledger entries."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class CreditLogType(str, Enum):
    FEATURE_USAGE = "feature_usage"
    ONE_TIME_PURCHASE = "one_time_purchase"
    SUBSCRIPTION_GRANT = "subscription_grant"
    REFUND_REVOKE = "refund_revoke"
    SUBSCRIPTION_ENDED_REVOKE = "subscription_ended_revoke"
    WELCOME_BONUS = "welcome_bonus"


class CreditLog(Base):
    __tablename__ = "credit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    type: Mapped[CreditLogType] = mapped_column(String, index=True, nullable=False)
    # Signed: negative for deductions and revocations
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    one_time_balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    subscription_balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    related_order_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, index=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
