"""Per-user credit balance model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, DateTime, Integer, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UsageRecord(Base):
    __tablename__ = "usage"
    __table_args__ = (
        CheckConstraint(
            "subscription_credits_balance >= 0",
            name="ck_usage_subscription_credits_non_negative",
        ),
        CheckConstraint(
            "one_time_credits_balance >= 0",
            name="ck_usage_one_time_credits_non_negative",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, index=True, nullable=False
    )
    subscription_credits_balance: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    one_time_credits_balance: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    # Holds yearly_allocation_details / monthly_allocation_details
    balance_metadata: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
