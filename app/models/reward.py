from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.core.db import Base, BigIntPK
from app.models.enums import RewardStatus, RewardTier, sql_in


class RewardTemplate(Base):
    __tablename__ = "reward_templates"
    __table_args__ = (
        CheckConstraint(f"tier IN ({sql_in(RewardTier)})", name="reward_templates_tier_check"),
        CheckConstraint("remaining_quantity >= 0", name="reward_templates_remaining_check"),
        CheckConstraint("remaining_quantity <= total_quantity", name="reward_templates_total_check"),
        CheckConstraint("required_stamps >= 1", name="reward_templates_required_stamps_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    event_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("events.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tier: Mapped[str] = mapped_column(String(16), nullable=False)
    required_stamps: Mapped[int] = mapped_column(Integer, nullable=False)

    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Reward(Base):
    __tablename__ = "rewards"
    __table_args__ = (
        UniqueConstraint("user_id", "event_id", "tier", name="rewards_user_event_tier_uq"),
        CheckConstraint(f"status IN ({sql_in(RewardStatus)})", name="rewards_status_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    event_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("events.id"), nullable=False)
    template_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("reward_templates.id"), nullable=False)
    tier: Mapped[str] = mapped_column(String(16), nullable=False)

    code: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RewardStatus.AVAILABLE.value)

    redeem_post_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("posts.id"), nullable=True)
    redeemed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
