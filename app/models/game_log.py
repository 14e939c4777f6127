from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.core.db import Base, BigIntPK
from app.models.enums import GameType, sql_in


class GameLog(Base):
    """One row per visit whose chance event has been consumed."""

    __tablename__ = "game_logs"
    __table_args__ = (
        CheckConstraint(f"game_type IN ({sql_in(GameType)})", name="game_logs_game_type_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    event_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("events.id"), nullable=False)
    visit_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("visits.id"), unique=True, nullable=False)

    game_type: Mapped[str] = mapped_column(String(16), nullable=False)
    result_category: Mapped[str] = mapped_column(String(16), nullable=False)
    coupon_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("coupons.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
