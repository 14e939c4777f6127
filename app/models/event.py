from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Date, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.core.db import Base, BigIntPK
from app.models.enums import EventStatus, EventType, UserType, sql_in


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint(f"type IN ({sql_in(EventType)})", name="events_type_check"),
        CheckConstraint(f"status IN ({sql_in(EventStatus)})", name="events_status_check"),
        CheckConstraint("start_date <= end_date", name="events_date_range_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=EventStatus.UPCOMING.value)

    # Daily coupon window as business-local "HH:MM"
    coupon_start_time: Mapped[str] = mapped_column(String(5), nullable=False, default="00:00")
    coupon_end_time: Mapped[str] = mapped_column(String(5), nullable=False, default="20:00")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class UserEvent(Base):
    __tablename__ = "user_events"
    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="user_events_user_event_uq"),
        CheckConstraint(f"user_type IN ({sql_in(UserType)})", name="user_events_user_type_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    event_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("events.id"), nullable=False)
    user_type: Mapped[str] = mapped_column(String(16), nullable=False, default=UserType.PARTICIPANT.value)
    joined_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    # RUNNING events: set once when the runner shows their finisher code
    is_finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    finish_code: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
