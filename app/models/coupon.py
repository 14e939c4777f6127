# app/models/coupon.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.core.db import Base, BigIntPK
from app.models.enums import CouponKind, CouponStatus, MerchantCategory, sql_in


class CouponTemplate(Base):
    __tablename__ = "coupon_templates"
    __table_args__ = (
        CheckConstraint(f"category IN ({sql_in(MerchantCategory)})", name="coupon_templates_category_check"),
        CheckConstraint(f"kind IN ({sql_in(CouponKind)})", name="coupon_templates_kind_check"),
        CheckConstraint("issued_count >= 0", name="coupon_templates_issued_count_check"),
        CheckConstraint(
            "max_issue_count IS NULL OR issued_count <= max_issue_count",
            name="coupon_templates_cap_check",
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    event_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("events.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    discount_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # NULL = unlimited
    max_issue_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    issued_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(CouponStatus)})", name="coupons_status_check"),
        CheckConstraint("valid_from <= valid_until", name="coupons_validity_check"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("events.id"), nullable=False)
    template_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("coupon_templates.id"), nullable=False)

    # Snapshot of the template at issuance time
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    discount_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    # Bearer credential shown as QR at the counter
    code: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)

    valid_from: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=CouponStatus.ACTIVE.value)

    merchant_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("merchants.id"), nullable=True)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class CouponLog(Base):
    """Append-only coupon timeline: issued, used, expired."""

    __tablename__ = "coupon_logs"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    coupon_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    actor_user_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    actor_merchant_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    event_type: Mapped[str] = mapped_column(String(32), nullable=False)  # issued / used / expired
    meta: Mapped[dict] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
