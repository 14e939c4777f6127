# app/services/coupon_redemption.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import local_day_start, utcnow
from app.core.exceptions import (
    AppException,
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from app.models.coupon import Coupon, CouponTemplate
from app.models.enums import CouponStatus
from app.models.event import Event
from app.models.merchant import Merchant
from app.models.user import User
from app.services.codes import mask_name
from app.services.coupons import log_coupon_event
from app.services.merchants import is_participating

logger = logging.getLogger(__name__)


async def _redemption_error(
    db: AsyncSession,
    *,
    coupon: Coupon,
    merchant: Merchant | None,
    now: datetime,
) -> AppException | None:
    """
    First rule the coupon breaks for this merchant, in fixed order:
    status, time window, category, participation. None when redeemable.
    """
    if coupon.status != CouponStatus.ACTIVE.value:
        return ConflictException("Coupon already used or expired", error_code="COUPON_NOT_ACTIVE")

    if now < coupon.valid_from or now > coupon.valid_until:
        return BadRequestException("Coupon not valid at this time", error_code="COUPON_NOT_VALID_NOW")

    if merchant is None or merchant.category != coupon.category:
        return ForbiddenException("Coupon not valid for this merchant category", error_code="WRONG_CATEGORY")

    if not await is_participating(db, event_id=coupon.event_id, merchant_id=merchant.id):
        return ForbiddenException("Merchant not participating in this event", error_code="NOT_PARTICIPATING")

    return None


async def validate_coupon(
    db: AsyncSession,
    *,
    merchant_id: int,
    code: str,
    now: datetime | None = None,
) -> dict:
    """Read-only precheck for the counter. Never raises for an unusable coupon."""
    now = now or utcnow()

    res = await db.execute(select(Coupon).where(Coupon.code == code))
    coupon = res.scalar_one_or_none()
    if coupon is None:
        return {"valid": False, "reason": "Coupon not found", "error_code": "NOT_FOUND"}

    merchant = await db.get(Merchant, merchant_id)
    err = await _redemption_error(db, coupon=coupon, merchant=merchant, now=now)
    if err is not None:
        return {"valid": False, "reason": err.detail, "error_code": err.error_code}

    user = await db.get(User, coupon.user_id)
    template = await db.get(CouponTemplate, coupon.template_id)

    return {
        "valid": True,
        "coupon": {
            "id": coupon.id,
            "name": template.name if template else None,
            "category": coupon.category,
            "kind": coupon.kind,
            "discount_amount": coupon.discount_amount,
            "customer_name": mask_name(user.name if user else None),
            "valid_until": coupon.valid_until,
        },
    }


async def use_coupon(
    db: AsyncSession,
    *,
    merchant_id: int,
    coupon_id: int,
    now: datetime | None = None,
) -> dict:
    """
    ACTIVE -> USED, exactly once.

    The UPDATE only matches while the row is still ACTIVE; of two concurrent
    redemptions one gets rowcount 1 and the other a Conflict.
    """
    now = now or utcnow()

    coupon = await db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundException("Coupon not found")

    merchant = await db.get(Merchant, merchant_id)
    err = await _redemption_error(db, coupon=coupon, merchant=merchant, now=now)
    if err is not None:
        raise err

    try:
        res = await db.execute(
            update(Coupon)
            .where(Coupon.id == coupon.id, Coupon.status == CouponStatus.ACTIVE.value)
            .values(status=CouponStatus.USED.value, used_at=now, merchant_id=merchant_id)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise ConflictException("Coupon already used", error_code="COUPON_ALREADY_USED")

        await log_coupon_event(
            db,
            coupon_id=coupon.id,
            actor_merchant_id=merchant_id,
            event_type="used",
            meta={"discount_amount": coupon.discount_amount},
        )
        await db.commit()

    except ConflictException:
        await db.rollback()
        logger.info("coupon %s redemption lost race (merchant=%s)", coupon_id, merchant_id)
        raise
    except Exception:
        await db.rollback()
        raise

    logger.info("coupon used id=%s merchant=%s amount=%s", coupon.id, merchant_id, coupon.discount_amount)

    return {
        "coupon_id": coupon.id,
        "used_at": now,
        "discount_amount": coupon.discount_amount,
    }


async def merchant_coupon_history(
    db: AsyncSession,
    *,
    merchant_id: int,
    event_id: int | None = None,
) -> list[dict]:
    stmt = (
        select(Coupon, User.name, Event.name)
        .join(User, User.id == Coupon.user_id)
        .join(Event, Event.id == Coupon.event_id)
        .where(Coupon.merchant_id == merchant_id, Coupon.status == CouponStatus.USED.value)
        .order_by(Coupon.used_at.desc(), Coupon.id.desc())
    )
    if event_id:
        stmt = stmt.where(Coupon.event_id == event_id)

    res = await db.execute(stmt)
    return [
        {
            "id": c.id,
            "kind": c.kind,
            "discount_amount": c.discount_amount,
            "used_at": c.used_at,
            "customer_name": mask_name(user_name),
            "event_name": str(event_name),
        }
        for c, user_name, event_name in res.all()
    ]


async def merchant_dashboard(
    db: AsyncSession,
    *,
    merchant_id: int,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    day_start = local_day_start(now)
    day_end = day_start + timedelta(days=1)

    res = await db.execute(
        select(
            func.count(Coupon.id),
            func.coalesce(func.sum(Coupon.discount_amount), 0),
            func.count(func.distinct(Coupon.user_id)),
        ).where(
            Coupon.merchant_id == merchant_id,
            Coupon.status == CouponStatus.USED.value,
            Coupon.used_at >= day_start,
            Coupon.used_at < day_end,
        )
    )
    used, total_discount, visitors = res.one()

    recent = await merchant_coupon_history(db, merchant_id=merchant_id)

    return {
        "today": {
            "coupons_used": int(used),
            "total_discount": int(total_discount),
            "visitors": int(visitors),
        },
        "recent_usage": recent[:5],
    }
