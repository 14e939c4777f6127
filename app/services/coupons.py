# app/services/coupons.py
from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import business_tz, local_day_start, parse_clock_time, to_naive_utc, utcnow
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    PoolExhaustedException,
)
from app.models.coupon import Coupon, CouponLog, CouponTemplate
from app.models.enums import CouponStatus, EventStatus, GameType, MerchantStatus
from app.models.event import Event
from app.models.game_log import GameLog
from app.models.merchant import EventMerchant, Merchant
from app.services.codes import COUPON_PREFIX, generate_redemption_code
from app.services.games import game_already_played, load_game_visit
from app.services.merchants import available_categories, available_merchants

logger = logging.getLogger(__name__)


def _merchant_out(m: Merchant) -> dict:
    return {"id": m.id, "name": m.name, "address": m.address}


async def log_coupon_event(
    db: AsyncSession,
    *,
    coupon_id: int,
    event_type: str,
    actor_user_id: int | None = None,
    actor_merchant_id: int | None = None,
    meta: dict | None = None,
):
    db.add(
        CouponLog(
            coupon_id=coupon_id,
            actor_user_id=actor_user_id,
            actor_merchant_id=actor_merchant_id,
            event_type=event_type,
            meta=meta or {},
        )
    )


def coupon_validity_window(event: Event, now: datetime, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """
    valid_from: start of the current business-local day.
    valid_until: event end date at the daily coupon cutoff, business-local.
    Both returned as naive UTC.
    """
    tz = tz or business_tz()
    valid_from = local_day_start(now, tz)
    cutoff = parse_clock_time(event.coupon_end_time)
    valid_until = to_naive_utc(datetime.combine(event.end_date, cutoff, tzinfo=tz))

    if valid_until <= now:
        raise BadRequestException("Coupon period for this event has ended", error_code="COUPON_PERIOD_ENDED")

    return valid_from, valid_until


def _has_capacity():
    return or_(
        CouponTemplate.max_issue_count.is_(None),
        CouponTemplate.issued_count < CouponTemplate.max_issue_count,
    )


async def _reserve_template(db: AsyncSession, *, event_id: int, category: str) -> CouponTemplate | None:
    """
    Take one unit from the first template of (event, category) with capacity.

    The increment is a conditional UPDATE so two issuers can never both pass
    the cap check; a zero rowcount means another request took the last unit.
    """
    res = await db.execute(
        select(CouponTemplate.id)
        .where(
            CouponTemplate.event_id == event_id,
            CouponTemplate.category == category,
            CouponTemplate.is_active.is_(True),
            _has_capacity(),
        )
        .order_by(CouponTemplate.id.asc())
    )

    for template_id in res.scalars().all():
        upd = await db.execute(
            update(CouponTemplate)
            .where(
                CouponTemplate.id == template_id,
                CouponTemplate.is_active.is_(True),
                _has_capacity(),
            )
            .values(issued_count=CouponTemplate.issued_count + 1)
            .execution_options(synchronize_session=False)
        )
        if upd.rowcount == 1:
            return await db.get(CouponTemplate, template_id, populate_existing=True)

        logger.info("coupon template %s filled up concurrently, trying next", template_id)

    return None


async def issue_coupon(
    db: AsyncSession,
    *,
    user_id: int,
    visit_id: int,
    category: str,
    game_type: str | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Commit a visit's chance event as a coupon.

    Counter increment, coupon insert and game log insert share one
    transaction. The unique game_logs.visit_id makes a second issuance for the
    same visit fail and roll back its increment.
    """
    now = now or utcnow()

    visit = await load_game_visit(db, user_id=user_id, visit_id=visit_id)

    if await game_already_played(db, visit.id):
        raise ConflictException("Coupon already issued for this visit", error_code="GAME_ALREADY_PLAYED")

    event = await db.get(Event, visit.event_id)
    if not event:
        raise NotFoundException("Event not found")
    if event.status != EventStatus.ACTIVE.value:
        raise BadRequestException("Event is not active", error_code="EVENT_NOT_ACTIVE")

    # The merchant roster may have changed since the draw
    if category not in await available_categories(db, event.id):
        raise PoolExhaustedException()

    valid_from, valid_until = coupon_validity_window(event, now)

    try:
        template = await _reserve_template(db, event_id=event.id, category=category)
        if template is None:
            raise PoolExhaustedException()

        coupon = Coupon(
            user_id=user_id,
            event_id=event.id,
            template_id=template.id,
            category=template.category,
            kind=template.kind,
            discount_amount=template.discount_amount,
            code=generate_redemption_code(COUPON_PREFIX),
            valid_from=valid_from,
            valid_until=valid_until,
            status=CouponStatus.ACTIVE.value,
        )
        db.add(coupon)
        await db.flush()

        db.add(
            GameLog(
                user_id=user_id,
                event_id=event.id,
                visit_id=visit.id,
                game_type=(game_type or GameType.ROULETTE.value),
                result_category=category,
                coupon_id=coupon.id,
            )
        )

        await log_coupon_event(
            db,
            coupon_id=coupon.id,
            actor_user_id=user_id,
            event_type="issued",
            meta={"template_id": template.id, "visit_id": visit.id},
        )

        await db.flush()
        await db.commit()

    except PoolExhaustedException:
        await db.rollback()
        logger.info("coupon pool exhausted event=%s category=%s", event.id, category)
        raise
    except IntegrityError:
        await db.rollback()
        raise ConflictException("Coupon already issued for this visit", error_code="GAME_ALREADY_PLAYED")
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "coupon issued id=%s user=%s visit=%s template=%s",
        coupon.id, user_id, visit.id, template.id,
    )

    merchants = await available_merchants(db, event.id, coupon.category)

    return {
        "coupon_id": coupon.id,
        "code": coupon.code,
        "category": coupon.category,
        "kind": coupon.kind,
        "discount_amount": coupon.discount_amount,
        "valid_from": coupon.valid_from,
        "valid_until": coupon.valid_until,
        "available_merchants": [_merchant_out(m) for m in merchants],
    }


async def list_my_coupons(
    db: AsyncSession,
    *,
    user_id: int,
    event_id: int | None = None,
    status: str | None = None,
    category: str | None = None,
) -> list[dict]:
    # usable merchants per (event, category)
    usable = (
        select(
            EventMerchant.event_id.label("event_id"),
            Merchant.category.label("category"),
            func.count(Merchant.id).label("merchant_count"),
        )
        .join(Merchant, Merchant.id == EventMerchant.merchant_id)
        .where(EventMerchant.is_active.is_(True), Merchant.status == MerchantStatus.APPROVED.value)
        .group_by(EventMerchant.event_id, Merchant.category)
        .subquery()
    )

    stmt = (
        select(Coupon, CouponTemplate.name, Event.name, func.coalesce(usable.c.merchant_count, 0))
        .join(CouponTemplate, CouponTemplate.id == Coupon.template_id)
        .join(Event, Event.id == Coupon.event_id)
        .outerjoin(usable, and_(usable.c.event_id == Coupon.event_id, usable.c.category == Coupon.category))
        .where(Coupon.user_id == user_id)
        .order_by(Coupon.created_at.desc(), Coupon.id.desc())
    )
    if event_id:
        stmt = stmt.where(Coupon.event_id == event_id)
    if status:
        stmt = stmt.where(Coupon.status == status)
    if category:
        stmt = stmt.where(Coupon.category == category)

    res = await db.execute(stmt)
    return [
        {
            "id": coupon.id,
            "name": str(template_name),
            "event_id": coupon.event_id,
            "event_name": str(event_name),
            "category": coupon.category,
            "kind": coupon.kind,
            "discount_amount": coupon.discount_amount,
            "status": coupon.status,
            "valid_from": coupon.valid_from,
            "valid_until": coupon.valid_until,
            "used_at": coupon.used_at,
            "merchant_count": int(merchant_count),
        }
        for coupon, template_name, event_name, merchant_count in res.all()
    ]

async def _own_coupon(db: AsyncSession, *, user_id: int, coupon_id: int) -> Coupon:
    coupon = await db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFoundException("Coupon not found")
    if coupon.user_id != user_id:
        raise ForbiddenException("Not your coupon")
    return coupon


async def get_my_coupon(db: AsyncSession, *, user_id: int, coupon_id: int) -> dict:
    coupon = await _own_coupon(db, user_id=user_id, coupon_id=coupon_id)
    template = await db.get(CouponTemplate, coupon.template_id)

    used_at_merchant = None
    if coupon.merchant_id is not None:
        m = await db.get(Merchant, coupon.merchant_id)
        if m:
            used_at_merchant = _merchant_out(m)

    merchants = await available_merchants(db, coupon.event_id, coupon.category)

    return {
        "id": coupon.id,
        "name": template.name if template else None,
        "description": template.description if template else None,
        "event_id": coupon.event_id,
        "category": coupon.category,
        "kind": coupon.kind,
        "discount_amount": coupon.discount_amount,
        "status": coupon.status,
        "valid_from": coupon.valid_from,
        "valid_until": coupon.valid_until,
        "used_at": coupon.used_at,
        "used_at_merchant": used_at_merchant,
        "available_merchants": [_merchant_out(m) for m in merchants],
    }


async def get_coupon_code(
    db: AsyncSession,
    *,
    user_id: int,
    coupon_id: int,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    coupon = await _own_coupon(db, user_id=user_id, coupon_id=coupon_id)

    if coupon.status != CouponStatus.ACTIVE.value:
        raise BadRequestException("Coupon is not active", error_code="COUPON_NOT_ACTIVE")
    if now < coupon.valid_from:
        raise BadRequestException("Coupon not valid yet", error_code="COUPON_NOT_VALID_NOW")
    if now > coupon.valid_until:
        raise BadRequestException("Coupon has expired", error_code="COUPON_EXPIRED")

    return {"coupon_id": coupon.id, "code": coupon.code, "valid_until": coupon.valid_until}


async def expire_coupons(db: AsyncSession, *, now: datetime | None = None) -> int:
    """
    Batch sweep ACTIVE -> EXPIRED for coupons past valid_until.

    Idempotent and only narrows ACTIVE rows, so it is safe next to live
    redemptions: a coupon used in the meantime no longer matches.
    """
    now = now or utcnow()

    try:
        res = await db.execute(
            update(Coupon)
            .where(Coupon.status == CouponStatus.ACTIVE.value, Coupon.valid_until < now)
            .values(status=CouponStatus.EXPIRED.value)
            .returning(Coupon.id)
            .execution_options(synchronize_session=False)
        )
        expired_ids = [int(x) for x in res.scalars().all()]

        for coupon_id in expired_ids:
            await log_coupon_event(db, coupon_id=coupon_id, event_type="expired")

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("coupon sweep expired %s coupons", len(expired_ids))
    return len(expired_ids)
