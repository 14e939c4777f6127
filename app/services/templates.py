# app/services/templates.py
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, NotFoundException
from app.models.coupon import CouponTemplate
from app.models.event import Event
from app.models.reward import RewardTemplate

logger = logging.getLogger(__name__)


async def _require_event(db: AsyncSession, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundException("Event not found")
    return event


async def create_coupon_template(
    db: AsyncSession,
    *,
    event_id: int,
    name: str,
    category: str,
    kind: str,
    discount_amount: int = 0,
    max_issue_count: int | None = None,
    description: str | None = None,
) -> CouponTemplate:
    await _require_event(db, event_id)

    if max_issue_count is not None and max_issue_count < 0:
        raise BadRequestException("max_issue_count must be >= 0")

    tpl = CouponTemplate(
        event_id=event_id,
        name=name,
        description=description,
        category=category,
        kind=kind,
        discount_amount=discount_amount,
        max_issue_count=max_issue_count,
        issued_count=0,
        is_active=True,
    )
    db.add(tpl)
    await db.commit()
    await db.refresh(tpl)
    logger.info("coupon template created id=%s event=%s cap=%s", tpl.id, event_id, max_issue_count)
    return tpl


async def set_coupon_template_active(db: AsyncSession, *, template_id: int, is_active: bool) -> CouponTemplate:
    tpl = await db.get(CouponTemplate, template_id)
    if not tpl:
        raise NotFoundException("Coupon template not found")
    tpl.is_active = is_active
    await db.commit()
    await db.refresh(tpl)
    return tpl


async def list_coupon_templates(db: AsyncSession, *, event_id: int) -> list[CouponTemplate]:
    res = await db.execute(
        select(CouponTemplate).where(CouponTemplate.event_id == event_id).order_by(CouponTemplate.id.asc())
    )
    return list(res.scalars().all())


async def create_reward_template(
    db: AsyncSession,
    *,
    event_id: int,
    name: str,
    tier: str,
    required_stamps: int,
    total_quantity: int,
    description: str | None = None,
) -> RewardTemplate:
    await _require_event(db, event_id)

    if required_stamps < 1:
        raise BadRequestException("required_stamps must be >= 1")
    if total_quantity < 0:
        raise BadRequestException("total_quantity must be >= 0")

    tpl = RewardTemplate(
        event_id=event_id,
        name=name,
        description=description,
        tier=tier,
        required_stamps=required_stamps,
        total_quantity=total_quantity,
        remaining_quantity=total_quantity,
        is_active=True,
    )
    db.add(tpl)
    await db.commit()
    await db.refresh(tpl)
    logger.info("reward template created id=%s event=%s tier=%s", tpl.id, event_id, tier)
    return tpl


async def list_reward_templates(db: AsyncSession, *, event_id: int) -> list[RewardTemplate]:
    res = await db.execute(
        select(RewardTemplate).where(RewardTemplate.event_id == event_id).order_by(RewardTemplate.required_stamps.asc())
    )
    return list(res.scalars().all())
