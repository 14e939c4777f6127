# app/routers/admin_templates.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import require_admin
from app.schemas.coupons import CouponTemplateActiveUpdate, CouponTemplateCreate, CouponTemplateOut
from app.schemas.rewards import RewardTemplateCreate, RewardTemplateOut
from app.services.templates import (
    create_coupon_template,
    create_reward_template,
    list_coupon_templates,
    list_reward_templates,
    set_coupon_template_active,
)

router = APIRouter(prefix="/admin", tags=["Admin - Templates"])


@router.post("/events/{event_id}/coupon-templates", response_model=CouponTemplateOut, status_code=201)
async def create_coupon_tpl(
    event_id: int,
    body: CouponTemplateCreate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await create_coupon_template(
        db,
        event_id=event_id,
        name=body.name,
        category=body.category.value,
        kind=body.kind.value,
        discount_amount=body.discount_amount,
        max_issue_count=body.max_issue_count,
        description=body.description,
    )


@router.get("/events/{event_id}/coupon-templates", response_model=list[CouponTemplateOut])
async def list_coupon_tpls(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_coupon_templates(db, event_id=event_id)


@router.patch("/coupon-templates/{template_id}/active", response_model=CouponTemplateOut)
async def update_coupon_tpl_active(
    template_id: int,
    body: CouponTemplateActiveUpdate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await set_coupon_template_active(db, template_id=template_id, is_active=body.is_active)


@router.post("/events/{event_id}/reward-templates", response_model=RewardTemplateOut, status_code=201)
async def create_reward_tpl(
    event_id: int,
    body: RewardTemplateCreate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await create_reward_template(
        db,
        event_id=event_id,
        name=body.name,
        tier=body.tier.value,
        required_stamps=body.required_stamps,
        total_quantity=body.total_quantity,
        description=body.description,
    )


@router.get("/events/{event_id}/reward-templates", response_model=list[RewardTemplateOut])
async def list_reward_tpls(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_reward_templates(db, event_id=event_id)
