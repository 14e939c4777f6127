# app/routers/coupons.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user
from app.models.enums import CouponStatus, MerchantCategory
from app.models.user import User
from app.schemas.coupons import CouponCodeOut, CouponDetailOut, CouponListItem
from app.services.coupons import get_coupon_code, get_my_coupon, list_my_coupons

router = APIRouter(prefix="/coupons", tags=["Coupons"])


@router.get("", response_model=list[CouponListItem])
async def my_coupons(
    event_id: int | None = Query(default=None),
    status: CouponStatus | None = Query(default=None),
    category: MerchantCategory | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await list_my_coupons(
        db,
        user_id=current_user.id,
        event_id=event_id,
        status=status.value if status else None,
        category=category.value if category else None,
    )


@router.get("/{coupon_id}", response_model=CouponDetailOut)
async def my_coupon(
    coupon_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await get_my_coupon(db, user_id=current_user.id, coupon_id=coupon_id)


@router.get("/{coupon_id}/code", response_model=CouponCodeOut)
async def my_coupon_code(
    coupon_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await get_coupon_code(db, user_id=current_user.id, coupon_id=coupon_id)
