# app/routers/merchants.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_merchant
from app.models.merchant import Merchant
from app.schemas.coupons import (
    CouponHistoryItem,
    CouponUseOut,
    CouponValidateIn,
    CouponValidateOut,
    MerchantDashboardOut,
)
from app.schemas.merchants import MerchantRegisterIn, MerchantRegisterOut, MyMerchantOut
from app.services.coupon_redemption import (
    merchant_coupon_history,
    merchant_dashboard,
    use_coupon,
    validate_coupon,
)
from app.services.merchants import get_my_merchant, register_merchant

router = APIRouter(prefix="/merchants", tags=["Merchants"])


@router.post("/register", response_model=MerchantRegisterOut, status_code=201)
async def register(body: MerchantRegisterIn, db: AsyncSession = Depends(get_db)):
    merchant = await register_merchant(
        db,
        store_name=body.store_name,
        category=body.category.value,
        business_number=body.business_number,
        owner_name=body.owner_name,
        email=body.email,
        password=body.password,
        address=body.address,
        phone=body.phone,
    )
    return MerchantRegisterOut(merchant_id=merchant.id, status=merchant.status)


@router.get("/me", response_model=MyMerchantOut)
async def me(
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(get_current_merchant),
):
    return await get_my_merchant(db, merchant)


@router.get("/me/dashboard", response_model=MerchantDashboardOut)
async def dashboard(
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(get_current_merchant),
):
    return await merchant_dashboard(db, merchant_id=merchant.id)


@router.post("/coupons/validate", response_model=CouponValidateOut)
async def validate(
    body: CouponValidateIn,
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(get_current_merchant),
):
    return await validate_coupon(db, merchant_id=merchant.id, code=body.code)


@router.post("/coupons/{coupon_id}/use", response_model=CouponUseOut)
async def use(
    coupon_id: int,
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(get_current_merchant),
):
    return await use_coupon(db, merchant_id=merchant.id, coupon_id=coupon_id)


@router.get("/coupons/history", response_model=list[CouponHistoryItem])
async def history(
    event_id: int | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    merchant: Merchant = Depends(get_current_merchant),
):
    return await merchant_coupon_history(db, merchant_id=merchant.id, event_id=event_id)
