# app/routers/admin_merchants.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import require_admin
from app.models.enums import MerchantStatus
from app.models.merchant import Merchant
from app.schemas.merchants import MerchantOut, MerchantStatusUpdate
from app.services.merchants import set_merchant_status

router = APIRouter(prefix="/admin/merchants", tags=["Admin - Merchants"])


@router.get("", response_model=list[MerchantOut])
async def list_merchants(
    status: MerchantStatus | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    stmt = select(Merchant).order_by(Merchant.created_at.desc())
    if status:
        stmt = stmt.where(Merchant.status == status.value)

    res = await db.execute(stmt.limit(500))
    return res.scalars().all()


@router.patch("/{merchant_id}/status", response_model=MerchantOut)
async def update_status(
    merchant_id: int,
    body: MerchantStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await set_merchant_status(db, merchant_id=merchant_id, status=body.status)
