# app/routers/admin_coupons.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import require_admin
from app.schemas.coupons import ExpireSweepOut
from app.services.coupons import expire_coupons

router = APIRouter(prefix="/admin/coupons", tags=["Admin - Coupons"])


@router.post("/expire", response_model=ExpireSweepOut)
async def expire(
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    count = await expire_coupons(db)
    return ExpireSweepOut(expired_count=count)
