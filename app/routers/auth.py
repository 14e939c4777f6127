from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.auth import LoginIn, MerchantTokenOut, TokenOut
from app.services.admins import admin_login
from app.services.merchants import merchant_login

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/merchant/login", response_model=MerchantTokenOut)
async def login_merchant(body: LoginIn, db: AsyncSession = Depends(get_db)):
    return await merchant_login(db, email=body.email, password=body.password)


@router.post("/admin/login", response_model=TokenOut)
async def login_admin(body: LoginIn, db: AsyncSession = Depends(get_db)):
    return await admin_login(db, email=body.email, password=body.password)
