from __future__ import annotations

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.security import ROLE_ADMIN, ROLE_MERCHANT, ROLE_USER, TokenError, access_claims
from app.models.enums import MerchantStatus
from app.models.merchant import Merchant
from app.models.user import AdminUser, User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/merchant/login")


def _claims(token: str) -> tuple[int, str]:
    if not token:
        raise UnauthorizedException("Missing bearer token")
    try:
        return access_claims(token)
    except TokenError as e:
        raise UnauthorizedException(str(e))


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    subject_id, role = _claims(token)
    if role != ROLE_USER:
        raise ForbiddenException("User only")

    user = await db.get(User, subject_id)
    if not user:
        raise UnauthorizedException("User not found")
    if not user.is_active:
        raise UnauthorizedException("User inactive")
    return user


async def get_current_merchant(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Merchant:
    subject_id, role = _claims(token)
    if role != ROLE_MERCHANT:
        raise ForbiddenException("Merchant only")

    merchant = await db.get(Merchant, subject_id)
    if not merchant:
        raise UnauthorizedException("Merchant not found")
    if merchant.status != MerchantStatus.APPROVED.value:
        raise ForbiddenException(f"Merchant status: {merchant.status}")
    return merchant


async def require_admin(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    subject_id, role = _claims(token)
    if role != ROLE_ADMIN:
        raise ForbiddenException("Admin only")

    admin = await db.get(AdminUser, subject_id)
    if not admin or not admin.is_active:
        raise UnauthorizedException("Admin not found")
    return admin
