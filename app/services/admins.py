from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.exceptions import UnauthorizedException
from app.core.security import ROLE_ADMIN, issue_token_pair, verify_password
from app.models.user import AdminUser


async def admin_login(db: AsyncSession, *, email: str, password: str) -> dict:
    res = await db.execute(select(AdminUser).where(AdminUser.email == email))
    admin = res.scalar_one_or_none()

    if not admin or not admin.is_active or not verify_password(password, admin.password_hash):
        raise UnauthorizedException("Invalid credentials")

    admin.last_login_at = utcnow()
    await db.commit()

    return issue_token_pair(subject_id=admin.id, role=ROLE_ADMIN)
