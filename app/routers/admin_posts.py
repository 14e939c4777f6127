# app/routers/admin_posts.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import require_admin
from app.schemas.posts import PostActiveUpdate, PostAdminOut, PostCreate
from app.services.posts import create_post, set_post_active

router = APIRouter(prefix="/admin", tags=["Admin - Posts"])


@router.post("/events/{event_id}/posts", response_model=PostAdminOut, status_code=201)
async def create(
    event_id: int,
    body: PostCreate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await create_post(
        db,
        event_id=event_id,
        name=body.name,
        category=body.category.value,
        description=body.description,
        address=body.address,
        latitude=body.latitude,
        longitude=body.longitude,
        is_reward_post=body.is_reward_post,
        merchant_id=body.merchant_id,
        qr_code=body.qr_code,
    )


@router.patch("/posts/{post_id}/active", response_model=PostAdminOut)
async def update_active(
    post_id: int,
    body: PostActiveUpdate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await set_post_active(db, post_id=post_id, is_active=body.is_active)
