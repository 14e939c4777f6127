# app/routers/posts.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.posts import VisitIn, VisitOut
from app.services.visits import record_visit

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.post("/{post_id}/visit", response_model=VisitOut, status_code=201)
async def visit(
    post_id: int,
    body: VisitIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await record_visit(
        db,
        user_id=current_user.id,
        post_id=post_id,
        qr_code=body.qr_code,
        latitude=body.latitude,
        longitude=body.longitude,
    )
