# app/routers/games.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.games import GamePlayIn, GamePlayOut, IssuedCouponOut, SelectCategoryIn
from app.services.coupons import issue_coupon
from app.services.games import resolve_game

router = APIRouter(prefix="/games", tags=["Games"])


@router.post("/{visit_id}/play", response_model=GamePlayOut)
async def play(
    visit_id: int,
    body: GamePlayIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await resolve_game(db, user_id=current_user.id, visit_id=visit_id, game_type=body.game_type)


@router.post("/{visit_id}/select-category", response_model=IssuedCouponOut, status_code=201)
async def select_category(
    visit_id: int,
    body: SelectCategoryIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await issue_coupon(
        db,
        user_id=current_user.id,
        visit_id=visit_id,
        category=body.category.value,
        game_type=body.game_type.value if body.game_type else None,
    )
