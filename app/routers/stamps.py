# app/routers/stamps.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.rewards import (
    ClaimRewardIn,
    RedeemRewardIn,
    RewardClaimOut,
    RewardOut,
    RewardRedeemOut,
    RewardTemplateOut,
    StampBoardOut,
)
from app.services.rewards import claim_reward, compute_claimable, list_my_rewards, redeem_reward, stamp_board

router = APIRouter(tags=["Stamps & Rewards"])


@router.get("/events/{event_id}/stamps", response_model=StampBoardOut)
async def my_stamps(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await stamp_board(db, user_id=current_user.id, event_id=event_id)


@router.get("/events/{event_id}/rewards/claimable", response_model=list[RewardTemplateOut])
async def claimable(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await compute_claimable(db, user_id=current_user.id, event_id=event_id)


@router.get("/events/{event_id}/rewards", response_model=list[RewardOut])
async def my_rewards(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await list_my_rewards(db, user_id=current_user.id, event_id=event_id)


@router.post("/rewards/claim", response_model=RewardClaimOut, status_code=201)
async def claim(
    body: ClaimRewardIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await claim_reward(db, user_id=current_user.id, template_id=body.template_id)


@router.post("/rewards/{reward_id}/redeem", response_model=RewardRedeemOut)
async def redeem(
    reward_id: int,
    body: RedeemRewardIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await redeem_reward(db, user_id=current_user.id, reward_id=reward_id, post_id=body.post_id)
