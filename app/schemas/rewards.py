# app/schemas/rewards.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import RewardTier


class RewardTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    tier: RewardTier
    required_stamps: int = Field(..., ge=1)
    total_quantity: int = Field(..., ge=0)
    description: Optional[str] = None


class RewardTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    name: str
    description: Optional[str]
    tier: str
    required_stamps: int
    total_quantity: int
    remaining_quantity: int
    is_active: bool


class ClaimRewardIn(BaseModel):
    template_id: int


class RewardClaimOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tier: str
    code: str
    status: str


class RedeemRewardIn(BaseModel):
    post_id: int


class RewardRedeemOut(BaseModel):
    reward_id: int
    redeemed_at: datetime
    reward_name: Optional[str]


class RewardOut(BaseModel):
    id: int
    tier: str
    name: str
    description: Optional[str]
    code: str
    status: str
    redeem_post_id: Optional[int]
    redeemed_at: Optional[datetime]
    created_at: datetime


class StampItem(BaseModel):
    post_id: int
    post_name: str
    post_category: str
    collected_at: datetime


class NextReward(BaseModel):
    tier: str
    name: str
    required_stamps: int
    remaining: int


class ClaimableReward(BaseModel):
    template_id: int
    tier: str
    name: str
    required_stamps: int


class StampBoardOut(BaseModel):
    total_stamps: int
    stamps: list[StampItem]
    next_reward: Optional[NextReward]
    claimable_rewards: list[ClaimableReward]
