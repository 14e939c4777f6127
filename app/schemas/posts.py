# app/schemas/posts.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import PostCategory
from app.schemas.games import GameInfo


class PostCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: PostCategory
    description: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_reward_post: bool = False
    merchant_id: Optional[int] = None
    qr_code: Optional[str] = Field(None, min_length=4, max_length=128)


class PostActiveUpdate(BaseModel):
    is_active: bool


class PostAdminOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    merchant_id: Optional[int]
    name: str
    category: str
    qr_code: str
    is_reward_post: bool
    is_active: bool


class PostOut(BaseModel):
    id: int
    name: str
    category: str
    description: Optional[str]
    address: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    is_reward_post: bool
    merchant_id: Optional[int]
    is_visited: Optional[bool] = None


class VisitIn(BaseModel):
    qr_code: str
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class VisitOut(BaseModel):
    visit_id: int
    visited_at: datetime
    stamp_collected: bool
    stamp_count: int
    game: GameInfo
