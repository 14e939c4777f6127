# app/schemas/events.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import EventStatus, EventType, UserType

_CLOCK = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: EventType
    start_date: date
    end_date: date
    region: Optional[str] = None
    description: Optional[str] = None
    coupon_start_time: str = Field("00:00", pattern=_CLOCK)
    coupon_end_time: str = Field("20:00", pattern=_CLOCK)


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    region: Optional[str]
    description: Optional[str]
    start_date: date
    end_date: date
    status: str
    coupon_start_time: str
    coupon_end_time: str


class EventDetailOut(EventOut):
    posts_count: int
    participants_count: int


class JoinEventIn(BaseModel):
    user_type: UserType


class JoinEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    user_type: str
    joined_at: datetime


class FinishIn(BaseModel):
    finish_code: str = Field(..., min_length=1, max_length=128)


class FinishOut(BaseModel):
    verified: bool
    finished_at: datetime


class MyEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_event_id: int
    user_type: str
    is_finished: bool
    joined_at: datetime
    event: EventOut


class RewardBrief(BaseModel):
    id: int
    tier: str
    status: str


class MyEventStatusOut(BaseModel):
    joined_at: datetime
    user_type: str
    is_finished: bool
    finished_at: Optional[datetime]
    visited_posts: int
    total_posts: int
    active_coupons: int
    stamps: int
    rewards: list[RewardBrief]
