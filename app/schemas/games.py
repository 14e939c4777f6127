# app/schemas/games.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.models.enums import GameType, MerchantCategory


# -------------------------
# Animation descriptors (presentation only)
# -------------------------
class RouletteAnimation(BaseModel):
    type: Literal["ROULETTE"] = "ROULETTE"
    final_angle: float
    duration_ms: int = 4000


class LadderAnimation(BaseModel):
    type: Literal["LADDER"] = "LADDER"
    selected_ladder: int = Field(..., ge=0, le=3)
    duration_ms: int = 3000


class CapsuleAnimation(BaseModel):
    type: Literal["CAPSULE"] = "CAPSULE"
    capsule_index: int = Field(..., ge=0, le=5)
    duration_ms: int = 2000


class CardAnimation(BaseModel):
    type: Literal["CARD"] = "CARD"
    card_index: int = Field(..., ge=0, le=3)
    duration_ms: int = 1500


class SlotAnimation(BaseModel):
    type: Literal["SLOT"] = "SLOT"
    slots: list[int] = Field(..., min_length=3, max_length=3)
    duration_ms: int = 3500


Animation = Annotated[
    Union[RouletteAnimation, LadderAnimation, CapsuleAnimation, CardAnimation, SlotAnimation],
    Field(discriminator="type"),
]


class GameInfo(BaseModel):
    visit_id: int
    game_type: GameType
    available_categories: list[MerchantCategory]


class GamePlayIn(BaseModel):
    game_type: GameType


class GamePlayOut(BaseModel):
    result_category: MerchantCategory
    animation: Animation


class SelectCategoryIn(BaseModel):
    category: MerchantCategory
    game_type: Optional[GameType] = None


class AvailableMerchantOut(BaseModel):
    id: int
    name: str
    address: Optional[str] = None


class IssuedCouponOut(BaseModel):
    coupon_id: int
    code: str
    category: str
    kind: str
    discount_amount: int
    valid_from: datetime
    valid_until: datetime
    available_merchants: list[AvailableMerchantOut]
