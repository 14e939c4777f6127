# app/schemas/coupons.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import CouponKind, MerchantCategory
from app.schemas.games import AvailableMerchantOut


# -------------------------
# Admin
# -------------------------
class CouponTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: MerchantCategory
    kind: CouponKind
    discount_amount: int = Field(0, ge=0)
    max_issue_count: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None


class CouponTemplateActiveUpdate(BaseModel):
    is_active: bool


class CouponTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    name: str
    description: Optional[str]
    category: str
    kind: str
    discount_amount: int
    max_issue_count: Optional[int]
    issued_count: int
    is_active: bool


class ExpireSweepOut(BaseModel):
    expired_count: int


# -------------------------
# User
# -------------------------
class CouponListItem(BaseModel):
    id: int
    name: str
    event_id: int
    event_name: str
    category: str
    kind: str
    discount_amount: int
    status: str
    valid_from: datetime
    valid_until: datetime
    used_at: Optional[datetime]
    merchant_count: int


class CouponDetailOut(BaseModel):
    id: int
    name: Optional[str]
    description: Optional[str]
    event_id: int
    category: str
    kind: str
    discount_amount: int
    status: str
    valid_from: datetime
    valid_until: datetime
    used_at: Optional[datetime]
    used_at_merchant: Optional[AvailableMerchantOut]
    available_merchants: list[AvailableMerchantOut]


class CouponCodeOut(BaseModel):
    coupon_id: int
    code: str
    valid_until: datetime


# -------------------------
# Merchant
# -------------------------
class CouponValidateIn(BaseModel):
    code: str


class CouponSummary(BaseModel):
    id: int
    name: Optional[str]
    category: str
    kind: str
    discount_amount: int
    customer_name: str
    valid_until: datetime


class CouponValidateOut(BaseModel):
    valid: bool
    reason: Optional[str] = None
    error_code: Optional[str] = None
    coupon: Optional[CouponSummary] = None


class CouponUseOut(BaseModel):
    coupon_id: int
    used_at: datetime
    discount_amount: int


class CouponHistoryItem(BaseModel):
    id: int
    kind: str
    discount_amount: int
    used_at: Optional[datetime]
    customer_name: str
    event_name: str


class DashboardToday(BaseModel):
    coupons_used: int
    total_discount: int
    visitors: int


class MerchantDashboardOut(BaseModel):
    today: DashboardToday
    recent_usage: list[CouponHistoryItem]
