# app/schemas/merchants.py
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import MerchantCategory


class MerchantRegisterIn(BaseModel):
    store_name: str = Field(..., min_length=1, max_length=200)
    category: MerchantCategory
    business_number: str = Field(..., min_length=3, max_length=32)
    owner_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    address: Optional[str] = None
    phone: Optional[str] = None


class MerchantRegisterOut(BaseModel):
    merchant_id: int
    status: str


class MerchantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: str
    business_number: str
    owner_name: str
    email: str
    status: str
    created_at: datetime


class MerchantStatusUpdate(BaseModel):
    status: Literal["APPROVED", "REJECTED", "SUSPENDED"]


class EventMerchantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    merchant_id: int
    is_active: bool


class ActiveEvent(BaseModel):
    id: int
    name: str
    status: str


class MyMerchantOut(BaseModel):
    id: int
    name: str
    category: str
    address: Optional[str]
    phone: Optional[str]
    status: str
    active_events: list[ActiveEvent]
