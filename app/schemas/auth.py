from __future__ import annotations

from pydantic import BaseModel


class LoginIn(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class MerchantTokenOut(TokenOut):
    merchant_id: int
    merchant_name: str
