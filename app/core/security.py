from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from app.core.config import settings

ROLE_USER = "user"
ROLE_MERCHANT = "merchant"
ROLE_ADMIN = "admin"

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    pass


# -------------------------
# Passwords (merchant + admin accounts)
# -------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


# -------------------------
# JWT
# -------------------------
def _encode(subject_id: int, role: str, token_type: str, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(subject_id),
        "role": role,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def create_access_token(*, subject_id: int, role: str) -> str:
    return _encode(subject_id, role, ACCESS, timedelta(minutes=settings.JWT_ACCESS_MINUTES))


def create_refresh_token(*, subject_id: int, role: str) -> str:
    return _encode(subject_id, role, REFRESH, timedelta(days=settings.JWT_REFRESH_DAYS))


def issue_token_pair(*, subject_id: int, role: str) -> dict:
    return {
        "access_token": create_access_token(subject_id=subject_id, role=role),
        "refresh_token": create_refresh_token(subject_id=subject_id, role=role),
        "token_type": "bearer",
    }


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e


def access_claims(token: str) -> tuple[int, str]:
    """(subject_id, role) of a valid access token."""
    payload = decode_token(token)
    if payload.get("type") != ACCESS:
        raise TokenError("Access token required")

    try:
        subject_id = int(payload.get("sub"))
    except (TypeError, ValueError) as e:
        raise TokenError("Invalid subject in token") from e

    return subject_id, str(payload.get("role") or "")
