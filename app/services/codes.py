from __future__ import annotations

import secrets

from app.core.config import settings

COUPON_PREFIX = "CPN"
REWARD_PREFIX = "RWD"


def generate_redemption_code(prefix: str) -> str:
    # Bearer credential: only the CSPRNG decides its value
    return f"{prefix}-{secrets.token_urlsafe(settings.COUPON_CODE_BYTES)}"


def generate_post_qr_code() -> str:
    return f"POST-{secrets.token_urlsafe(12)}"


def codes_match(stored: str, presented: str) -> bool:
    """Exact, case-sensitive comparison in constant time."""
    return secrets.compare_digest(stored.encode("utf-8"), presented.encode("utf-8"))


def mask_name(name: str | None) -> str:
    """'홍길동' -> '홍***동', 'Al' -> 'A***', 'J' -> 'J***'."""
    if not name:
        return "Customer"
    if len(name) == 1:
        return name + "***"
    return name[0] + "***" + (name[-1] if len(name) > 2 else "")
