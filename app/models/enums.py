from __future__ import annotations

import enum


class EventType(str, enum.Enum):
    RUNNING = "RUNNING"
    FESTIVAL = "FESTIVAL"
    SINGLE = "SINGLE"


class EventStatus(str, enum.Enum):
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class MerchantCategory(str, enum.Enum):
    RESTAURANT = "RESTAURANT"
    CAFE = "CAFE"
    TOURIST = "TOURIST"
    OTHER = "OTHER"


class MerchantStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class PostCategory(str, enum.Enum):
    TOURIST = "TOURIST"
    RESTAURANT = "RESTAURANT"
    CAFE = "CAFE"
    OTHER = "OTHER"


class CouponKind(str, enum.Enum):
    DISCOUNT_5000 = "DISCOUNT_5000"
    DISCOUNT_10000 = "DISCOUNT_10000"
    FREE_ITEM = "FREE_ITEM"
    PERCENT_50 = "PERCENT_50"
    CUSTOM = "CUSTOM"


class CouponStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    USED = "USED"
    EXPIRED = "EXPIRED"


class UserType(str, enum.Enum):
    RUNNER = "RUNNER"
    VISITOR = "VISITOR"
    PARTICIPANT = "PARTICIPANT"


class RewardTier(str, enum.Enum):
    TIER_3 = "TIER_3"
    TIER_5 = "TIER_5"
    TIER_10 = "TIER_10"


class RewardStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    REDEEMED = "REDEEMED"


class GameType(str, enum.Enum):
    ROULETTE = "ROULETTE"
    LADDER = "LADDER"
    CAPSULE = "CAPSULE"
    CARD = "CARD"
    SLOT = "SLOT"


def sql_in(enum_cls: type[enum.Enum]) -> str:
    """Comma separated quoted values for a CHECK ... IN (...) clause."""
    return ", ".join(f"'{m.value}'" for m in enum_cls)
