# app/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from app.models.user import AdminUser, User  # noqa: F401
from app.models.event import Event, UserEvent  # noqa: F401
from app.models.merchant import EventMerchant, Merchant  # noqa: F401
from app.models.post import Post  # noqa: F401
from app.models.visit import Stamp, Visit  # noqa: F401

from app.models.coupon import Coupon, CouponLog, CouponTemplate  # noqa: F401
from app.models.game_log import GameLog  # noqa: F401
from app.models.reward import Reward, RewardTemplate  # noqa: F401
