from __future__ import annotations

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

from app.core.config import settings


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def to_naive_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def local_day_start(now_utc: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Midnight of the business-local day containing ``now_utc``, as naive UTC."""
    tz = tz or business_tz()
    local = now_utc.replace(tzinfo=timezone.utc).astimezone(tz)
    midnight = datetime.combine(local.date(), time.min, tzinfo=tz)
    return to_naive_utc(midnight)


def parse_clock_time(value: str) -> time:
    """'HH:MM' -> time. Raises ValueError on anything else."""
    hours, minutes = value.split(":")
    if len(hours) != 2 or len(minutes) != 2:
        raise ValueError(f"Invalid clock time: {value!r}")
    return time(int(hours), int(minutes))
