# app/services/events.py
from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import parse_clock_time, utcnow
from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.models.coupon import Coupon
from app.models.enums import CouponStatus, EventStatus, UserType
from app.models.event import Event, UserEvent
from app.models.post import Post
from app.models.reward import Reward
from app.models.visit import Stamp, Visit

logger = logging.getLogger(__name__)

# Admin-driven, forward only
_STATUS_ORDER = [EventStatus.UPCOMING.value, EventStatus.ACTIVE.value, EventStatus.ENDED.value]


def _check_clock_time(value: str, field: str) -> str:
    try:
        parse_clock_time(value)
    except ValueError:
        raise BadRequestException(f"{field} must be HH:MM", error_code="INVALID_CLOCK_TIME")
    return value


async def create_event(
    db: AsyncSession,
    *,
    name: str,
    type: str,
    start_date: date,
    end_date: date,
    region: str | None = None,
    description: str | None = None,
    coupon_start_time: str = "00:00",
    coupon_end_time: str = "20:00",
) -> Event:
    if start_date > end_date:
        raise BadRequestException("End date must not be before start date", error_code="INVALID_DATE_RANGE")

    event = Event(
        name=name,
        type=type,
        region=region,
        description=description,
        start_date=start_date,
        end_date=end_date,
        status=EventStatus.UPCOMING.value,
        coupon_start_time=_check_clock_time(coupon_start_time, "coupon_start_time"),
        coupon_end_time=_check_clock_time(coupon_end_time, "coupon_end_time"),
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    logger.info("event created id=%s type=%s", event.id, event.type)
    return event


async def change_event_status(db: AsyncSession, *, event_id: int, status: str) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundException("Event not found")

    if _STATUS_ORDER.index(status) <= _STATUS_ORDER.index(event.status):
        raise BadRequestException(
            f"Cannot move event from {event.status} to {status}",
            error_code="INVALID_STATUS_TRANSITION",
        )

    event.status = status
    await db.commit()
    await db.refresh(event)
    logger.info("event %s status -> %s", event.id, status)
    return event


async def list_events(
    db: AsyncSession,
    *,
    status: str | None = None,
    type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Event]:
    stmt = select(Event).order_by(Event.start_date.asc(), Event.id.asc())
    if status:
        stmt = stmt.where(Event.status == status)
    if type:
        stmt = stmt.where(Event.type == type)

    res = await db.execute(stmt.limit(int(limit)).offset(int(offset)))
    return list(res.scalars().all())


async def get_event(db: AsyncSession, event_id: int) -> dict:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundException("Event not found")

    posts = await db.execute(
        select(func.count(Post.id)).where(Post.event_id == event_id, Post.is_active.is_(True))
    )
    participants = await db.execute(select(func.count(UserEvent.id)).where(UserEvent.event_id == event_id))

    return {
        "event": event,
        "posts_count": int(posts.scalar_one()),
        "participants_count": int(participants.scalar_one()),
    }


async def join_event(
    db: AsyncSession,
    *,
    user_id: int,
    event_id: int,
    user_type: str = UserType.PARTICIPANT.value,
) -> UserEvent:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundException("Event not found")
    if event.status == EventStatus.ENDED.value:
        raise BadRequestException("Event has ended", error_code="EVENT_ENDED")

    res = await db.execute(
        select(UserEvent.id).where(UserEvent.user_id == user_id, UserEvent.event_id == event_id)
    )
    if res.scalar_one_or_none() is not None:
        raise ConflictException("Already joined this event", error_code="ALREADY_JOINED")

    user_event = UserEvent(user_id=user_id, event_id=event_id, user_type=user_type)
    db.add(user_event)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException("Already joined this event", error_code="ALREADY_JOINED")

    await db.refresh(user_event)
    return user_event


async def _user_event(db: AsyncSession, user_id: int, event_id: int) -> UserEvent:
    res = await db.execute(
        select(UserEvent).where(UserEvent.user_id == user_id, UserEvent.event_id == event_id)
    )
    user_event = res.scalar_one_or_none()
    if not user_event:
        raise NotFoundException("Not participating in this event")
    return user_event


async def my_event_status(db: AsyncSession, *, user_id: int, event_id: int) -> dict:
    user_event = await _user_event(db, user_id, event_id)

    async def _count(stmt) -> int:
        r = await db.execute(stmt)
        return int(r.scalar_one())

    visited = await _count(select(func.count(Visit.id)).where(Visit.user_id == user_id, Visit.event_id == event_id))
    total_posts = await _count(
        select(func.count(Post.id)).where(Post.event_id == event_id, Post.is_active.is_(True))
    )
    coupons = await _count(
        select(func.count(Coupon.id)).where(
            Coupon.user_id == user_id,
            Coupon.event_id == event_id,
            Coupon.status == CouponStatus.ACTIVE.value,
        )
    )
    stamps = await _count(select(func.count(Stamp.id)).where(Stamp.user_id == user_id, Stamp.event_id == event_id))

    rewards = await db.execute(
        select(Reward.id, Reward.tier, Reward.status).where(Reward.user_id == user_id, Reward.event_id == event_id)
    )

    return {
        "joined_at": user_event.joined_at,
        "user_type": user_event.user_type,
        "is_finished": user_event.is_finished,
        "finished_at": user_event.finished_at,
        "visited_posts": visited,
        "total_posts": total_posts,
        "active_coupons": coupons,
        "stamps": stamps,
        "rewards": [{"id": int(r[0]), "tier": str(r[1]), "status": str(r[2])} for r in rewards.all()],
    }


async def verify_finish(
    db: AsyncSession,
    *,
    user_id: int,
    event_id: int,
    finish_code: str,
    now: datetime | None = None,
) -> dict:
    """Mark a runner as finished. Only the first verification counts."""
    now = now or utcnow()
    user_event = await _user_event(db, user_id, event_id)

    if user_event.is_finished:
        raise ConflictException("Already verified finish", error_code="ALREADY_FINISHED")
    if user_event.user_type != UserType.RUNNER.value:
        raise BadRequestException("Only runners can verify finish", error_code="NOT_A_RUNNER")

    try:
        res = await db.execute(
            update(UserEvent)
            .where(UserEvent.id == user_event.id, UserEvent.is_finished.is_(False))
            .values(is_finished=True, finish_code=finish_code, finished_at=now)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise ConflictException("Already verified finish", error_code="ALREADY_FINISHED")
        await db.commit()
        db.expire(user_event)
    except Exception:
        await db.rollback()
        raise

    logger.info("finish verified user=%s event=%s", user_id, event_id)
    return {"verified": True, "finished_at": now}


async def list_my_events(db: AsyncSession, *, user_id: int) -> list[dict]:
    res = await db.execute(
        select(UserEvent, Event)
        .join(Event, Event.id == UserEvent.event_id)
        .where(UserEvent.user_id == user_id)
        .order_by(UserEvent.joined_at.desc(), UserEvent.id.desc())
    )
    return [
        {
            "user_event_id": ue.id,
            "user_type": ue.user_type,
            "is_finished": ue.is_finished,
            "joined_at": ue.joined_at,
            "event": event,
        }
        for ue, event in res.all()
    ]
