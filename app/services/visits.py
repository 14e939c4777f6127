# app/services/visits.py
from __future__ import annotations

import logging
import random

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.models.enums import EventStatus, EventType, GameType
from app.models.event import Event
from app.models.post import Post
from app.models.visit import Visit
from app.services.codes import codes_match
from app.services.merchants import available_categories
from app.services.stamps import collect_stamp, count_stamps

logger = logging.getLogger(__name__)

_rng = random.Random()


async def record_visit(
    db: AsyncSession,
    *,
    user_id: int,
    post_id: int,
    qr_code: str,
    latitude: float | None = None,
    longitude: float | None = None,
    rng: random.Random | None = None,
) -> dict:
    """
    First scan of a post by a user.

    On a FESTIVAL event the stamp is written in the same transaction as the
    visit. The response carries the game the client may play next.
    """
    post = await db.get(Post, post_id)
    if not post:
        raise NotFoundException("Post not found")

    event = await db.get(Event, post.event_id)
    if not event:
        raise NotFoundException("Event not found")

    if not post.is_active:
        raise BadRequestException("Post is not active", error_code="POST_INACTIVE")

    if not codes_match(post.qr_code, qr_code):
        raise BadRequestException("Invalid QR code", error_code="INVALID_QR_CODE")

    if event.status != EventStatus.ACTIVE.value:
        raise BadRequestException("Event is not active", error_code="EVENT_NOT_ACTIVE")

    res = await db.execute(
        select(Visit.id).where(
            Visit.user_id == user_id,
            Visit.post_id == post.id,
            Visit.event_id == event.id,
        )
    )
    if res.scalar_one_or_none() is not None:
        raise ConflictException("Already visited this post", error_code="ALREADY_VISITED")

    is_festival = event.type == EventType.FESTIVAL.value
    stamp_count = 0

    try:
        visit = Visit(
            user_id=user_id,
            post_id=post.id,
            event_id=event.id,
            latitude=latitude,
            longitude=longitude,
        )
        db.add(visit)

        if is_festival:
            collect_stamp(db, user_id=user_id, event_id=event.id, post_id=post.id)

        await db.flush()

        if is_festival:
            stamp_count = await count_stamps(db, user_id, event.id)

        await db.commit()

    except IntegrityError:
        # Lost the race against a concurrent scan of the same post
        await db.rollback()
        raise ConflictException("Already visited this post", error_code="ALREADY_VISITED")
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "visit recorded id=%s user=%s post=%s event=%s stamps=%s",
        visit.id, user_id, post.id, event.id, stamp_count,
    )

    categories = await available_categories(db, event.id)
    game_type = (rng or _rng).choice(list(GameType))

    return {
        "visit_id": visit.id,
        "visited_at": visit.visited_at,
        "stamp_collected": is_festival,
        "stamp_count": stamp_count,
        "game": {
            "visit_id": visit.id,
            "game_type": game_type.value,
            "available_categories": categories,
        },
    }
