# app/services/posts.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.models.event import Event
from app.models.merchant import EventMerchant, Merchant
from app.models.post import Post
from app.models.visit import Visit
from app.services.codes import generate_post_qr_code


async def create_post(
    db: AsyncSession,
    *,
    event_id: int,
    name: str,
    category: str,
    description: str | None = None,
    address: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    is_reward_post: bool = False,
    merchant_id: int | None = None,
    qr_code: str | None = None,
) -> Post:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundException("Event not found")

    if merchant_id is not None:
        merchant = await db.get(Merchant, merchant_id)
        if not merchant:
            raise NotFoundException("Merchant not found")

        res = await db.execute(
            select(EventMerchant.id).where(
                EventMerchant.event_id == event_id,
                EventMerchant.merchant_id == merchant_id,
            )
        )
        if res.scalar_one_or_none() is None:
            raise BadRequestException(
                "Merchant is not associated with this event",
                error_code="MERCHANT_NOT_IN_EVENT",
            )

    post = Post(
        event_id=event_id,
        merchant_id=merchant_id,
        name=name,
        category=category,
        description=description,
        address=address,
        latitude=latitude,
        longitude=longitude,
        is_reward_post=is_reward_post,
        is_active=True,
        qr_code=qr_code or generate_post_qr_code(),
    )
    db.add(post)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException("QR code already in use", error_code="QR_CODE_TAKEN")

    await db.refresh(post)
    return post


async def set_post_active(db: AsyncSession, *, post_id: int, is_active: bool) -> Post:
    post = await db.get(Post, post_id)
    if not post:
        raise NotFoundException("Post not found")
    post.is_active = is_active
    await db.commit()
    await db.refresh(post)
    return post


async def list_posts(db: AsyncSession, *, event_id: int, user_id: int | None = None) -> list[dict]:
    res = await db.execute(
        select(Post).where(Post.event_id == event_id, Post.is_active.is_(True)).order_by(Post.name.asc())
    )
    posts = list(res.scalars().all())

    visited: set[int] = set()
    if user_id is not None:
        vres = await db.execute(
            select(Visit.post_id).where(Visit.user_id == user_id, Visit.event_id == event_id)
        )
        visited = {int(x) for x in vres.scalars().all()}

    return [
        {
            "id": p.id,
            "name": p.name,
            "category": p.category,
            "description": p.description,
            "address": p.address,
            "latitude": p.latitude,
            "longitude": p.longitude,
            "is_reward_post": p.is_reward_post,
            "merchant_id": p.merchant_id,
            "is_visited": (p.id in visited) if user_id is not None else None,
        }
        for p in posts
    ]
