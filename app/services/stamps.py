from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.post import Post
from app.models.visit import Stamp


async def count_stamps(db: AsyncSession, user_id: int, event_id: int) -> int:
    res = await db.execute(
        select(func.count(Stamp.id)).where(Stamp.user_id == user_id, Stamp.event_id == event_id)
    )
    return int(res.scalar_one())


def collect_stamp(db: AsyncSession, *, user_id: int, event_id: int, post_id: int) -> Stamp:
    """Stage a stamp in the caller's transaction. The caller commits."""
    stamp = Stamp(user_id=user_id, event_id=event_id, post_id=post_id)
    db.add(stamp)
    return stamp


async def list_stamps(db: AsyncSession, user_id: int, event_id: int) -> list[dict]:
    res = await db.execute(
        select(Stamp.post_id, Post.name, Post.category, Stamp.collected_at)
        .join(Post, Post.id == Stamp.post_id)
        .where(Stamp.user_id == user_id, Stamp.event_id == event_id)
        .order_by(Stamp.collected_at.asc(), Stamp.id.asc())
    )
    return [
        {
            "post_id": int(r[0]),
            "post_name": str(r[1]),
            "post_category": str(r[2]),
            "collected_at": r[3],
        }
        for r in res.all()
    ]
