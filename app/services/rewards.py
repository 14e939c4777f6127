# app/services/rewards.py
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    RewardSoldOutException,
)
from app.models.enums import RewardStatus
from app.models.event import Event
from app.models.post import Post
from app.models.reward import Reward, RewardTemplate
from app.services.codes import REWARD_PREFIX, generate_redemption_code
from app.services.stamps import count_stamps, list_stamps

logger = logging.getLogger(__name__)


async def _claimed_tiers(db: AsyncSession, user_id: int, event_id: int) -> list[str]:
    res = await db.execute(select(Reward.tier).where(Reward.user_id == user_id, Reward.event_id == event_id))
    return [str(t) for t in res.scalars().all()]


async def _claimable_templates(
    db: AsyncSession,
    *,
    user_id: int,
    event_id: int,
    stamp_count: int,
) -> list[RewardTemplate]:
    claimed = await _claimed_tiers(db, user_id, event_id)

    stmt = (
        select(RewardTemplate)
        .where(
            RewardTemplate.event_id == event_id,
            RewardTemplate.required_stamps <= stamp_count,
            RewardTemplate.is_active.is_(True),
            RewardTemplate.remaining_quantity > 0,
        )
        .order_by(RewardTemplate.required_stamps.asc(), RewardTemplate.id.asc())
    )
    if claimed:
        stmt = stmt.where(RewardTemplate.tier.not_in(claimed))

    res = await db.execute(stmt)
    return list(res.scalars().all())


async def compute_claimable(db: AsyncSession, *, user_id: int, event_id: int) -> list[RewardTemplate]:
    """Tiers the user can claim right now. Advisory only; claim_reward re-checks."""
    stamp_count = await count_stamps(db, user_id, event_id)
    return await _claimable_templates(db, user_id=user_id, event_id=event_id, stamp_count=stamp_count)


async def claim_reward(db: AsyncSession, *, user_id: int, template_id: int) -> Reward:
    """
    Claim one tier reward.

    Inventory is taken with ``remaining_quantity - 1 WHERE remaining_quantity > 0``
    and the reward insert rides the same transaction; the (user, event, tier)
    unique key turns a duplicate claim into a rollback of both.
    """
    template = await db.get(RewardTemplate, template_id)
    if not template:
        raise NotFoundException("Reward template not found")

    res = await db.execute(
        select(Reward.id).where(
            Reward.user_id == user_id,
            Reward.event_id == template.event_id,
            Reward.tier == template.tier,
        )
    )
    if res.scalar_one_or_none() is not None:
        raise ConflictException("Already claimed this tier reward", error_code="TIER_ALREADY_CLAIMED")

    if not template.is_active:
        raise BadRequestException("Reward not available", error_code="REWARD_NOT_AVAILABLE")
    if template.remaining_quantity <= 0:
        raise RewardSoldOutException()

    stamp_count = await count_stamps(db, user_id, template.event_id)
    if stamp_count < template.required_stamps:
        raise BadRequestException(
            f"Need {template.required_stamps} stamps (have {stamp_count})",
            error_code="NOT_ENOUGH_STAMPS",
        )

    try:
        upd = await db.execute(
            update(RewardTemplate)
            .where(
                RewardTemplate.id == template.id,
                RewardTemplate.is_active.is_(True),
                RewardTemplate.remaining_quantity > 0,
            )
            .values(remaining_quantity=RewardTemplate.remaining_quantity - 1)
            .execution_options(synchronize_session=False)
        )
        if upd.rowcount != 1:
            raise RewardSoldOutException()

        reward = Reward(
            user_id=user_id,
            event_id=template.event_id,
            template_id=template.id,
            tier=template.tier,
            code=generate_redemption_code(REWARD_PREFIX),
            status=RewardStatus.AVAILABLE.value,
        )
        db.add(reward)
        await db.flush()
        await db.commit()

    except RewardSoldOutException:
        await db.rollback()
        logger.info("reward template %s sold out (user=%s)", template_id, user_id)
        raise
    except IntegrityError:
        await db.rollback()
        raise ConflictException("Already claimed this tier reward", error_code="TIER_ALREADY_CLAIMED")
    except Exception:
        await db.rollback()
        raise

    logger.info("reward claimed id=%s user=%s tier=%s", reward.id, user_id, reward.tier)
    return reward


async def redeem_reward(
    db: AsyncSession,
    *,
    user_id: int,
    reward_id: int,
    post_id: int,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()

    reward = await db.get(Reward, reward_id)
    if not reward:
        raise NotFoundException("Reward not found")
    if reward.user_id != user_id:
        raise ForbiddenException("Not your reward")
    if reward.status != RewardStatus.AVAILABLE.value:
        raise ConflictException("Reward already redeemed", error_code="REWARD_ALREADY_REDEEMED")

    post = await db.get(Post, post_id)
    if not post:
        raise NotFoundException("Post not found")
    if not post.is_reward_post:
        raise BadRequestException("Invalid reward post", error_code="NOT_A_REWARD_POST")
    if post.event_id != reward.event_id:
        raise BadRequestException("Post not in same event", error_code="POST_EVENT_MISMATCH")

    try:
        res = await db.execute(
            update(Reward)
            .where(Reward.id == reward.id, Reward.status == RewardStatus.AVAILABLE.value)
            .values(status=RewardStatus.REDEEMED.value, redeemed_at=now, redeem_post_id=post.id)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise ConflictException("Reward already redeemed", error_code="REWARD_ALREADY_REDEEMED")
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    template = await db.get(RewardTemplate, reward.template_id)
    logger.info("reward redeemed id=%s post=%s", reward.id, post.id)

    return {
        "reward_id": reward.id,
        "redeemed_at": now,
        "reward_name": template.name if template else None,
    }


async def list_my_rewards(db: AsyncSession, *, user_id: int, event_id: int) -> list[dict]:
    res = await db.execute(
        select(Reward, RewardTemplate.name, RewardTemplate.description)
        .join(RewardTemplate, RewardTemplate.id == Reward.template_id)
        .where(Reward.user_id == user_id, Reward.event_id == event_id)
        .order_by(Reward.created_at.desc(), Reward.id.desc())
    )
    return [
        {
            "id": r.id,
            "tier": r.tier,
            "name": str(name),
            "description": description,
            "code": r.code,
            "status": r.status,
            "redeem_post_id": r.redeem_post_id,
            "redeemed_at": r.redeemed_at,
            "created_at": r.created_at,
        }
        for r, name, description in res.all()
    ]


async def stamp_board(db: AsyncSession, *, user_id: int, event_id: int) -> dict:
    """Stamps collected so far, the next tier to aim for and what is claimable now."""
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundException("Event not found")

    stamps = await list_stamps(db, user_id, event_id)
    total = len(stamps)

    res = await db.execute(
        select(RewardTemplate)
        .where(
            RewardTemplate.event_id == event_id,
            RewardTemplate.required_stamps > total,
            RewardTemplate.is_active.is_(True),
            RewardTemplate.remaining_quantity > 0,
        )
        .order_by(RewardTemplate.required_stamps.asc())
        .limit(1)
    )
    nxt = res.scalar_one_or_none()

    claimable = await _claimable_templates(db, user_id=user_id, event_id=event_id, stamp_count=total)

    return {
        "total_stamps": total,
        "stamps": stamps,
        "next_reward": (
            {
                "tier": nxt.tier,
                "name": nxt.name,
                "required_stamps": nxt.required_stamps,
                "remaining": nxt.required_stamps - total,
            }
            if nxt
            else None
        ),
        "claimable_rewards": [
            {
                "template_id": t.id,
                "tier": t.tier,
                "name": t.name,
                "required_stamps": t.required_stamps,
            }
            for t in claimable
        ],
    }
