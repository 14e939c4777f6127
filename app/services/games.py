# app/services/games.py
from __future__ import annotations

import random
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from app.models.enums import GameType
from app.models.game_log import GameLog
from app.models.visit import Visit
from app.schemas.games import (
    CapsuleAnimation,
    CardAnimation,
    LadderAnimation,
    RouletteAnimation,
    SlotAnimation,
)
from app.services.merchants import available_categories

_rng = random.Random()

FULL_TURNS = 5
SLOT_SYMBOLS = 5


def draw_category(categories: Sequence[str], rng: random.Random) -> str:
    """Uniform pick over the current category set."""
    return rng.choice(list(categories))


def build_animation(game_type: GameType, rng: random.Random):
    # Cosmetic only; never feeds back into the result category
    if game_type == GameType.ROULETTE:
        return RouletteAnimation(final_angle=360 * FULL_TURNS + rng.random() * 360)
    if game_type == GameType.LADDER:
        return LadderAnimation(selected_ladder=rng.randrange(4))
    if game_type == GameType.CAPSULE:
        return CapsuleAnimation(capsule_index=rng.randrange(6))
    if game_type == GameType.CARD:
        return CardAnimation(card_index=rng.randrange(4))
    if game_type == GameType.SLOT:
        return SlotAnimation(slots=[rng.randrange(SLOT_SYMBOLS) for _ in range(3)])
    raise BadRequestException(f"Unknown game type: {game_type}")


async def load_game_visit(db: AsyncSession, *, user_id: int, visit_id: int) -> Visit:
    visit = await db.get(Visit, visit_id)
    if not visit:
        raise NotFoundException("Game session not found")
    if visit.user_id != user_id:
        raise ForbiddenException("Invalid game session")
    return visit


async def game_already_played(db: AsyncSession, visit_id: int) -> bool:
    res = await db.execute(select(GameLog.id).where(GameLog.visit_id == visit_id))
    return res.scalar_one_or_none() is not None


async def resolve_game(
    db: AsyncSession,
    *,
    user_id: int,
    visit_id: int,
    game_type: GameType,
    rng: random.Random | None = None,
) -> dict:
    """
    Draw the prize category for a visit. Read-only: the draw is committed
    later by ``coupons.issue_coupon``, so retrying this call is harmless.
    """
    rng = rng or _rng

    visit = await load_game_visit(db, user_id=user_id, visit_id=visit_id)

    if await game_already_played(db, visit.id):
        raise ConflictException("Game already played", error_code="GAME_ALREADY_PLAYED")

    categories = await available_categories(db, visit.event_id)
    if not categories:
        raise BadRequestException("No categories available", error_code="NO_CATEGORIES")

    result_category = draw_category(categories, rng)

    return {
        "result_category": result_category,
        "animation": build_animation(GameType(game_type), rng),
    }
