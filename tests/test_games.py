import random
from collections import Counter

import pytest

from app.core.exceptions import BadRequestException, ConflictException, ForbiddenException, NotFoundException
from app.models.enums import GameType, MerchantStatus
from app.models.game_log import GameLog
from app.schemas.games import RouletteAnimation, SlotAnimation
from app.services.games import build_animation, draw_category, resolve_game
from tests.factories import make_event, make_merchant, make_post, make_user, make_visit

# chi-square critical value, 2 degrees of freedom, p = 0.01
CHI2_CRIT_DF2 = 9.210


def chi_square(counts: Counter, keys, trials: int) -> float:
    expected = trials / len(keys)
    return sum((counts[k] - expected) ** 2 / expected for k in keys)


def test_draw_category_is_uniform():
    rng = random.Random(20240501)
    categories = ["CAFE", "RESTAURANT", "TOURIST"]
    trials = 10_000

    counts = Counter(draw_category(categories, rng) for _ in range(trials))

    assert set(counts) == set(categories)
    assert chi_square(counts, categories, trials) < CHI2_CRIT_DF2


def test_roulette_makes_at_least_five_turns():
    rng = random.Random(7)
    for _ in range(100):
        anim = build_animation(GameType.ROULETTE, rng)
        assert isinstance(anim, RouletteAnimation)
        assert 1800 <= anim.final_angle < 2160


def test_slot_draws_three_symbols():
    anim = build_animation(GameType.SLOT, random.Random(3))
    assert isinstance(anim, SlotAnimation)
    assert len(anim.slots) == 3


def test_animation_does_not_change_the_draw():
    categories = ["CAFE", "RESTAURANT", "TOURIST"]
    picks = set()
    for game_type in GameType:
        rng = random.Random(11)
        picks.add(draw_category(categories, rng))
        build_animation(game_type, rng)
    assert len(picks) == 1


async def test_resolve_game_uniform_over_live_categories(db):
    event = await make_event(db)
    for category in ("CAFE", "RESTAURANT", "TOURIST"):
        await make_merchant(db, category=category, event=event)
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    rng = random.Random(99)
    trials = 1_500
    counts = Counter()
    for _ in range(trials):
        out = await resolve_game(db, user_id=user.id, visit_id=visit.id, game_type=GameType.CARD, rng=rng)
        counts[out["result_category"]] += 1

    assert chi_square(counts, ["CAFE", "RESTAURANT", "TOURIST"], trials) < CHI2_CRIT_DF2


async def test_resolve_game_ignores_unapproved_and_unlinked_merchants(db):
    event = await make_event(db)
    await make_merchant(db, category="RESTAURANT", event=event)
    await make_merchant(db, category="CAFE", event=event, status=MerchantStatus.SUSPENDED)
    await make_merchant(db, category="TOURIST")
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    for seed in range(20):
        out = await resolve_game(
            db, user_id=user.id, visit_id=visit.id, game_type=GameType.ROULETTE, rng=random.Random(seed)
        )
        assert out["result_category"] == "RESTAURANT"


async def test_resolve_game_without_categories(db):
    event = await make_event(db)
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    with pytest.raises(BadRequestException) as exc:
        await resolve_game(db, user_id=user.id, visit_id=visit.id, game_type=GameType.LADDER)
    assert exc.value.error_code == "NO_CATEGORIES"


async def test_resolve_game_after_play_is_conflict(db):
    event = await make_event(db)
    await make_merchant(db, category="CAFE", event=event)
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))
    db.add(
        GameLog(
            user_id=user.id,
            event_id=event.id,
            visit_id=visit.id,
            game_type=GameType.CAPSULE.value,
            result_category="CAFE",
        )
    )
    await db.commit()

    with pytest.raises(ConflictException) as exc:
        await resolve_game(db, user_id=user.id, visit_id=visit.id, game_type=GameType.CAPSULE)
    assert exc.value.error_code == "GAME_ALREADY_PLAYED"


async def test_resolve_game_checks_visit_owner(db):
    event = await make_event(db)
    await make_merchant(db, category="CAFE", event=event)
    owner = await make_user(db)
    other = await make_user(db, name="Other")
    visit = await make_visit(db, owner, await make_post(db, event))

    with pytest.raises(ForbiddenException):
        await resolve_game(db, user_id=other.id, visit_id=visit.id, game_type=GameType.SLOT)
    with pytest.raises(NotFoundException):
        await resolve_game(db, user_id=owner.id, visit_id=visit.id + 100, game_type=GameType.SLOT)
