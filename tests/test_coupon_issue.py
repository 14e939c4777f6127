import asyncio
import random
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import func, select

from app.core.clock import utcnow
from app.core.exceptions import BadRequestException, ConflictException, PoolExhaustedException
from app.models.coupon import Coupon, CouponLog
from app.models.enums import CouponStatus, EventType, GameType, MerchantStatus
from app.models.event import Event
from app.models.game_log import GameLog
from app.models.merchant import EventMerchant
from app.services.coupons import coupon_validity_window, get_coupon_code, issue_coupon, list_my_coupons
from app.services.games import resolve_game
from app.services.visits import record_visit
from tests.factories import (
    link,
    make_coupon,
    make_coupon_template,
    make_event,
    make_merchant,
    make_post,
    make_user,
    make_visit,
)


async def test_festival_scenario_cap_of_one(db):
    event = await make_event(db, type=EventType.FESTIVAL, coupon_end_time="20:00")
    await make_merchant(db, category="RESTAURANT", event=event)
    template = await make_coupon_template(db, event, category="RESTAURANT", max_issue_count=1)
    post = await make_post(db, event, qr_code="ABC123")
    u = await make_user(db, name="U")
    v = await make_user(db, name="V")

    visit = await record_visit(db, user_id=u.id, post_id=post.id, qr_code="ABC123")
    assert visit["stamp_count"] == 1

    game = await resolve_game(db, user_id=u.id, visit_id=visit["visit_id"], game_type=GameType.ROULETTE)
    assert game["result_category"] == "RESTAURANT"

    coupon = await issue_coupon(db, user_id=u.id, visit_id=visit["visit_id"], category="RESTAURANT")
    assert coupon["kind"] == "DISCOUNT_5000"
    assert coupon["code"].startswith("CPN-")
    assert len(coupon["available_merchants"]) == 1

    await db.refresh(template)
    assert template.issued_count == 1

    v_visit = await record_visit(db, user_id=v.id, post_id=post.id, qr_code="ABC123")
    with pytest.raises(PoolExhaustedException) as exc:
        await issue_coupon(db, user_id=v.id, visit_id=v_visit["visit_id"], category="RESTAURANT")
    assert exc.value.status_code == 400
    assert exc.value.error_code == "POOL_EXHAUSTED"

    await db.refresh(template)
    assert template.issued_count == 1
    coupons = await db.execute(select(func.count(Coupon.id)))
    assert coupons.scalar_one() == 1


async def test_issue_records_game_log_and_audit_entry(db):
    event = await make_event(db)
    await make_merchant(db, category="CAFE", event=event)
    await make_coupon_template(db, event, category="CAFE")
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    out = await issue_coupon(db, user_id=user.id, visit_id=visit.id, category="CAFE", game_type="SLOT")

    log = (await db.execute(select(GameLog).where(GameLog.visit_id == visit.id))).scalar_one()
    assert log.game_type == "SLOT"
    assert log.result_category == "CAFE"
    assert log.coupon_id == out["coupon_id"]

    audit = (await db.execute(select(CouponLog).where(CouponLog.coupon_id == out["coupon_id"]))).scalar_one()
    assert audit.event_type == "issued"
    assert audit.actor_user_id == user.id


async def test_game_type_defaults_to_roulette(db):
    event = await make_event(db)
    await make_merchant(db, category="CAFE", event=event)
    await make_coupon_template(db, event, category="CAFE")
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    await issue_coupon(db, user_id=user.id, visit_id=visit.id, category="CAFE")

    log = (await db.execute(select(GameLog).where(GameLog.visit_id == visit.id))).scalar_one()
    assert log.game_type == GameType.ROULETTE.value


async def test_second_issue_for_same_visit_is_conflict(db):
    event = await make_event(db)
    await make_merchant(db, category="CAFE", event=event)
    template = await make_coupon_template(db, event, category="CAFE", max_issue_count=10)
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    await issue_coupon(db, user_id=user.id, visit_id=visit.id, category="CAFE")
    with pytest.raises(ConflictException) as exc:
        await issue_coupon(db, user_id=user.id, visit_id=visit.id, category="CAFE")
    assert exc.value.error_code == "GAME_ALREADY_PLAYED"

    await db.refresh(template)
    assert template.issued_count == 1


async def test_concurrent_issuance_never_exceeds_cap(db, session_factory):
    cap = 5
    event = await make_event(db)
    await make_merchant(db, category="RESTAURANT", event=event)
    template = await make_coupon_template(db, event, category="RESTAURANT", max_issue_count=cap)
    post = await make_post(db, event)

    visits = []
    for i in range(2 * cap):
        user = await make_user(db, name=f"user{i}")
        visits.append(await make_visit(db, user, post))

    async def issue(visit):
        async with session_factory() as s:
            return await issue_coupon(s, user_id=visit.user_id, visit_id=visit.id, category="RESTAURANT")

    results = await asyncio.gather(*(issue(v) for v in visits), return_exceptions=True)

    issued = [r for r in results if isinstance(r, dict)]
    exhausted = [r for r in results if isinstance(r, PoolExhaustedException)]
    assert len(issued) == cap
    assert len(exhausted) == cap

    await db.refresh(template)
    assert template.issued_count == cap
    coupons = await db.execute(select(func.count(Coupon.id)).where(Coupon.template_id == template.id))
    assert coupons.scalar_one() == cap


async def test_concurrent_issue_for_one_visit_issues_once(db, session_factory):
    event = await make_event(db)
    await make_merchant(db, category="CAFE", event=event)
    template = await make_coupon_template(db, event, category="CAFE")
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    async def issue():
        async with session_factory() as s:
            return await issue_coupon(s, user_id=user.id, visit_id=visit.id, category="CAFE")

    results = await asyncio.gather(*(issue() for _ in range(4)), return_exceptions=True)

    assert len([r for r in results if isinstance(r, dict)]) == 1
    assert all(isinstance(r, ConflictException) for r in results if not isinstance(r, dict))

    await db.refresh(template)
    assert template.issued_count == 1


async def test_falls_through_to_next_template_with_capacity(db):
    event = await make_event(db)
    await make_merchant(db, category="CAFE", event=event)
    first = await make_coupon_template(db, event, category="CAFE", max_issue_count=1)
    second = await make_coupon_template(db, event, category="CAFE", discount_amount=10000)
    post = await make_post(db, event)

    a = await make_visit(db, await make_user(db), post)
    b = await make_visit(db, await make_user(db), post)
    out_a = await issue_coupon(db, user_id=a.user_id, visit_id=a.id, category="CAFE")
    out_b = await issue_coupon(db, user_id=b.user_id, visit_id=b.id, category="CAFE")

    assert out_a["discount_amount"] == first.discount_amount
    assert out_b["discount_amount"] == second.discount_amount


async def test_category_rechecked_at_issue_time(db):
    event = await make_event(db)
    merchant = await make_merchant(db, category="CAFE", event=event)
    await make_coupon_template(db, event, category="CAFE")
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    game = await resolve_game(
        db, user_id=user.id, visit_id=visit.id, game_type=GameType.CARD, rng=random.Random(0)
    )
    assert game["result_category"] == "CAFE"

    link = (
        await db.execute(select(EventMerchant).where(EventMerchant.merchant_id == merchant.id))
    ).scalar_one()
    link.is_active = False
    await db.commit()

    with pytest.raises(PoolExhaustedException):
        await issue_coupon(db, user_id=user.id, visit_id=visit.id, category="CAFE")


async def test_coupon_window_ends_at_event_cutoff(db):
    event = await make_event(db, coupon_end_time="20:00", end_date=date(2030, 5, 10))
    now = datetime(2030, 5, 1, 3, 0)  # 12:00 in Seoul

    valid_from, valid_until = coupon_validity_window(event, now)

    # Seoul is UTC+9 with no DST
    assert valid_until == datetime(2030, 5, 10, 11, 0)
    assert valid_from == datetime(2030, 4, 30, 15, 0)


def test_coupon_window_after_cutoff_is_rejected():
    event = Event(end_date=date(2030, 5, 10), coupon_end_time="20:00")

    with pytest.raises(BadRequestException) as exc:
        coupon_validity_window(event, datetime(2030, 5, 10, 11, 30))
    assert exc.value.error_code == "COUPON_PERIOD_ENDED"


async def test_issued_coupon_is_active(db):
    event = await make_event(db, end_date=date.today() + timedelta(days=3))
    await make_merchant(db, category="TOURIST", event=event)
    await make_coupon_template(db, event, category="TOURIST")
    user = await make_user(db)
    visit = await make_visit(db, user, await make_post(db, event))

    out = await issue_coupon(db, user_id=user.id, visit_id=visit.id, category="TOURIST")

    coupon = await db.get(Coupon, out["coupon_id"])
    assert coupon.status == CouponStatus.ACTIVE.value
    assert coupon.valid_from <= coupon.created_at < coupon.valid_until


async def test_my_coupons_count_usable_merchants_per_category(db):
    fair = await make_event(db)
    market = await make_event(db)
    await make_merchant(db, category="RESTAURANT", event=fair)
    await make_merchant(db, category="RESTAURANT", event=fair)
    await make_merchant(db, category="RESTAURANT", status=MerchantStatus.PENDING, event=fair)
    await link(db, fair, await make_merchant(db, category="CAFE"), is_active=False)
    await make_merchant(db, category="RESTAURANT", event=market)

    user = await make_user(db)
    fair_food = await make_coupon(db, user, await make_coupon_template(db, fair, category="RESTAURANT"))
    fair_cafe = await make_coupon(db, user, await make_coupon_template(db, fair, category="CAFE"))
    market_food = await make_coupon(db, user, await make_coupon_template(db, market, category="RESTAURANT"))

    counts = {c["id"]: c["merchant_count"] for c in await list_my_coupons(db, user_id=user.id)}
    assert counts == {fair_food.id: 2, fair_cafe.id: 0, market_food.id: 1}

    only_market = await list_my_coupons(db, user_id=user.id, event_id=market.id)
    assert [c["id"] for c in only_market] == [market_food.id]


async def test_coupon_code_hidden_outside_validity_window(db):
    event = await make_event(db)
    template = await make_coupon_template(db, event)
    user = await make_user(db)
    now = utcnow()
    early = await make_coupon(
        db, user, template, valid_from=now + timedelta(hours=1), valid_until=now + timedelta(hours=5)
    )
    late = await make_coupon(
        db, user, template, valid_from=now - timedelta(hours=5), valid_until=now - timedelta(hours=1)
    )

    with pytest.raises(BadRequestException) as exc:
        await get_coupon_code(db, user_id=user.id, coupon_id=early.id)
    assert exc.value.error_code == "COUPON_NOT_VALID_NOW"

    with pytest.raises(BadRequestException) as exc:
        await get_coupon_code(db, user_id=user.id, coupon_id=late.id)
    assert exc.value.error_code == "COUPON_EXPIRED"

    out = await get_coupon_code(db, user_id=user.id, coupon_id=early.id, now=now + timedelta(hours=2))
    assert out["code"] == early.code
