from datetime import date

import pytest

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.models.enums import EventStatus, EventType, MerchantStatus, UserType
from app.services.events import (
    change_event_status,
    create_event,
    get_event,
    join_event,
    list_events,
    list_my_events,
    my_event_status,
    verify_finish,
)
from app.services.merchants import (
    available_categories,
    link_merchant_to_event,
    register_merchant,
    set_merchant_status,
    unlink_merchant_from_event,
)
from app.services.posts import create_post, list_posts
from tests.factories import make_event, make_merchant, make_post, make_stamps, make_user, make_visit


async def test_create_event_defaults(db):
    event = await create_event(
        db, name="Spring Fair", type=EventType.FESTIVAL.value, start_date=date(2030, 4, 1), end_date=date(2030, 4, 3)
    )
    assert event.status == EventStatus.UPCOMING.value
    assert event.coupon_start_time == "00:00"
    assert event.coupon_end_time == "20:00"


async def test_create_event_rejects_bad_dates(db):
    with pytest.raises(BadRequestException) as exc:
        await create_event(
            db, name="Backwards", type=EventType.SINGLE.value, start_date=date(2030, 4, 3), end_date=date(2030, 4, 1)
        )
    assert exc.value.error_code == "INVALID_DATE_RANGE"


async def test_status_moves_forward_only(db):
    event = await make_event(db, status=EventStatus.UPCOMING)

    event = await change_event_status(db, event_id=event.id, status=EventStatus.ACTIVE.value)
    assert event.status == EventStatus.ACTIVE.value

    with pytest.raises(BadRequestException):
        await change_event_status(db, event_id=event.id, status=EventStatus.UPCOMING.value)

    event = await change_event_status(db, event_id=event.id, status=EventStatus.ENDED.value)
    assert event.status == EventStatus.ENDED.value


async def test_list_events_filters(db):
    running = await make_event(db, type=EventType.RUNNING)
    await make_event(db, type=EventType.FESTIVAL, status=EventStatus.UPCOMING)

    found = await list_events(db, type=EventType.RUNNING.value)
    assert [e.id for e in found] == [running.id]
    assert len(await list_events(db, status=EventStatus.UPCOMING.value)) == 1


async def test_join_and_status(db):
    event = await make_event(db)
    user = await make_user(db)

    await join_event(db, user_id=user.id, event_id=event.id)
    with pytest.raises(ConflictException):
        await join_event(db, user_id=user.id, event_id=event.id)

    await make_stamps(db, user, event, 2)
    await make_post(db, event)

    status = await my_event_status(db, user_id=user.id, event_id=event.id)
    assert status["visited_posts"] == 2
    assert status["total_posts"] == 3
    assert status["stamps"] == 2
    assert status["active_coupons"] == 0
    assert status["rewards"] == []

    detail = await get_event(db, event.id)
    assert detail["participants_count"] == 1
    assert detail["posts_count"] == 3


async def test_cannot_join_ended_event(db):
    event = await make_event(db, status=EventStatus.ENDED)
    user = await make_user(db)
    with pytest.raises(BadRequestException) as exc:
        await join_event(db, user_id=user.id, event_id=event.id)
    assert exc.value.error_code == "EVENT_ENDED"


async def test_status_requires_participation(db):
    event = await make_event(db)
    user = await make_user(db)
    with pytest.raises(NotFoundException):
        await my_event_status(db, user_id=user.id, event_id=event.id)


async def test_list_posts_marks_visited(db):
    event = await make_event(db)
    user = await make_user(db)
    seen = await make_post(db, event)
    unseen = await make_post(db, event)
    await make_visit(db, user, seen)

    posts = {p["id"]: p for p in await list_posts(db, event_id=event.id, user_id=user.id)}
    assert posts[seen.id]["is_visited"] is True
    assert posts[unseen.id]["is_visited"] is False


async def test_create_post_requires_linked_merchant(db):
    event = await make_event(db)
    merchant = await make_merchant(db)

    with pytest.raises(BadRequestException) as exc:
        await create_post(db, event_id=event.id, name="Kiosk", category="RESTAURANT", merchant_id=merchant.id)
    assert exc.value.error_code == "MERCHANT_NOT_IN_EVENT"

    await link_merchant_to_event(db, event_id=event.id, merchant_id=merchant.id)
    post = await create_post(db, event_id=event.id, name="Kiosk", category="RESTAURANT", merchant_id=merchant.id)
    assert post.qr_code.startswith("POST-")

    with pytest.raises(ConflictException):
        await create_post(db, event_id=event.id, name="Copy", category="OTHER", qr_code=post.qr_code)


async def test_merchant_lifecycle(db):
    merchant = await register_merchant(
        db,
        store_name="Noodle Bar",
        category="RESTAURANT",
        business_number="123-45-67890",
        owner_name="Kim",
        email="noodle@example.com",
        password="correct horse",
    )
    assert merchant.status == MerchantStatus.PENDING.value

    with pytest.raises(ConflictException):
        await register_merchant(
            db,
            store_name="Noodle Bar 2",
            category="RESTAURANT",
            business_number="999-99-99999",
            owner_name="Kim",
            email="noodle@example.com",
            password="correct horse",
        )

    with pytest.raises(BadRequestException):
        await set_merchant_status(db, merchant_id=merchant.id, status=MerchantStatus.SUSPENDED.value)

    merchant = await set_merchant_status(db, merchant_id=merchant.id, status=MerchantStatus.APPROVED.value)
    assert merchant.status == MerchantStatus.APPROVED.value


async def test_available_categories_follow_links(db):
    event = await make_event(db)
    cafe = await make_merchant(db, category="CAFE", event=event)
    await make_merchant(db, category="RESTAURANT", event=event)
    await make_merchant(db, category="TOURIST", event=event, status=MerchantStatus.PENDING)

    assert await available_categories(db, event.id) == ["CAFE", "RESTAURANT"]

    await unlink_merchant_from_event(db, event_id=event.id, merchant_id=cafe.id)
    assert await available_categories(db, event.id) == ["RESTAURANT"]

    await link_merchant_to_event(db, event_id=event.id, merchant_id=cafe.id)
    assert await available_categories(db, event.id) == ["CAFE", "RESTAURANT"]


async def test_runner_verifies_finish_once(db):
    event = await make_event(db, type=EventType.RUNNING)
    user = await make_user(db)
    joined = await join_event(db, user_id=user.id, event_id=event.id, user_type=UserType.RUNNER.value)
    assert joined.user_type == "RUNNER"

    result = await verify_finish(db, user_id=user.id, event_id=event.id, finish_code="FIN-0042")
    assert result["verified"] is True

    status = await my_event_status(db, user_id=user.id, event_id=event.id)
    assert status["is_finished"] is True
    assert status["finished_at"] == result["finished_at"]

    with pytest.raises(ConflictException) as exc:
        await verify_finish(db, user_id=user.id, event_id=event.id, finish_code="FIN-0042")
    assert exc.value.error_code == "ALREADY_FINISHED"


async def test_finish_requires_participation(db):
    event = await make_event(db, type=EventType.RUNNING)
    user = await make_user(db)
    with pytest.raises(NotFoundException):
        await verify_finish(db, user_id=user.id, event_id=event.id, finish_code="FIN-1")


async def test_only_runners_can_finish(db):
    event = await make_event(db, type=EventType.RUNNING)
    user = await make_user(db)
    await join_event(db, user_id=user.id, event_id=event.id, user_type=UserType.VISITOR.value)

    with pytest.raises(BadRequestException) as exc:
        await verify_finish(db, user_id=user.id, event_id=event.id, finish_code="FIN-1")
    assert exc.value.error_code == "NOT_A_RUNNER"

    status = await my_event_status(db, user_id=user.id, event_id=event.id)
    assert status["is_finished"] is False
    assert status["finished_at"] is None


async def test_list_my_events_newest_first(db):
    first = await make_event(db)
    second = await make_event(db, type=EventType.RUNNING)
    await make_event(db)
    user = await make_user(db)

    await join_event(db, user_id=user.id, event_id=first.id)
    await join_event(db, user_id=user.id, event_id=second.id, user_type=UserType.RUNNER.value)

    mine = await list_my_events(db, user_id=user.id)
    assert [m["event"].id for m in mine] == [second.id, first.id]
    assert [m["user_type"] for m in mine] == ["RUNNER", "PARTICIPANT"]
    assert all(m["is_finished"] is False for m in mine)
    assert await list_my_events(db, user_id=(await make_user(db)).id) == []
