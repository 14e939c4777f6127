# app/routers/events.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import get_current_user
from app.models.enums import EventStatus, EventType
from app.models.user import User
from app.schemas.events import (
    EventDetailOut,
    EventOut,
    FinishIn,
    FinishOut,
    JoinEventIn,
    JoinEventOut,
    MyEventOut,
    MyEventStatusOut,
)
from app.schemas.posts import PostOut
from app.services.events import (
    get_event,
    join_event,
    list_events,
    list_my_events,
    my_event_status,
    verify_finish,
)
from app.services.posts import list_posts

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=list[EventOut])
async def list_all(
    status: EventStatus | None = Query(default=None),
    type: EventType | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    return await list_events(
        db,
        status=status.value if status else None,
        type=type.value if type else None,
        limit=limit,
        offset=offset,
    )


@router.get("/joined", response_model=list[MyEventOut])
async def joined(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await list_my_events(db, user_id=current_user.id)


@router.get("/{event_id}", response_model=EventDetailOut)
async def detail(event_id: int, db: AsyncSession = Depends(get_db)):
    data = await get_event(db, event_id)
    out = EventOut.model_validate(data["event"]).model_dump()
    return EventDetailOut(
        **out,
        posts_count=data["posts_count"],
        participants_count=data["participants_count"],
    )


@router.post("/{event_id}/join", response_model=JoinEventOut, status_code=201)
async def join(
    event_id: int,
    body: JoinEventIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await join_event(db, user_id=current_user.id, event_id=event_id, user_type=body.user_type.value)


@router.post("/{event_id}/finish", response_model=FinishOut)
async def finish(
    event_id: int,
    body: FinishIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await verify_finish(db, user_id=current_user.id, event_id=event_id, finish_code=body.finish_code)


@router.get("/{event_id}/me", response_model=MyEventStatusOut)
async def my_status(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await my_event_status(db, user_id=current_user.id, event_id=event_id)


@router.get("/{event_id}/posts", response_model=list[PostOut])
async def posts(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await list_posts(db, event_id=event_id, user_id=current_user.id)
