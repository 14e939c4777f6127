# app/routers/admin_events.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.deps import require_admin
from app.models.enums import EventStatus, EventType
from app.schemas.events import EventCreate, EventOut, EventStatusUpdate
from app.schemas.merchants import EventMerchantOut
from app.services.events import change_event_status, create_event, list_events
from app.services.merchants import link_merchant_to_event, unlink_merchant_from_event

router = APIRouter(prefix="/admin/events", tags=["Admin - Events"])


@router.post("", response_model=EventOut, status_code=201)
async def create(
    body: EventCreate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await create_event(
        db,
        name=body.name,
        type=body.type.value,
        start_date=body.start_date,
        end_date=body.end_date,
        region=body.region,
        description=body.description,
        coupon_start_time=body.coupon_start_time,
        coupon_end_time=body.coupon_end_time,
    )


@router.get("", response_model=list[EventOut])
async def list_all(
    status: EventStatus | None = Query(default=None),
    type: EventType | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_events(
        db,
        status=status.value if status else None,
        type=type.value if type else None,
        limit=limit,
        offset=offset,
    )


@router.patch("/{event_id}/status", response_model=EventOut)
async def update_status(
    event_id: int,
    body: EventStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await change_event_status(db, event_id=event_id, status=body.status.value)


@router.put("/{event_id}/merchants/{merchant_id}", response_model=EventMerchantOut)
async def link_merchant(
    event_id: int,
    merchant_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await link_merchant_to_event(db, event_id=event_id, merchant_id=merchant_id)


@router.delete("/{event_id}/merchants/{merchant_id}", response_model=EventMerchantOut)
async def unlink_merchant(
    event_id: int,
    merchant_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await unlink_merchant_from_event(db, event_id=event_id, merchant_id=merchant_id)
