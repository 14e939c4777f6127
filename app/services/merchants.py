# app/services/merchants.py
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)
from app.core.security import (
    ROLE_MERCHANT,
    hash_password,
    issue_token_pair,
    verify_password,
)
from app.models.enums import EventStatus, MerchantStatus
from app.models.event import Event
from app.models.merchant import EventMerchant, Merchant

logger = logging.getLogger(__name__)

# Allowed admin-driven status moves
_STATUS_TRANSITIONS: dict[str, set[str]] = {
    MerchantStatus.PENDING.value: {MerchantStatus.APPROVED.value, MerchantStatus.REJECTED.value},
    MerchantStatus.APPROVED.value: {MerchantStatus.SUSPENDED.value},
    MerchantStatus.SUSPENDED.value: {MerchantStatus.APPROVED.value},
    MerchantStatus.REJECTED.value: set(),
}


def _participating_merchants_stmt(event_id: int):
    return (
        select(Merchant)
        .join(EventMerchant, EventMerchant.merchant_id == Merchant.id)
        .where(
            EventMerchant.event_id == event_id,
            EventMerchant.is_active.is_(True),
            Merchant.status == MerchantStatus.APPROVED.value,
        )
    )


async def available_categories(db: AsyncSession, event_id: int) -> list[str]:
    """Distinct categories offered by approved merchants actively linked to the event, sorted."""
    stmt = (
        select(Merchant.category)
        .join(EventMerchant, EventMerchant.merchant_id == Merchant.id)
        .where(
            EventMerchant.event_id == event_id,
            EventMerchant.is_active.is_(True),
            Merchant.status == MerchantStatus.APPROVED.value,
        )
        .distinct()
    )
    res = await db.execute(stmt)
    return sorted(str(c) for c in res.scalars().all())


async def available_merchants(db: AsyncSession, event_id: int, category: str) -> list[Merchant]:
    stmt = _participating_merchants_stmt(event_id).where(Merchant.category == category).order_by(Merchant.id)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def is_participating(db: AsyncSession, *, event_id: int, merchant_id: int) -> bool:
    res = await db.execute(
        select(EventMerchant.id).where(
            EventMerchant.event_id == event_id,
            EventMerchant.merchant_id == merchant_id,
            EventMerchant.is_active.is_(True),
        )
    )
    return res.scalar_one_or_none() is not None


async def register_merchant(
    db: AsyncSession,
    *,
    store_name: str,
    category: str,
    business_number: str,
    owner_name: str,
    email: str,
    password: str,
    address: str | None = None,
    phone: str | None = None,
) -> Merchant:
    res = await db.execute(select(Merchant.id).where(Merchant.email == email))
    if res.scalar_one_or_none() is not None:
        raise ConflictException("Email already registered", error_code="EMAIL_TAKEN")

    res = await db.execute(select(Merchant.id).where(Merchant.business_number == business_number))
    if res.scalar_one_or_none() is not None:
        raise ConflictException("Business number already registered", error_code="BUSINESS_NUMBER_TAKEN")

    merchant = Merchant(
        name=store_name,
        category=category,
        business_number=business_number,
        owner_name=owner_name,
        email=email,
        password_hash=hash_password(password),
        address=address,
        phone=phone,
        status=MerchantStatus.PENDING.value,
    )
    db.add(merchant)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException("Merchant already registered", error_code="MERCHANT_TAKEN")

    await db.refresh(merchant)
    logger.info("merchant registered id=%s category=%s", merchant.id, merchant.category)
    return merchant


async def merchant_login(db: AsyncSession, *, email: str, password: str) -> dict:
    res = await db.execute(select(Merchant).where(Merchant.email == email))
    merchant = res.scalar_one_or_none()

    if not merchant or not verify_password(password, merchant.password_hash):
        raise UnauthorizedException("Invalid email or password")

    if merchant.status != MerchantStatus.APPROVED.value:
        raise BadRequestException(f"Merchant status: {merchant.status}", error_code="MERCHANT_NOT_APPROVED")

    merchant.last_login_at = utcnow()
    await db.commit()

    return {
        **issue_token_pair(subject_id=merchant.id, role=ROLE_MERCHANT),
        "merchant_id": merchant.id,
        "merchant_name": merchant.name,
    }


async def set_merchant_status(db: AsyncSession, *, merchant_id: int, status: str) -> Merchant:
    merchant = await db.get(Merchant, merchant_id)
    if not merchant:
        raise NotFoundException("Merchant not found")

    if status not in _STATUS_TRANSITIONS.get(merchant.status, set()):
        raise BadRequestException(
            f"Cannot move merchant from {merchant.status} to {status}",
            error_code="INVALID_STATUS_TRANSITION",
        )

    merchant.status = status
    await db.commit()
    await db.refresh(merchant)
    logger.info("merchant %s status -> %s", merchant.id, status)
    return merchant


async def link_merchant_to_event(db: AsyncSession, *, event_id: int, merchant_id: int) -> EventMerchant:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundException("Event not found")
    if event.status == EventStatus.ENDED.value:
        raise BadRequestException("Event has ended", error_code="EVENT_ENDED")

    merchant = await db.get(Merchant, merchant_id)
    if not merchant:
        raise NotFoundException("Merchant not found")

    res = await db.execute(
        select(EventMerchant).where(
            EventMerchant.event_id == event_id,
            EventMerchant.merchant_id == merchant_id,
        )
    )
    link = res.scalar_one_or_none()

    try:
        if link is None:
            link = EventMerchant(event_id=event_id, merchant_id=merchant_id, is_active=True)
            db.add(link)
        else:
            link.is_active = True
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException("Merchant already linked to this event")

    await db.refresh(link)
    return link


async def unlink_merchant_from_event(db: AsyncSession, *, event_id: int, merchant_id: int) -> EventMerchant:
    res = await db.execute(
        select(EventMerchant).where(
            EventMerchant.event_id == event_id,
            EventMerchant.merchant_id == merchant_id,
        )
    )
    link = res.scalar_one_or_none()
    if not link:
        raise NotFoundException("Merchant is not linked to this event")

    link.is_active = False
    await db.commit()
    await db.refresh(link)
    return link


async def get_my_merchant(db: AsyncSession, merchant: Merchant) -> dict:
    res = await db.execute(
        select(Event.id, Event.name, Event.status)
        .join(EventMerchant, EventMerchant.event_id == Event.id)
        .where(EventMerchant.merchant_id == merchant.id, EventMerchant.is_active.is_(True))
        .order_by(Event.start_date.desc())
    )
    return {
        "id": merchant.id,
        "name": merchant.name,
        "category": merchant.category,
        "address": merchant.address,
        "phone": merchant.phone,
        "status": merchant.status,
        "active_events": [{"id": int(r[0]), "name": str(r[1]), "status": str(r[2])} for r in res.all()],
    }
