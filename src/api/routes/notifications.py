"""
Notification endpoints
======================

GET /api/v1/notifications                        -- latest 50
GET /api/v1/notifications/unread/count           -- unread badge count
PUT /api/v1/notifications/mark-all-read          -- clear the badge
PUT /api/v1/notifications/{notification_id}/read -- mark as read
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db
from src.api.middleware import limiter
from src.api.schemas import (
    MarkAllReadResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from src.config import settings
from src.infrastructure.repositories import NotificationRepository

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get(
    "",
    response_model=list[NotificationResponse],
    summary="List the most recent notifications",
)
@limiter.limit(settings.rate_limit)
async def list_notifications(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    rows = await NotificationRepository(db).get_recent(limit=50)
    return [NotificationResponse.from_model(r) for r in rows]


@router.get(
    "/unread/count",
    response_model=UnreadCountResponse,
    summary="Count unread notifications",
)
@limiter.limit(settings.rate_limit)
async def unread_count(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(unread=await NotificationRepository(db).count_unread())


@router.put(
    "/mark-all-read",
    response_model=MarkAllReadResponse,
    summary="Mark every notification as read",
)
@limiter.limit(settings.rate_limit)
async def mark_all_read(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    updated = await NotificationRepository(db).mark_all_read()
    return MarkAllReadResponse(updated=updated)


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
@limiter.limit(settings.rate_limit)
async def mark_notification_read(
    request: Request,
    notification_id: int,
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationRepository(db).mark_read(notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.flush()
    await db.refresh(notification)
    return NotificationResponse.from_model(notification)
