"""Notification listing and read-state endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from core import settings
from models import User
from services.notifications import (
    MarkAllReadResponse,
    NotificationResponse,
    list_notifications as list_user_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    limit: Annotated[int | None, Query(ge=1, le=settings.notification_limit)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[NotificationResponse]:
    """Return the caller's notifications, newest first."""
    notifications = await list_user_notifications(
        session,
        current_user.id,
        limit=limit,
        offset=offset,
    )
    return [NotificationResponse.from_notification(item) for item in notifications]


@router.post("/read-all", response_model=MarkAllReadResponse)
async def read_all_notifications(
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkAllReadResponse:
    updated_count = await mark_all_notifications_read(session, current_user.id)
    return MarkAllReadResponse(updated_count=updated_count)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def read_notification(
    notification_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationResponse:
    notification = await mark_notification_read(session, current_user.id, notification_id)
    return NotificationResponse.from_notification(notification)
