"""Persist-then-deliver notification fan-out and notification queries."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core import settings
from models import Notification
from services.common import desc, eq
from services.errors import NotFoundError

from .registry import SessionRegistry, get_session_registry
from .schemas import NotificationKind, build_live_event

logger = logging.getLogger(__name__)


async def emit_notification(
    session: AsyncSession,
    *,
    recipient_id: str,
    actor_id: str,
    actor_username: str,
    kind: NotificationKind,
    post_id: int | None = None,
    content: str | None = None,
    registry: SessionRegistry | None = None,
) -> Notification | None:
    """Store a notification, then push it to the recipient's live sessions.

    Returns None without writing anything for self-notifications. Failures
    are logged and swallowed so the engagement that triggered the
    notification is never failed by it; a failed live push leaves the
    stored notification unread for later retrieval.
    """
    if recipient_id == actor_id:
        return None

    notification = Notification(
        user_id=recipient_id,
        actor_id=actor_id,
        actor_username=actor_username,
        kind=kind,
        post_id=post_id,
        content=content,
    )
    session.add(notification)
    try:
        await session.commit()
        await session.refresh(notification)
    except Exception as exc:
        await session.rollback()
        logger.error(
            "Failed to persist notification",
            extra={"recipient_id": recipient_id, "actor_id": actor_id, "kind": kind},
            exc_info=exc,
        )
        return None

    registry = registry or get_session_registry()
    try:
        delivered = await registry.deliver(recipient_id, build_live_event(notification))
    except Exception as exc:
        logger.warning(
            "Live notification delivery failed",
            extra={"recipient_id": recipient_id, "notification_id": notification.id},
            exc_info=exc,
        )
        return notification

    logger.debug(
        "Notification emitted",
        extra={
            "recipient_id": recipient_id,
            "notification_id": notification.id,
            "live_sessions": delivered,
        },
    )
    return notification


async def list_notifications(
    session: AsyncSession,
    user_id: str,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[Notification]:
    """Return the user's notifications newest-first, bounded by the configured cap."""
    cap = settings.notification_limit
    effective_limit = cap if limit is None else max(1, min(limit, cap))
    query = (
        select(Notification)
        .where(eq(Notification.user_id, user_id))
        .order_by(
            desc(cast(Any, Notification.created_at)),
            desc(cast(Any, Notification.id)),
        )
        .limit(effective_limit)
    )
    if offset > 0:
        query = query.offset(offset)
    result = await session.execute(query)
    return list(result.scalars().all())


async def mark_notification_read(
    session: AsyncSession,
    user_id: str,
    notification_id: int,
) -> Notification:
    result = await session.execute(
        select(Notification)
        .where(
            eq(Notification.id, notification_id),
            eq(Notification.user_id, user_id),
        )
        .limit(1)
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found")

    if not notification.read:
        notification.read = True
        session.add(notification)
        await session.commit()
        await session.refresh(notification)
    return notification


async def mark_all_notifications_read(session: AsyncSession, user_id: str) -> int:
    result = await session.execute(
        update(Notification)
        .where(eq(Notification.user_id, user_id), eq(Notification.read, False))
        .values(read=True)
    )
    await session.commit()
    return int(cast(Any, result).rowcount or 0)
