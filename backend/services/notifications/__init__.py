"""Notification fan-out services."""

from .fanout import (
    emit_notification,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)
from .registry import (
    LiveChannel,
    LiveSession,
    SessionRegistry,
    get_session_registry,
    set_session_registry,
)
from .schemas import (
    MarkAllReadResponse,
    NotificationResponse,
    build_live_event,
    build_notification_message,
)

__all__ = [
    "LiveChannel",
    "LiveSession",
    "SessionRegistry",
    "get_session_registry",
    "set_session_registry",
    "emit_notification",
    "list_notifications",
    "mark_notification_read",
    "mark_all_notifications_read",
    "MarkAllReadResponse",
    "NotificationResponse",
    "build_live_event",
    "build_notification_message",
]
