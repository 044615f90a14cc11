"""Notification payload schemas shared by REST responses and live events."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from models import Notification

NotificationKind = Literal["like", "comment", "follow"]
NOTIFICATION_EVENT = "notification"

_MESSAGE_TEMPLATES: dict[str, str] = {
    "like": "{username} liked your post",
    "comment": "{username} commented on your post",
    "follow": "{username} followed you",
}


def build_notification_message(kind: str, actor_username: str) -> str:
    template = _MESSAGE_TEMPLATES.get(kind, "{username} interacted with you")
    return template.format(username=actor_username)


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: NotificationKind
    actor_id: str
    actor_username: str
    post_id: int | None = None
    content: str | None = None
    message: str
    read: bool
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        if notification.id is None:
            raise ValueError("Notification record missing identifier")
        return cls(
            id=notification.id,
            kind=notification.kind,  # type: ignore[arg-type]
            actor_id=notification.actor_id,
            actor_username=notification.actor_username,
            post_id=notification.post_id,
            content=notification.content,
            message=build_notification_message(notification.kind, notification.actor_username),
            read=notification.read,
            created_at=notification.created_at,
        )


class MarkAllReadResponse(BaseModel):
    updated_count: int


def build_live_event(notification: Notification) -> dict[str, Any]:
    """Shape a stored notification as the JSON frame pushed to live sessions."""
    payload = NotificationResponse.from_notification(notification)
    return {"event": NOTIFICATION_EVENT, "data": payload.model_dump(mode="json")}
