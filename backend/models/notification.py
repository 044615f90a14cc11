"""Persisted notification model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlmodel import Field, SQLModel

NOTIFICATION_KINDS = ("like", "comment", "follow")


class Notification(SQLModel, table=True):
    """An engagement event addressed to ``user_id``.

    ``post_id`` has no foreign key; deleting a post leaves
    its notifications in place.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            "kind IN ('like', 'comment', 'follow')",
            name="ck_notifications_kind",
        ),
        CheckConstraint("user_id <> actor_id", name="ck_notifications_no_self"),
        Index("ix_notifications_user_created_at", "user_id", "created_at"),
    )

    id: int | None = Field(default=None, sa_column=Column(Integer, primary_key=True))
    user_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    actor_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    actor_username: str = Field(sa_column=Column(String(30), nullable=False))
    kind: str = Field(sa_column=Column(String(16), nullable=False))
    post_id: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    content: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    read: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default=text("false")),
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )
    )
