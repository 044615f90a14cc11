"""User document model."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String, func, text
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Registered account together with both sides of its follow edges."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    username: str = Field(
        sa_column=Column(String(30), unique=True, nullable=False, index=True)
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    name: str = Field(
        default="", sa_column=Column(String(80), nullable=False, server_default=text("''"))
    )
    bio: str = Field(
        default="", sa_column=Column(String(160), nullable=False, server_default=text("''"))
    )
    avatar_url: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True)
    )
    # Ids are kept unique by services.common.unique_ids on every write.
    followers: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, server_default=text("'[]'")),
    )
    following: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, server_default=text("'[]'")),
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )
    )
