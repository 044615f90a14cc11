"""Registration and login endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from core import create_access_token, hash_password, needs_rehash, verify_password
from db.errors import is_unique_violation
from models import User
from services.common import eq
from services.errors import ConflictError, UnauthorizedError

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)

USERNAME_PATTERN = r"^[A-Za-z0-9_.]{3,30}$"


class RegisterRequest(BaseModel):
    username: str = Field(pattern=USERNAME_PATTERN)
    password: str = Field(min_length=1, max_length=128)
    name: str | None = Field(default=None, max_length=80)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=30)
    password: str = Field(min_length=1, max_length=128)


class TokenResponse(BaseModel):
    token: str
    user_id: str
    username: str


def _username_taken() -> ConflictError:
    return ConflictError("Username is already taken")


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=TokenResponse)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db),
) -> TokenResponse:
    existing = await session.execute(
        select(User.id).where(eq(User.username, payload.username)).limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        raise _username_taken()

    user = User(
        username=payload.username,
        password_hash=hash_password(payload.password),
        name=(payload.name or "").strip(),
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise _username_taken() from exc
        raise

    logger.info("User registered", extra={"user_id": user.id})
    return TokenResponse(
        token=create_access_token(user.id),
        user_id=user.id,
        username=user.username,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db),
) -> TokenResponse:
    result = await session.execute(
        select(User).where(eq(User.username, payload.username.strip())).limit(1)
    )
    user = result.scalar_one_or_none()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)
        session.add(user)
        await session.commit()

    return TokenResponse(
        token=create_access_token(user.id),
        user_id=user.id,
        username=user.username,
    )
