"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core import decode_token
from core.security import ACCESS_TOKEN_TYPE
from db import get_session
from models import User
from services.errors import ForbiddenError, UnauthorizedError
from services.rate_limiter import extract_authorization_token


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def resolve_token_subject(token: str) -> str:
    """Return the user id carried by an access token.

    Raises ForbiddenError when the token is malformed, expired or not an
    access token.
    """
    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise ForbiddenError("Invalid or expired token") from exc

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise ForbiddenError("Invalid token type")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise ForbiddenError("Invalid token subject")
    return subject


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> User:
    token = extract_authorization_token(request.headers.get("authorization"))
    if token is None:
        raise UnauthorizedError("Authentication token is required")

    user = await session.get(User, resolve_token_subject(token))
    if user is None:
        raise UnauthorizedError("User account no longer exists")
    return user
