"""Follow-graph maintenance.

Each edge is stored on both user documents: ``actor.following`` holds the
target and ``target.followers`` holds the actor. Both sides are written in
one commit, but operations stay idempotent so a retry after a partial write
converges on a symmetric edge.
"""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import User
from services.common import eq, unique_ids
from services.errors import InvalidOperationError, NotFoundError
from services.notifications import emit_notification

logger = logging.getLogger(__name__)


async def get_user_by_id(session: AsyncSession, user_id: str) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def get_user_by_username(session: AsyncSession, username: str) -> User:
    result = await session.execute(select(User).where(eq(User.username, username)).limit(1))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


def is_following(actor: User, target_id: str) -> bool:
    return target_id in actor.following


async def follow_user(session: AsyncSession, *, actor: User, target_id: str) -> bool:
    """Create the edge actor -> target; return False when it already existed."""
    actor_id = actor.id
    actor_username = actor.username
    target = await get_user_by_id(session, target_id)
    if target.id == actor_id:
        raise InvalidOperationError("Cannot follow yourself")

    if is_following(actor, target.id):
        if actor_id not in target.followers:
            target.followers = unique_ids([*target.followers, actor_id])
            session.add(target)
            await session.commit()
            logger.info(
                "Repaired asymmetric follow edge",
                extra={"follower_id": actor_id, "followee_id": target.id},
            )
        return False

    actor.following = unique_ids([*actor.following, target.id])
    target.followers = unique_ids([*target.followers, actor_id])
    session.add(actor)
    session.add(target)
    await session.commit()

    await emit_notification(
        session,
        recipient_id=target.id,
        actor_id=actor_id,
        actor_username=actor_username,
        kind="follow",
    )
    return True


async def unfollow_user(session: AsyncSession, *, actor: User, target_id: str) -> bool:
    """Remove the edge actor -> target from both sides; return False if absent."""
    actor_id = actor.id
    target = await get_user_by_id(session, target_id)

    was_following = is_following(actor, target.id)
    remaining_following = [user_id for user_id in actor.following if user_id != target.id]
    remaining_followers = [user_id for user_id in target.followers if user_id != actor_id]
    if not was_following and len(remaining_followers) == len(target.followers):
        return False

    actor.following = unique_ids(remaining_following)
    target.followers = unique_ids(remaining_followers)
    session.add(actor)
    session.add(target)
    await session.commit()
    return was_following


async def list_users_by_ids(session: AsyncSession, user_ids: list[str]) -> list[User]:
    """Load users for an id list, preserving the list's order and skipping unknown ids."""
    if not user_ids:
        return []
    id_column = cast(ColumnElement[str], User.id)
    result = await session.execute(select(User).where(id_column.in_(user_ids)))
    users_by_id = {user.id: user for user in result.scalars().all()}
    return [users_by_id[user_id] for user_id in user_ids if user_id in users_by_id]


async def list_users(
    session: AsyncSession,
    *,
    limit: int,
    offset: int = 0,
) -> list[User]:
    query = (
        select(User)
        .order_by(cast(Any, User.username).asc())
        .limit(limit)
    )
    if offset > 0:
        query = query.offset(offset)
    result = await session.execute(query)
    return list(result.scalars().all())
