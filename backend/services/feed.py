"""Feed composition and profile post listings."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import settings
from models import Post, User
from services.common import desc, eq, unique_ids


def clamp_limit(limit: int | None, maximum: int) -> int:
    if limit is None or limit > maximum:
        return maximum
    return max(limit, 1)


def build_visible_posts_filter(viewer_id: str) -> ColumnElement[bool]:
    """Public posts, plus every post authored by the viewer."""
    return cast(
        ColumnElement[bool],
        or_(eq(Post.visibility, "public"), eq(Post.author_id, viewer_id)),
    )


async def _fetch_page(
    session: AsyncSession,
    query: Any,
    *,
    limit: int,
    offset: int,
) -> tuple[list[Post], bool]:
    query = query.order_by(desc(Post.created_at), desc(Post.id)).limit(limit + 1)
    if offset > 0:
        query = query.offset(offset)
    result = await session.execute(query)
    posts = list(result.scalars().all())
    has_more = len(posts) > limit
    return posts[:limit], has_more


async def compose_feed(
    session: AsyncSession,
    user: User,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[Post], bool]:
    """Return the user's feed page and whether more posts follow it.

    The feed holds the user's own posts of any visibility and the public
    posts of the accounts the user follows, newest first.
    """
    page_size = clamp_limit(limit, settings.feed_limit)
    followed_ids = [user_id for user_id in unique_ids(user.following) if user_id != user.id]
    author_column = cast(ColumnElement[str], Post.author_id)

    visible = or_(
        and_(author_column.in_([*followed_ids, user.id]), eq(Post.visibility, "public")),
        eq(Post.author_id, user.id),
    )
    return await _fetch_page(
        session,
        select(Post).where(visible),
        limit=page_size,
        offset=offset,
    )


async def list_profile_posts(
    session: AsyncSession,
    *,
    viewer_id: str,
    author_id: str,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[Post], bool]:
    page_size = clamp_limit(limit, settings.feed_limit)
    query = select(Post).where(
        eq(Post.author_id, author_id),
        build_visible_posts_filter(viewer_id),
    )
    return await _fetch_page(session, query, limit=page_size, offset=offset)
