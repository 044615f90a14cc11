"""Post lifecycle and engagement: likes and embedded comments."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from core import settings
from models import POST_VISIBILITIES, Post, User
from services.common import unique_ids
from services.errors import ForbiddenError, InvalidInputError, NotFoundError
from services.notifications import emit_notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostPatch:
    """Fields supplied by an update; ``None`` means leave unchanged."""

    content: str | None = None
    visibility: str | None = None
    photos: list[str] | None = None


def require_post_content(content: str | None) -> str:
    if content is None or not content.strip():
        raise InvalidInputError("Post content is required")
    return content


def validate_visibility(visibility: str | None) -> str:
    if visibility is None:
        return "public"
    if visibility not in POST_VISIBILITIES:
        raise InvalidInputError(
            f"Visibility must be one of: {', '.join(POST_VISIBILITIES)}"
        )
    return visibility


def validate_photos(photos: Iterable[str] | None) -> list[str]:
    photo_list = [photo for photo in (photos or []) if photo]
    if len(photo_list) > settings.max_post_photos:
        raise InvalidInputError(
            f"A post can have at most {settings.max_post_photos} photos"
        )
    return photo_list


def normalize_likes(post: Post) -> list[str]:
    """Return the post's likes with nulls and duplicates removed."""
    return unique_ids(post.likes)


def can_view_post(viewer_id: str, post: Post) -> bool:
    return post.visibility == "public" or post.author_id == viewer_id


async def get_post(session: AsyncSession, *, viewer_id: str, post_id: int) -> Post:
    """Return a post the viewer may see; private posts of others read as missing."""
    post = await session.get(Post, post_id)
    if post is None or not can_view_post(viewer_id, post):
        raise NotFoundError("Post not found")
    return post


async def require_post_owner(session: AsyncSession, *, actor_id: str, post_id: int) -> Post:
    post = await session.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    if post.author_id != actor_id:
        raise ForbiddenError("Only the author can modify this post")
    return post


async def create_post(
    session: AsyncSession,
    *,
    author: User,
    content: str | None,
    photos: Iterable[str] | None = None,
    visibility: str | None = None,
) -> Post:
    post = Post(
        author_id=author.id,
        author_username=author.username,
        content=require_post_content(content),
        photos=validate_photos(photos),
        visibility=validate_visibility(visibility),
    )
    session.add(post)
    await session.commit()
    await session.refresh(post)
    logger.info("Post created", extra={"post_id": post.id, "author_id": post.author_id})
    return post


async def update_post(
    session: AsyncSession,
    *,
    actor: User,
    post_id: int,
    patch: PostPatch,
) -> Post:
    post = await require_post_owner(session, actor_id=actor.id, post_id=post_id)

    if patch.content is not None:
        post.content = require_post_content(patch.content)
    if patch.visibility is not None:
        post.visibility = validate_visibility(patch.visibility)
    if patch.photos is not None:
        post.photos = validate_photos(patch.photos)
    post.likes = normalize_likes(post)

    session.add(post)
    await session.commit()
    await session.refresh(post)
    return post


async def delete_post(session: AsyncSession, *, actor: User, post_id: int) -> Post:
    """Delete an owned post and return it so callers can clean up its photos.

    Notifications that reference the post are left in place.
    """
    post = await require_post_owner(session, actor_id=actor.id, post_id=post_id)
    await session.delete(post)
    await session.commit()
    logger.info("Post deleted", extra={"post_id": post_id, "author_id": actor.id})
    return post


async def like_post(session: AsyncSession, *, actor: User, post_id: int) -> Post:
    actor_id = actor.id
    actor_username = actor.username
    post = await get_post(session, viewer_id=actor_id, post_id=post_id)

    likes = normalize_likes(post)
    newly_liked = actor_id not in likes
    if newly_liked:
        likes.append(actor_id)
    post.likes = likes
    session.add(post)
    await session.commit()
    await session.refresh(post)

    if newly_liked:
        author_id = post.author_id
        await emit_notification(
            session,
            recipient_id=author_id,
            actor_id=actor_id,
            actor_username=actor_username,
            kind="like",
            post_id=post_id,
        )
        await session.refresh(post)
    return post


async def unlike_post(session: AsyncSession, *, actor: User, post_id: int) -> Post:
    actor_id = actor.id
    post = await get_post(session, viewer_id=actor_id, post_id=post_id)

    post.likes = [user_id for user_id in normalize_likes(post) if user_id != actor_id]
    session.add(post)
    await session.commit()
    await session.refresh(post)
    return post


def build_comment(actor: User, content: str) -> dict[str, Any]:
    return {
        "id": uuid4().hex,
        "user_id": actor.id,
        "username": actor.username,
        "content": content,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


def require_comment_content(content: str | None) -> str:
    if content is None or not content.strip():
        raise InvalidInputError("Comment content is required")
    if len(content) > settings.max_comment_length:
        raise InvalidInputError(
            f"Comment must be at most {settings.max_comment_length} characters"
        )
    return content


async def add_comment(
    session: AsyncSession,
    *,
    actor: User,
    post_id: int,
    content: str | None,
) -> Post:
    normalized = require_comment_content(content)
    actor_id = actor.id
    actor_username = actor.username
    post = await get_post(session, viewer_id=actor_id, post_id=post_id)

    post.comments = [*post.comments, build_comment(actor, normalized)]
    post.likes = normalize_likes(post)
    session.add(post)
    await session.commit()
    await session.refresh(post)

    await emit_notification(
        session,
        recipient_id=post.author_id,
        actor_id=actor_id,
        actor_username=actor_username,
        kind="comment",
        post_id=post_id,
        content=normalized,
    )
    await session.refresh(post)
    return post
