"""Database seed script for local development.

Usage:
    python scripts/seed.py

Creates a handful of demo accounts, follow edges between them and a few
posts. Each post gets a placeholder photo in object storage when MinIO is
reachable; otherwise posts are created without photos.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from uuid import uuid4

from PIL import Image
from sqlalchemy import select

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from core.security import hash_password  # noqa: E402
from db.session import AsyncSessionMaker  # noqa: E402
from models import Post, User  # noqa: E402
from services.common import eq, unique_ids  # noqa: E402
from services.images import JPEG_CONTENT_TYPE  # noqa: E402
from services.media import UPLOADS_OBJECT_PREFIX, upload_url  # noqa: E402
from services.storage import upload_object  # noqa: E402


@dataclass(frozen=True)
class SeedUser:
    username: str
    name: str
    bio: str


@dataclass(frozen=True)
class SeedPost:
    username: str
    content: str
    visibility: str = "public"


BASE_USERS: Sequence[SeedUser] = [
    SeedUser(username="alice", name="Alice Demo", bio="Coffee and city walks."),
    SeedUser(username="bob", name="Bob Demo", bio="Weekend cyclist."),
    SeedUser(username="cara", name="Cara Demo", bio="Photographer in training."),
    SeedUser(username="dan", name="Dan Demo", bio="Street moments."),
]

BASE_POSTS: Sequence[SeedPost] = [
    SeedPost(username="alice", content="Sunny day snapshots."),
    SeedPost(username="alice", content="Notes to self.", visibility="private"),
    SeedPost(username="bob", content="Sunday hill climb complete."),
    SeedPost(username="cara", content="Golden hour on the way home."),
    SeedPost(username="dan", content="Crosswalk shadows."),
]

DEFAULT_PASSWORD = "password123"
PLACEHOLDER_COLORS: Sequence[tuple[int, int, int]] = [
    (243, 189, 80),
    (109, 163, 224),
    (170, 128, 215),
    (90, 170, 120),
    (219, 121, 146),
]


def build_seed_follows(usernames: Sequence[str]) -> list[tuple[str, str]]:
    """Each user follows the next one in the list, wrapping around."""
    if len(usernames) < 2:
        return []
    return [
        (follower, usernames[(index + 1) % len(usernames)])
        for index, follower in enumerate(usernames)
    ]


def _build_placeholder_jpeg(seed_index: int) -> bytes:
    color = PLACEHOLDER_COLORS[seed_index % len(PLACEHOLDER_COLORS)]
    image = Image.new("RGB", (1080, 1080), color)
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=88)
    return buffer.getvalue()


def upload_placeholder_photo(seed_index: int) -> str | None:
    filename = f"{uuid4().hex}.jpg"
    try:
        upload_object(
            f"{UPLOADS_OBJECT_PREFIX}/{filename}",
            _build_placeholder_jpeg(seed_index),
            JPEG_CONTENT_TYPE,
        )
    except Exception as exc:
        print(f"⚠️ Could not upload placeholder photo: {exc}")
        return None
    return upload_url(filename)


async def get_or_create_user(session, payload: SeedUser) -> User:
    result = await session.execute(select(User).where(eq(User.username, payload.username)))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        username=payload.username,
        name=payload.name,
        bio=payload.bio,
        password_hash=hash_password(DEFAULT_PASSWORD),
    )
    session.add(user)
    await session.flush()
    return user


def ensure_follows(users: dict[str, User], follows: Sequence[tuple[str, str]]) -> None:
    for follower_username, followee_username in follows:
        follower = users[follower_username]
        followee = users[followee_username]
        follower.following = unique_ids([*follower.following, followee.id])
        followee.followers = unique_ids([*followee.followers, follower.id])


async def ensure_posts(session, users: dict[str, User], posts: Sequence[SeedPost]) -> int:
    created = 0
    for index, payload in enumerate(posts):
        author = users[payload.username]
        result = await session.execute(
            select(Post.id).where(
                eq(Post.author_id, author.id),
                eq(Post.content, payload.content),
            )
        )
        if result.scalar_one_or_none() is not None:
            continue

        photo_url = await asyncio.to_thread(upload_placeholder_photo, index)
        session.add(
            Post(
                author_id=author.id,
                author_username=author.username,
                content=payload.content,
                photos=[photo_url] if photo_url else [],
                visibility=payload.visibility,
            )
        )
        created += 1
    return created


async def seed() -> None:
    follows = build_seed_follows([user.username for user in BASE_USERS])

    async with AsyncSessionMaker() as session:
        users: dict[str, User] = {}
        for payload in BASE_USERS:
            user = await get_or_create_user(session, payload)
            users[user.username] = user

        ensure_follows(users, follows)
        created_posts = await ensure_posts(session, users, BASE_POSTS)
        await session.commit()

    print("✅ Seed data inserted.")
    print("   Users:", ", ".join(user.username for user in BASE_USERS))
    print("   Default password:", DEFAULT_PASSWORD)
    print("   New posts:", created_posts)
    print("   Follows:", len(follows))


if __name__ == "__main__":
    asyncio.run(seed())
