"""Shared post and profile view models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from models import Post, User
from services.engagement import normalize_likes
from services.social_graph import is_following


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    name: str = ""
    bio: str = ""
    avatar_url: str | None = None


class UserProfile(UserSummary):
    followers: list[str] = []
    following: list[str] = []
    follower_count: int = 0
    following_count: int = 0
    is_following: bool = False

    @classmethod
    def from_user(cls, user: User, *, viewer: User | None = None) -> "UserProfile":
        return cls(
            id=user.id,
            username=user.username,
            name=user.name,
            bio=user.bio,
            avatar_url=user.avatar_url,
            followers=list(user.followers),
            following=list(user.following),
            follower_count=len(user.followers),
            following_count=len(user.following),
            is_following=viewer is not None and is_following(viewer, user.id),
        )


class CommentResponse(BaseModel):
    id: str
    user_id: str
    username: str
    content: str
    created_at: datetime

    @classmethod
    def from_comment(cls, comment: dict[str, Any]) -> "CommentResponse":
        return cls.model_validate(comment)


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: str
    author_username: str
    content: str
    photos: list[str]
    likes: list[str]
    like_count: int = 0
    viewer_has_liked: bool = False
    comments: list[CommentResponse]
    visibility: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(cls, post: Post, *, viewer_id: str | None = None) -> "PostResponse":
        if post.id is None:
            raise ValueError("Post record missing identifier")
        likes = normalize_likes(post)
        return cls(
            id=post.id,
            author_id=post.author_id,
            author_username=post.author_username,
            content=post.content,
            photos=list(post.photos),
            likes=likes,
            like_count=len(likes),
            viewer_has_liked=viewer_id is not None and viewer_id in likes,
            comments=[CommentResponse.from_comment(comment) for comment in post.comments],
            visibility=post.visibility,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


PostResponse.model_rebuild()


class UserPageResponse(BaseModel):
    user: UserProfile
    posts: list[PostResponse]
