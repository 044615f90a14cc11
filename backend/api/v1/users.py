"""Profile, directory and follow-graph endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from models import User
from services.errors import InvalidInputError
from services.feed import list_profile_posts
from services.media import discard_uploads, save_image_upload
from services.social_graph import (
    follow_user as follow_user_edge,
    get_user_by_username,
    list_users,
    list_users_by_ids,
    unfollow_user as unfollow_user_edge,
)
from .pagination import MAX_PAGE_SIZE, paginate_slice, set_next_offset_header
from .post_views import PostResponse, UserPageResponse, UserProfile, UserSummary

router = APIRouter(tags=["users"])

MAX_PROFILE_NAME_LENGTH = 80
MAX_PROFILE_BIO_LENGTH = 160


class FollowMutationResponse(BaseModel):
    message: str
    following: bool


@router.get("/main", response_model=UserProfile)
async def get_main(current_user: User = Depends(get_current_user)) -> UserProfile:
    return UserProfile.from_user(current_user)


@router.get("/profile", response_model=UserProfile)
async def get_profile(current_user: User = Depends(get_current_user)) -> UserProfile:
    return UserProfile.from_user(current_user)


@router.put("/profile", response_model=UserProfile)
async def update_profile(
    name: str | None = Form(default=None),
    bio: str | None = Form(default=None),
    avatar: UploadFile | None = File(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> UserProfile:
    """Update the authenticated user's name, bio and avatar."""
    if name is not None:
        normalized_name = name.strip()
        if len(normalized_name) > MAX_PROFILE_NAME_LENGTH:
            raise InvalidInputError(
                f"Name must be at most {MAX_PROFILE_NAME_LENGTH} characters"
            )
        if normalized_name:
            current_user.name = normalized_name
    if bio is not None:
        normalized_bio = bio.strip()
        if len(normalized_bio) > MAX_PROFILE_BIO_LENGTH:
            raise InvalidInputError(
                f"Bio must be at most {MAX_PROFILE_BIO_LENGTH} characters"
            )
        current_user.bio = normalized_bio

    previous_avatar_url = current_user.avatar_url
    uploaded_avatar_url: str | None = None
    if avatar is not None and avatar.filename:
        uploaded_avatar_url = await save_image_upload(avatar)
        current_user.avatar_url = uploaded_avatar_url

    session.add(current_user)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        if uploaded_avatar_url is not None:
            await discard_uploads([uploaded_avatar_url])
        raise
    await session.refresh(current_user)

    if (
        uploaded_avatar_url is not None
        and previous_avatar_url is not None
        and previous_avatar_url != uploaded_avatar_url
    ):
        await discard_uploads([previous_avatar_url])

    return UserProfile.from_user(current_user)


@router.get("/users", response_model=list[UserProfile])
async def list_directory(
    response: Response,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = MAX_PAGE_SIZE,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[UserProfile]:
    """List accounts annotated with whether the caller follows each one."""
    users = await list_users(session, limit=limit + 1, offset=offset)
    has_more = len(users) > limit
    set_next_offset_header(response, offset=offset, limit=limit, has_more=has_more)
    return [UserProfile.from_user(user, viewer=current_user) for user in users[:limit]]


@router.get("/users/{username}", response_model=UserPageResponse)
async def get_user_page(
    username: str,
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserPageResponse:
    """Fetch a profile together with the posts the caller may see."""
    user = await get_user_by_username(session, username)
    posts, has_more = await list_profile_posts(
        session,
        viewer_id=current_user.id,
        author_id=user.id,
        limit=limit,
        offset=offset,
    )
    set_next_offset_header(response, offset=offset, limit=len(posts), has_more=has_more)
    return UserPageResponse(
        user=UserProfile.from_user(user, viewer=current_user),
        posts=[PostResponse.from_post(post, viewer_id=current_user.id) for post in posts],
    )


@router.get("/users/{username}/followers", response_model=list[UserSummary])
async def list_followers(
    username: str,
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[UserSummary]:
    user = await get_user_by_username(session, username)
    page_ids = paginate_slice(user.followers, response, limit=limit, offset=offset)
    followers = await list_users_by_ids(session, page_ids)
    return [UserSummary.model_validate(follower) for follower in followers]


@router.get("/users/{username}/following", response_model=list[UserSummary])
async def list_following(
    username: str,
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[UserSummary]:
    user = await get_user_by_username(session, username)
    page_ids = paginate_slice(user.following, response, limit=limit, offset=offset)
    following = await list_users_by_ids(session, page_ids)
    return [UserSummary.model_validate(followee) for followee in following]


@router.post("/follow/{user_id}", response_model=FollowMutationResponse)
async def follow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowMutationResponse:
    created = await follow_user_edge(session, actor=current_user, target_id=user_id)
    message = "Followed user" if created else "Already following"
    return FollowMutationResponse(message=message, following=True)


@router.post("/unfollow/{user_id}", response_model=FollowMutationResponse)
async def unfollow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowMutationResponse:
    removed = await unfollow_user_edge(session, actor=current_user, target_id=user_id)
    message = "Unfollowed user" if removed else "Not following"
    return FollowMutationResponse(message=message, following=False)
