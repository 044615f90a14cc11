"""Post creation, retrieval and engagement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from core import settings
from models import User
from services.engagement import (
    PostPatch,
    add_comment,
    create_post as create_post_record,
    delete_post as delete_post_record,
    get_post as get_visible_post,
    like_post as like_post_record,
    require_post_content,
    unlike_post as unlike_post_record,
    update_post as update_post_record,
    validate_visibility,
)
from services.errors import InvalidInputError
from services.media import discard_uploads, save_image_uploads
from .post_views import PostResponse

router = APIRouter(prefix="/posts", tags=["posts"])


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1)


def _selected_uploads(photos: list[UploadFile] | None) -> list[UploadFile]:
    selected = [photo for photo in (photos or []) if photo.filename]
    if len(selected) > settings.max_post_photos:
        raise InvalidInputError(
            f"A post can have at most {settings.max_post_photos} photos"
        )
    return selected


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
async def create_post(
    content: str | None = Form(default=None),
    visibility: str | None = Form(default=None),
    photos: list[UploadFile] | None = File(default=None),
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    # Reject bad fields before any upload reaches object storage.
    require_post_content(content)
    validate_visibility(visibility)
    uploads = _selected_uploads(photos)

    photo_urls = await save_image_uploads(uploads)
    try:
        post = await create_post_record(
            session,
            author=current_user,
            content=content,
            photos=photo_urls,
            visibility=visibility,
        )
    except Exception:
        await session.rollback()
        await discard_uploads(photo_urls)
        raise
    return PostResponse.from_post(post, viewer_id=post.author_id)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    post = await get_visible_post(session, viewer_id=current_user.id, post_id=post_id)
    return PostResponse.from_post(post, viewer_id=current_user.id)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    request: Request,
    content: str | None = Form(default=None),
    visibility: str | None = Form(default=None),
    photos: list[UploadFile] | None = File(default=None),
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    """Apply a partial update; supplied photos replace the existing ones."""
    viewer_id = current_user.id
    # An empty form field arrives as None; a supplied blank must still be rejected.
    if content is None and "content" in await request.form():
        content = ""
    if content is not None:
        require_post_content(content)
    uploads = _selected_uploads(photos)
    photo_urls = await save_image_uploads(uploads) if uploads else None

    try:
        post = await update_post_record(
            session,
            actor=current_user,
            post_id=post_id,
            patch=PostPatch(content=content, visibility=visibility, photos=photo_urls),
        )
    except Exception:
        await session.rollback()
        if photo_urls:
            await discard_uploads(photo_urls)
        raise
    return PostResponse.from_post(post, viewer_id=viewer_id)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    post = await delete_post_record(session, actor=current_user, post_id=post_id)
    await discard_uploads(post.photos)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/like", response_model=PostResponse)
async def like_post(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    viewer_id = current_user.id
    post = await like_post_record(session, actor=current_user, post_id=post_id)
    return PostResponse.from_post(post, viewer_id=viewer_id)


@router.post("/{post_id}/unlike", response_model=PostResponse)
async def unlike_post(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    viewer_id = current_user.id
    post = await unlike_post_record(session, actor=current_user, post_id=post_id)
    return PostResponse.from_post(post, viewer_id=viewer_id)


@router.post("/{post_id}/comment", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
async def comment_on_post(
    post_id: int,
    payload: CommentCreateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    viewer_id = current_user.id
    post = await add_comment(
        session,
        actor=current_user,
        post_id=post_id,
        content=payload.content,
    )
    return PostResponse.from_post(post, viewer_id=viewer_id)
