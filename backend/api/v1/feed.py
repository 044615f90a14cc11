"""Feed endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from models import User
from services.feed import compose_feed
from .pagination import MAX_PAGE_SIZE, set_next_offset_header
from .post_views import PostResponse

router = APIRouter(tags=["feed"])


@router.get("/feed", response_model=list[PostResponse])
@router.get("/posts", response_model=list[PostResponse])
async def home_feed(
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[PostResponse]:
    posts, has_more = await compose_feed(session, current_user, limit=limit, offset=offset)
    set_next_offset_header(response, offset=offset, limit=len(posts), has_more=has_more)
    return [PostResponse.from_post(post, viewer_id=current_user.id) for post in posts]
