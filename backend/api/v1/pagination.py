"""Shared pagination constants and response header helpers."""

from collections.abc import Sequence
from typing import TypeVar

from fastapi import Response

MAX_PAGE_SIZE = 100

T = TypeVar("T")


def set_next_offset_header(
    response: Response,
    *,
    offset: int,
    limit: int,
    has_more: bool,
) -> None:
    if has_more:
        response.headers["X-Next-Offset"] = str(offset + limit)


def paginate_slice(
    items: Sequence[T],
    response: Response,
    *,
    limit: int | None,
    offset: int,
) -> list[T]:
    """Slice an in-memory sequence and advertise the next offset when more remain."""
    window = list(items[offset:])
    if limit is None:
        return window
    has_more = len(window) > limit
    set_next_offset_header(response, offset=offset, limit=limit, has_more=has_more)
    return window[:limit]
