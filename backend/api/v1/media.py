"""Serves stored uploads through short-lived signed object URLs."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, status
from fastapi.responses import RedirectResponse

from core import settings
from services import storage
from services.errors import NotFoundError
from services.media import UPLOADS_URL_PREFIX, object_key_for_filename

router = APIRouter(prefix=UPLOADS_URL_PREFIX, tags=["media"])

MEDIA_NO_STORE_CACHE_CONTROL = "no-store"


@router.get("/{filename}", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
async def get_upload(filename: str) -> RedirectResponse:
    object_key = object_key_for_filename(filename)
    if object_key is None:
        raise NotFoundError("Media not found")

    signed_url = await asyncio.to_thread(
        storage.create_presigned_get_url,
        object_key,
        expires_seconds=settings.signed_media_url_ttl_seconds,
    )
    response = RedirectResponse(signed_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.headers["Cache-Control"] = MEDIA_NO_STORE_CACHE_CONTROL
    return response
