"""Stores uploaded images and maps them to their public ``/uploads`` URLs."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable
from uuid import uuid4

from fastapi import UploadFile

from core import settings

from . import storage
from .errors import InvalidInputError
from .images import UploadTooLargeError, process_image_bytes, read_upload_file

UPLOADS_URL_PREFIX = "/uploads"
UPLOADS_OBJECT_PREFIX = "uploads"
UPLOAD_FILENAME_PATTERN = re.compile(r"^[0-9a-f]{32}\.jpg$")
logger = logging.getLogger(__name__)


def upload_url(filename: str) -> str:
    return f"{UPLOADS_URL_PREFIX}/{filename}"


def object_key_for_filename(filename: str) -> str | None:
    """Return the storage key for a generated filename, or None if it is not one."""
    if not UPLOAD_FILENAME_PATTERN.fullmatch(filename):
        return None
    return f"{UPLOADS_OBJECT_PREFIX}/{filename}"


def object_key_for_url(url: str) -> str | None:
    prefix = f"{UPLOADS_URL_PREFIX}/"
    if not url.startswith(prefix):
        return None
    return object_key_for_filename(url[len(prefix) :])


async def save_image_upload(upload: UploadFile) -> str:
    """Normalize and store one uploaded image, returning its URL."""
    try:
        data = await read_upload_file(upload, settings.upload_max_bytes)
        processed_bytes, content_type = await asyncio.to_thread(process_image_bytes, data)
    except (UploadTooLargeError, ValueError) as exc:
        raise InvalidInputError(str(exc)) from exc

    filename = f"{uuid4().hex}.jpg"
    await asyncio.to_thread(
        storage.upload_object,
        f"{UPLOADS_OBJECT_PREFIX}/{filename}",
        processed_bytes,
        content_type,
    )
    return upload_url(filename)


async def save_image_uploads(uploads: Iterable[UploadFile]) -> list[str]:
    """Store uploads in order; on failure remove the ones already stored."""
    urls: list[str] = []
    try:
        for upload in uploads:
            urls.append(await save_image_upload(upload))
    except Exception:
        await discard_uploads(urls)
        raise
    return urls


async def discard_uploads(urls: Iterable[str]) -> None:
    """Best-effort removal of stored uploads referenced by URL."""
    for url in urls:
        object_key = object_key_for_url(url)
        if object_key is None:
            continue
        try:
            await asyncio.to_thread(storage.delete_object, object_key)
        except Exception as cleanup_error:
            logger.warning(
                "Failed to delete uploaded object",
                extra={"object_key": object_key},
                exc_info=cleanup_error,
            )
