"""Application factory."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_exception_handlers
from api.v1 import api_router, health_router, media_router
from core import settings
from core.logging import configure_logging, install_fail_fast_handler
from db import async_engine
from services import RateLimitMiddleware, get_rate_limiter

API_PREFIX = "/api/v1"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    install_fail_fast_handler(
        asyncio.get_running_loop(),
        terminate=settings.fail_fast_on_unhandled_errors,
    )
    logger.info("Starting %s", settings.app_name, extra={"app_env": settings.app_env})
    yield
    await async_engine.dispose()


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_middleware(
        RateLimitMiddleware,
        limiter_factory=get_rate_limiter,
        exempt_paths={"/health"},
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(api_router, prefix=API_PREFIX)
    app.include_router(media_router)
    app.include_router(health_router)
    return app
