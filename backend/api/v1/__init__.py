"""Version 1 API routers."""

from fastapi import APIRouter

from . import auth, feed, notifications, posts, realtime, users
from .health import router as health_router
from .media import router as media_router

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(feed.router)
api_router.include_router(posts.router)
api_router.include_router(notifications.router)
api_router.include_router(realtime.router)

__all__ = ["api_router", "health_router", "media_router"]
