"""Database helpers."""

from .errors import is_store_unavailable, is_unique_violation
from .session import AsyncSessionMaker, async_engine, get_session, is_database_connected

__all__ = [
    "AsyncSessionMaker",
    "async_engine",
    "get_session",
    "is_database_connected",
    "is_store_unavailable",
    "is_unique_violation",
]
