"""Database error classification helpers."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError comes from a unique index (handle clash)."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True
    # SQLite reports "UNIQUE constraint failed: users.username".
    message = str(original or error).lower()
    return "duplicate key" in message or "unique constraint" in message


def is_store_unavailable(error: DBAPIError) -> bool:
    """Return True when the error means the database could not be reached."""
    if error.connection_invalidated:
        return True
    return isinstance(error, (OperationalError, InterfaceError))


__all__ = ["is_store_unavailable", "is_unique_violation"]
