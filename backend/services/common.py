"""Shared SQLAlchemy and list-normalization helpers."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, cast

from sqlalchemy.sql import ColumnElement


def eq(column: Any, value: Any) -> ColumnElement[bool]:
    """Typed equality expression helper."""
    return cast(ColumnElement[bool], column == value)


def desc(column: Any) -> Any:
    """Typed descending ordering helper."""
    return cast(Any, column).desc()


def unique_ids(values: Iterable[Any] | None) -> list[str]:
    """Drop null/blank entries and duplicates, keeping first-seen order."""
    if values is None:
        return []
    seen: dict[str, None] = {}
    for value in values:
        if value is None:
            continue
        normalized = str(value).strip()
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)
