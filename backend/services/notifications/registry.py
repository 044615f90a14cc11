"""Registry of live notification sessions grouped by user."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import uuid4

from fastapi import status

from core import settings

logger = logging.getLogger(__name__)

DROPPED_SESSION_CLOSE_CODE = status.WS_1013_TRY_AGAIN_LATER


class LiveChannel(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass(eq=False)
class LiveSession:
    """One open connection; ``user_id`` is set once it has joined a group."""

    channel: LiveChannel
    session_id: str = field(default_factory=lambda: uuid4().hex)
    user_id: str | None = None


class SessionRegistry:
    """Tracks open live sessions and the per-user delivery groups they joined.

    All mutations are synchronous, so they are atomic with respect to the
    event loop; ``deliver`` works on a snapshot of the target group.
    """

    def __init__(self, max_connections: int, send_timeout_seconds: float = 2.0) -> None:
        self.max_connections = max(max_connections, 0)
        self.send_timeout_seconds = send_timeout_seconds
        self._sessions: set[LiveSession] = set()
        self._groups: dict[str, set[LiveSession]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._sessions)

    def connect(self, channel: LiveChannel) -> LiveSession | None:
        """Register a new connection, or return None when the ceiling is reached."""
        if len(self._sessions) >= self.max_connections:
            logger.warning(
                "Rejecting live connection at capacity",
                extra={"max_connections": self.max_connections},
            )
            return None
        live_session = LiveSession(channel=channel)
        self._sessions.add(live_session)
        return live_session

    def join(self, live_session: LiveSession, user_id: str) -> None:
        if live_session not in self._sessions:
            raise ValueError("Live session is not connected")
        if live_session.user_id == user_id:
            return
        self.leave(live_session)
        self._groups.setdefault(user_id, set()).add(live_session)
        live_session.user_id = user_id
        logger.info(
            "Live session joined notification group",
            extra={"user_id": user_id, "session_id": live_session.session_id},
        )

    def leave(self, live_session: LiveSession) -> None:
        user_id = live_session.user_id
        if user_id is None:
            return
        group = self._groups.get(user_id)
        if group is not None:
            group.discard(live_session)
            if not group:
                del self._groups[user_id]
        live_session.user_id = None

    def disconnect(self, live_session: LiveSession) -> None:
        self.leave(live_session)
        self._sessions.discard(live_session)

    def sessions_for(self, user_id: str) -> tuple[LiveSession, ...]:
        return tuple(self._groups.get(user_id, ()))

    def is_online(self, user_id: str) -> bool:
        return bool(self._groups.get(user_id))

    async def deliver(self, user_id: str, event: dict[str, Any]) -> int:
        """Push ``event`` to every session of ``user_id``; return how many accepted it."""
        delivered = 0
        for live_session in self.sessions_for(user_id):
            try:
                await asyncio.wait_for(
                    live_session.channel.send_json(event),
                    timeout=self.send_timeout_seconds,
                )
            except Exception as exc:
                logger.warning(
                    "Dropping live session after failed delivery",
                    extra={"user_id": user_id, "session_id": live_session.session_id},
                    exc_info=exc,
                )
                self.leave(live_session)
                await self._close_dropped(live_session)
                continue
            delivered += 1
        return delivered

    async def _close_dropped(self, live_session: LiveSession) -> None:
        """Close a session removed from its group so the client reconnects and joins again."""
        try:
            await asyncio.wait_for(
                live_session.channel.close(
                    code=DROPPED_SESSION_CLOSE_CODE,
                    reason="Live delivery failed; reconnect and join again",
                ),
                timeout=self.send_timeout_seconds,
            )
        except Exception as exc:
            logger.debug(
                "Could not close dropped live session",
                extra={"session_id": live_session.session_id},
                exc_info=exc,
            )


_cached_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    """Singleton accessor for the process-wide session registry."""
    global _cached_registry
    if _cached_registry is None:
        _cached_registry = SessionRegistry(
            max_connections=settings.max_live_connections,
            send_timeout_seconds=settings.live_send_timeout_seconds,
        )
    return _cached_registry


def set_session_registry(registry: SessionRegistry | None) -> None:
    """Override the cached registry (primarily for tests)."""
    global _cached_registry
    _cached_registry = registry
