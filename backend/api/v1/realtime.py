"""WebSocket live channel for pushed notifications.

Protocol (JSON text frames):

* client ``{"event": "join", "token": "<access token>"}`` subscribes the
  connection to the token owner's delivery group; the server answers with
  ``{"event": "joined", "data": {"user_id": ...}}``.
* client ``{"event": "leave"}`` unsubscribes without closing.
* server ``{"event": "notification", "data": {...}}`` for each new
  notification and ``{"event": "error", "data": {"code", "message"}}`` when
  a client frame is rejected.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ValidationError

from api.deps import resolve_token_subject
from services.errors import InvalidInputError, ServiceError, UnauthorizedError
from services.notifications import LiveSession, SessionRegistry, get_session_registry
from services.rate_limiter import extract_authorization_token

router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)

JOIN_EVENT = "join"
JOINED_EVENT = "joined"
LEAVE_EVENT = "leave"
LEFT_EVENT = "left"
ERROR_EVENT = "error"


class LiveClientMessage(BaseModel):
    event: str
    token: str | None = None


def _error_event(error: ServiceError) -> dict[str, Any]:
    return {"event": ERROR_EVENT, "data": {"code": error.code, "message": error.message}}


async def _handle_message(
    websocket: WebSocket,
    registry: SessionRegistry,
    live_session: LiveSession,
    raw_message: str,
) -> None:
    try:
        message = LiveClientMessage.model_validate_json(raw_message)
    except ValidationError:
        await websocket.send_json(_error_event(InvalidInputError("Malformed message")))
        return

    if message.event == JOIN_EVENT:
        token = extract_authorization_token(message.token)
        if token is None:
            await websocket.send_json(_error_event(UnauthorizedError("Join requires a token")))
            return
        try:
            user_id = resolve_token_subject(token)
        except ServiceError as exc:
            await websocket.send_json(_error_event(exc))
            return
        registry.join(live_session, user_id)
        await websocket.send_json({"event": JOINED_EVENT, "data": {"user_id": user_id}})
        return

    if message.event == LEAVE_EVENT:
        registry.leave(live_session)
        await websocket.send_json({"event": LEFT_EVENT, "data": {}})
        return

    await websocket.send_json(
        _error_event(InvalidInputError(f"Unknown event: {message.event}"))
    )


@router.websocket("/ws")
async def live_channel(websocket: WebSocket) -> None:
    registry = get_session_registry()
    live_session = registry.connect(websocket)
    if live_session is None:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    await websocket.accept()
    try:
        while True:
            raw_message = await websocket.receive_text()
            await _handle_message(websocket, registry, live_session, raw_message)
    except WebSocketDisconnect:
        logger.debug(
            "Live session disconnected",
            extra={"session_id": live_session.session_id},
        )
    finally:
        registry.disconnect(live_session)
