"""Tests for notification fan-out, listing and read state."""

import asyncio
from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from models import Notification, User
from services.notifications import SessionRegistry, emit_notification

PASSWORD = "Sup3rSecret!"


class RecordingChannel:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.close_codes: list[int] = []

    async def send_json(self, data: Any) -> None:
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_codes.append(code)


class FailingChannel(RecordingChannel):
    async def send_json(self, data: Any) -> None:
        raise RuntimeError("socket closed")


async def _register(async_client: AsyncClient, prefix: str) -> dict[str, str]:
    username = f"{prefix}_{uuid4().hex[:6]}"
    response = await async_client.post(
        "/api/v1/register", json={"username": username, "password": PASSWORD}
    )
    assert response.status_code == 201
    payload = response.json()
    return {
        "id": payload["user_id"],
        "username": username,
        "headers": {"Authorization": f"Bearer {payload['token']}"},
    }


async def _create_user(session: AsyncSession, username: str) -> User:
    user = User(username=username, password_hash="x")
    session.add(user)
    await session.commit()
    return user


@pytest.mark.asyncio
async def test_follow_pushes_live_notification_to_joined_sessions(
    async_client: AsyncClient,
    session_registry: SessionRegistry,
) -> None:
    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")

    first_tab = RecordingChannel()
    second_tab = RecordingChannel()
    other_user = RecordingChannel()
    for channel, user_id in ((first_tab, bob["id"]), (second_tab, bob["id"]), (other_user, alice["id"])):
        live_session = session_registry.connect(channel)
        assert live_session is not None
        session_registry.join(live_session, user_id)

    response = await async_client.post(f"/api/v1/follow/{bob['id']}", headers=alice["headers"])
    assert response.status_code == 200

    for channel in (first_tab, second_tab):
        assert len(channel.sent) == 1
        event = channel.sent[0]
        assert event["event"] == "notification"
        assert event["data"]["kind"] == "follow"
        assert event["data"]["actor_id"] == alice["id"]
        assert event["data"]["message"] == f"{alice['username']} followed you"
        assert event["data"]["read"] is False
    assert other_user.sent == []


@pytest.mark.asyncio
async def test_failed_live_delivery_does_not_fail_engagement(
    async_client: AsyncClient,
    session_registry: SessionRegistry,
) -> None:
    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    channel = FailingChannel()
    live_session = session_registry.connect(channel)
    assert live_session is not None
    session_registry.join(live_session, bob["id"])

    response = await async_client.post(f"/api/v1/follow/{bob['id']}", headers=alice["headers"])
    assert response.status_code == 200
    assert session_registry.is_online(bob["id"]) is False
    assert channel.close_codes == [1013]
    assert live_session.user_id is None

    listed = await async_client.get("/api/v1/notifications", headers=bob["headers"])
    assert [item["kind"] for item in listed.json()] == ["follow"]


@pytest.mark.asyncio
async def test_emit_skips_self_notifications(
    db_session: AsyncSession,
    session_registry: SessionRegistry,
) -> None:
    user = await _create_user(db_session, "solo_user")
    channel = RecordingChannel()
    live_session = session_registry.connect(channel)
    assert live_session is not None
    session_registry.join(live_session, user.id)

    result = await emit_notification(
        db_session,
        recipient_id=user.id,
        actor_id=user.id,
        actor_username=user.username,
        kind="like",
        post_id=1,
    )
    assert result is None
    assert channel.sent == []


@pytest.mark.asyncio
async def test_emit_swallows_persist_failures(
    db_session: AsyncSession,
    session_registry: SessionRegistry,
) -> None:
    actor = await _create_user(db_session, "actor_user")
    channel = RecordingChannel()
    live_session = session_registry.connect(channel)
    assert live_session is not None
    session_registry.join(live_session, "missing-user")

    result = await emit_notification(
        db_session,
        recipient_id="missing-user",
        actor_id=actor.id,
        actor_username=actor.username,
        kind="bogus",  # type: ignore[arg-type]
    )
    assert result is None
    assert channel.sent == []


@pytest.mark.asyncio
async def test_list_notifications_is_newest_first_and_capped(
    db_session: AsyncSession,
    async_client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    bob = await _register(async_client, "bob")
    actor = await _create_user(db_session, "actor_user")
    for index in range(4):
        db_session.add(
            Notification(
                user_id=bob["id"],
                actor_id=actor.id,
                actor_username=actor.username,
                kind="like",
                post_id=index,
            )
        )
    await db_session.commit()

    response = await async_client.get("/api/v1/notifications", headers=bob["headers"])
    assert [item["post_id"] for item in response.json()] == [3, 2, 1, 0]

    monkeypatch.setattr(settings, "notification_limit", 2)
    capped = await async_client.get("/api/v1/notifications", headers=bob["headers"])
    assert [item["post_id"] for item in capped.json()] == [3, 2]

    offset = await async_client.get("/api/v1/notifications?offset=2", headers=bob["headers"])
    assert [item["post_id"] for item in offset.json()] == [1, 0]


@pytest.mark.asyncio
async def test_mark_read_and_read_all(async_client: AsyncClient) -> None:
    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    carol = await _register(async_client, "carol")
    await async_client.post(f"/api/v1/follow/{bob['id']}", headers=alice["headers"])
    await async_client.post(f"/api/v1/follow/{bob['id']}", headers=carol["headers"])

    listed = await async_client.get("/api/v1/notifications", headers=bob["headers"])
    newest, oldest = listed.json()
    assert newest["read"] is False and oldest["read"] is False

    marked = await async_client.post(
        f"/api/v1/notifications/{oldest['id']}/read", headers=bob["headers"]
    )
    assert marked.status_code == 200
    assert marked.json()["read"] is True

    foreign = await async_client.post(
        f"/api/v1/notifications/{newest['id']}/read", headers=alice["headers"]
    )
    assert foreign.status_code == 404

    read_all = await async_client.post("/api/v1/notifications/read-all", headers=bob["headers"])
    assert read_all.json() == {"updated_count": 1}

    listed = await async_client.get("/api/v1/notifications", headers=bob["headers"])
    assert all(item["read"] for item in listed.json())


@pytest.mark.asyncio
async def test_slow_live_session_is_bounded_by_timeout(
    async_client: AsyncClient,
    session_registry: SessionRegistry,
) -> None:
    class StalledChannel(RecordingChannel):
        async def send_json(self, data: Any) -> None:
            await asyncio.sleep(10)

    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    channel = StalledChannel()
    live_session = session_registry.connect(channel)
    assert live_session is not None
    session_registry.join(live_session, bob["id"])

    response = await asyncio.wait_for(
        async_client.post(f"/api/v1/follow/{bob['id']}", headers=alice["headers"]),
        timeout=5,
    )
    assert response.status_code == 200
    assert session_registry.is_online(bob["id"]) is False
    assert channel.close_codes == [1013]
