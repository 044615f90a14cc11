"""Tests for the Redis-backed rate limiter middleware."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

import app as app_module
from api.deps import get_db
from core import create_access_token
from core.config import settings
from services import RateLimiter
from services import rate_limiter as rate_limiter_module
from services.rate_limiter import default_client_identifier, extract_authorization_token


class InMemoryRedis:
    def __init__(self) -> None:
        self.data: dict[str, int] = {}

    async def incr(self, key: str) -> int:  # pragma: no cover - simple helper
        value = self.data.get(key, 0) + 1
        self.data[key] = value
        return value

    async def expire(self, key: str, ttl: int) -> None:  # pragma: no cover - noop
        return None


@pytest.fixture()
def trusted_proxy() -> Generator[None, None, None]:
    original = settings.rate_limit_trusted_proxies
    settings.rate_limit_trusted_proxies = ["127.0.0.0/8"]
    rate_limiter_module._trusted_proxy_networks.cache_clear()
    try:
        yield
    finally:
        settings.rate_limit_trusted_proxies = original
        rate_limiter_module._trusted_proxy_networks.cache_clear()


def _build_request(
    *,
    authorization: str | None = None,
    forwarded_for: str | None = None,
    client_host: str = "10.0.0.12",
) -> Request:
    headers: list[tuple[bytes, bytes]] = []
    if authorization is not None:
        headers.append((b"authorization", authorization.encode("ascii")))
    if forwarded_for is not None:
        headers.append((b"x-forwarded-for", forwarded_for.encode("ascii")))
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": headers,
        "query_string": b"",
        "client": (client_host, 1234),
        "app": None,
    }
    return Request(scope)


def test_extract_authorization_token_accepts_bearer_and_bare_values() -> None:
    assert extract_authorization_token("Bearer abc") == "abc"
    assert extract_authorization_token("bearer   abc  ") == "abc"
    assert extract_authorization_token("abc") == "abc"
    assert extract_authorization_token("Bearer ") is None
    assert extract_authorization_token(None) is None


def test_default_client_identifier_uses_bearer_token_subject() -> None:
    access_token = create_access_token("user-bearer")
    request = _build_request(authorization=f"Bearer {access_token}")

    assert default_client_identifier(request) == "user:user-bearer"


def test_default_client_identifier_uses_bare_token_subject() -> None:
    access_token = create_access_token("user-bare")
    request = _build_request(authorization=access_token)

    assert default_client_identifier(request) == "user:user-bare"


def test_default_client_identifier_falls_back_to_remote_host_for_bad_token() -> None:
    request = _build_request(authorization="Bearer garbage")

    assert default_client_identifier(request) == "10.0.0.12"


def test_default_client_identifier_ignores_forwarded_ip_from_untrusted_peer() -> None:
    request = _build_request(forwarded_for="203.0.113.7")

    assert default_client_identifier(request) == "10.0.0.12"


def test_default_client_identifier_trusts_forwarded_ip_from_proxy(trusted_proxy: None) -> None:
    request = _build_request(forwarded_for="203.0.113.7, 10.0.0.1", client_host="127.0.0.1")

    assert default_client_identifier(request) == "203.0.113.7"


@pytest.mark.asyncio
async def test_rate_limiter_blocks_after_threshold(
    async_client: AsyncClient, app: FastAPI
) -> None:
    limiter = RateLimiter(InMemoryRedis(), limit=2, window_seconds=60)
    app.state.rate_limiter_override = limiter

    try:
        first = await async_client.get("/api/v1/main")
        assert first.status_code == 401

        second = await async_client.get("/api/v1/main")
        assert second.status_code == 401

        third = await async_client.get("/api/v1/main")
        assert third.status_code == 429
        assert third.json() == {"code": "rate_limited", "message": "Too Many Requests"}
    finally:
        if hasattr(app.state, "rate_limiter_override"):
            del app.state.rate_limiter_override


@pytest.mark.asyncio
async def test_health_is_exempt_from_rate_limiting(async_client: AsyncClient, app: FastAPI) -> None:
    limiter = RateLimiter(InMemoryRedis(), limit=1, window_seconds=60)
    app.state.rate_limiter_override = limiter

    try:
        for _ in range(3):
            response = await async_client.get("/health")
            assert response.status_code == 200
    finally:
        if hasattr(app.state, "rate_limiter_override"):
            del app.state.rate_limiter_override


@pytest.mark.asyncio
async def test_rate_limiter_can_be_disabled(async_client: AsyncClient, app: FastAPI) -> None:
    limiter = RateLimiter(InMemoryRedis(), limit=0, window_seconds=60)
    app.state.rate_limiter_override = limiter

    try:
        for _ in range(5):
            response = await async_client.get("/api/v1/main")
            assert response.status_code == 401
    finally:
        if hasattr(app.state, "rate_limiter_override"):
            del app.state.rate_limiter_override


@pytest.mark.asyncio
async def test_login_rate_limit_is_per_authenticated_client(
    async_client: AsyncClient, app: FastAPI
) -> None:
    limiter = RateLimiter(InMemoryRedis(), limit=1, window_seconds=60)
    app.state.rate_limiter_override = limiter

    payload = {"username": "missing_user", "password": "password123"}
    headers_one = {"Authorization": f"Bearer {create_access_token('client-one')}"}
    headers_two = {"Authorization": f"Bearer {create_access_token('client-two')}"}

    try:
        first = await async_client.post("/api/v1/login", json=payload, headers=headers_one)
        second_same_key = await async_client.post("/api/v1/login", json=payload, headers=headers_one)
        third_other_key = await async_client.post("/api/v1/login", json=payload, headers=headers_two)
        assert first.status_code == 401
        assert second_same_key.status_code == 429
        assert third_other_key.status_code == 401
    finally:
        if hasattr(app.state, "rate_limiter_override"):
            del app.state.rate_limiter_override


@pytest.mark.asyncio
async def test_auth_paths_fail_closed_without_limiter(
    session_maker, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_factory() -> RateLimiter:
        raise RuntimeError("redis misconfigured")

    monkeypatch.setattr(app_module, "get_rate_limiter", broken_factory)
    application = app_module.create_app()

    async def override_get_db():
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        login = await client.post(
            "/api/v1/login", json={"username": "missing_user", "password": "password123"}
        )
        assert login.status_code == 503
        assert login.json() == {"code": "service_unavailable", "message": "Service unavailable"}

        other = await client.get("/api/v1/main")
        assert other.status_code == 401


class BrokenRedis:
    async def incr(self, key: str) -> int:
        raise ConnectionError("redis down")

    async def expire(self, key: str, ttl: int) -> None:  # pragma: no cover - never reached
        return None


@pytest.mark.asyncio
async def test_redis_outage_fails_closed_only_on_auth_paths(
    async_client: AsyncClient, app: FastAPI
) -> None:
    app.state.rate_limiter_override = RateLimiter(BrokenRedis(), limit=5, window_seconds=60)

    try:
        login = await async_client.post(
            "/api/v1/login", json={"username": "missing_user", "password": "password123"}
        )
        assert login.status_code == 503
        assert login.json()["code"] == "service_unavailable"

        other = await async_client.get("/api/v1/main")
        assert other.status_code == 401
    finally:
        del app.state.rate_limiter_override
