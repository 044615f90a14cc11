"""Fixed-window request throttling backed by Redis."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from functools import lru_cache
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network
from typing import Protocol

from fastapi import status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

from core import decode_token, settings
from core.security import ACCESS_TOKEN_TYPE

logger = logging.getLogger(__name__)

# Credential endpoints refuse traffic when throttling is unavailable.
AUTH_PATHS = frozenset({"/api/v1/register", "/api/v1/login"})


class CounterStore(Protocol):
    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, ttl: int) -> None: ...


def extract_authorization_token(authorization: str | None) -> str | None:
    """Return the token from ``Bearer <token>`` or a bare ``<token>`` header value."""
    if not authorization:
        return None
    value = authorization.strip()
    scheme, _, remainder = value.partition(" ")
    if scheme.lower() == "bearer":
        value = remainder.strip()
    return value or None


@lru_cache
def _trusted_proxy_networks() -> tuple[IPv4Network | IPv6Network, ...]:
    return tuple(ip_network(cidr, strict=False) for cidr in settings.rate_limit_trusted_proxies)


def _token_subject(request: Request) -> str | None:
    token = extract_authorization_token(request.headers.get("authorization"))
    if token is None:
        return None
    try:
        payload = decode_token(token)
    except ValueError:
        return None
    subject = payload.get("sub")
    if payload.get("type") != ACCESS_TOKEN_TYPE or not isinstance(subject, str):
        return None
    return subject.strip() or None


def _forwarded_client_ip(request: Request) -> str | None:
    for header in settings.rate_limit_ip_headers:
        for candidate in request.headers.get(header, "").split(","):
            candidate = candidate.strip()
            try:
                ip_address(candidate)
            except ValueError:
                continue
            return candidate
    return None


def _is_trusted_proxy(host: str) -> bool:
    try:
        peer = ip_address(host)
    except ValueError:
        return False
    return any(peer in network for network in _trusted_proxy_networks())


def default_client_identifier(request: Request) -> str:
    """Key requests by account when a valid access token is sent, else by client address."""
    subject = _token_subject(request)
    if subject is not None:
        return f"user:{subject}"

    host = request.client.host if request.client else None
    if host and _is_trusted_proxy(host):
        forwarded_ip = _forwarded_client_ip(request)
        if forwarded_ip:
            return forwarded_ip
    return host or "anonymous"


class RateLimiter:
    """Counts requests per key in fixed windows of ``window_seconds``."""

    def __init__(
        self,
        redis_client: CounterStore,
        limit: int,
        window_seconds: int,
        prefix: str = "rate-limit",
    ) -> None:
        self.redis = redis_client
        self.limit = max(limit, 0)
        self.window_seconds = max(window_seconds, 0)
        self.prefix = prefix

    async def allow(self, key: str) -> bool:
        if self.limit == 0 or self.window_seconds == 0:
            return True

        window = int(time.time()) // self.window_seconds
        counter_key = f"{self.prefix}:{key}:{window}"
        count = await self.redis.incr(counter_key)
        if count == 1:
            await self.redis.expire(counter_key, self.window_seconds)
        return count <= self.limit


_cached_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    global _cached_rate_limiter
    if _cached_rate_limiter is None:
        _cached_rate_limiter = RateLimiter(
            redis_client=Redis.from_url(settings.redis_url),
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _cached_rate_limiter


def set_rate_limiter(limiter: RateLimiter | None) -> None:
    global _cached_rate_limiter
    _cached_rate_limiter = limiter


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse({"code": code, "message": message}, status_code=status_code)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limiter_factory: Callable[[], RateLimiter],
        exempt_paths: Iterable[str] | None = None,
        client_identifier: Callable[[Request], str] | None = None,
    ) -> None:
        super().__init__(app)
        self._limiter: RateLimiter | None = None
        self.limiter_factory = limiter_factory
        self.exempt_paths = frozenset(exempt_paths or ())
        self.client_identifier = client_identifier or default_client_identifier

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        path = request.url.path
        if path in self.exempt_paths:
            return await call_next(request)

        limiter = getattr(request.app.state, "rate_limiter_override", None) or self._get_limiter()
        if limiter is None:
            return await self._unthrottled(request, call_next)

        try:
            allowed = await limiter.allow(self.client_identifier(request))
        except Exception as exc:
            logger.warning("Rate limiter unavailable", extra={"path": path}, exc_info=exc)
            return await self._unthrottled(request, call_next)

        if not allowed:
            return _error_response(
                status.HTTP_429_TOO_MANY_REQUESTS, "rate_limited", "Too Many Requests"
            )
        return await call_next(request)

    async def _unthrottled(self, request: Request, call_next: RequestResponseEndpoint):
        if request.url.path in AUTH_PATHS:
            return _error_response(
                status.HTTP_503_SERVICE_UNAVAILABLE, "service_unavailable", "Service unavailable"
            )
        return await call_next(request)

    def _get_limiter(self) -> RateLimiter | None:
        if self._limiter is None:
            try:
                self._limiter = self.limiter_factory()
            except Exception as exc:
                logger.warning("Could not create rate limiter", exc_info=exc)
        return self._limiter
