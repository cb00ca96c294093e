"""Fixed-window rate limiting keyed by caller address."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from gateway.core.request_utils import get_client_ip

logger = logging.getLogger(__name__)


@dataclass
class RateLimitWindow:
    started_at: float
    count: int = 0


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_after),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.reset_after)
        return headers


class FixedWindowRateLimiter:
    """Counts requests per key in fixed windows.

    Each key has its own ``asyncio.Lock``; requests from different callers
    never contend. Instances are constructed by the app factory and handed
    to the middleware.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        # No await between lookup and insert, so this cannot race
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def hit(self, key: str) -> RateLimitDecision:
        """Record one request for ``key`` and decide whether it is allowed."""
        async with self._lock_for(key):
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                window = self._windows[key] = RateLimitWindow(started_at=now)

            window.count += 1
            reset_after = max(1, int(window.started_at + self.window_seconds - now))
            return RateLimitDecision(
                allowed=window.count <= self.max_requests,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - window.count),
                reset_after=reset_after,
            )

    async def reset(self, key: str | None = None) -> None:
        if key is None:
            self._windows.clear()
            self._locks.clear()
            return
        async with self._lock_for(key):
            self._windows.pop(key, None)

    def cleanup_expired(self) -> int:
        """Drop windows that have fully elapsed. Returns how many were removed."""
        now = self._clock()
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds and not self._locks[key].locked()
        ]
        for key in expired:
            del self._windows[key]
            del self._locks[key]
        return len(expired)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects callers that exceed their window with 429."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: FixedWindowRateLimiter,
        trusted_proxies: set[str] | frozenset[str] = frozenset(),
        exclude_paths: list[str] | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.trusted_proxies = trusted_proxies
        self.exclude_paths = exclude_paths or ["/health"]
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.enabled:
            return await call_next(request)

        path = request.url.path
        if any(path.startswith(p) for p in self.exclude_paths):
            return await call_next(request)

        client_ip = get_client_ip(request, self.trusted_proxies)
        decision = await self.limiter.hit(client_ip)

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {client_ip} on {path}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error": "rate_limit_exceeded",
                    "message": "Too many requests, please try again later.",
                },
                headers=decision.headers,
            )

        response = await call_next(request)
        for key, value in decision.headers.items():
            response.headers[key] = value
        return response
