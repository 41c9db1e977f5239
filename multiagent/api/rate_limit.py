"""Per-client sliding-window rate limiting.

Single-process only: counters live in memory and reset on restart.
"""
from __future__ import annotations

import math
import time
from typing import Callable, Dict, List, Tuple

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from multiagent.config import RateLimitConfig
from multiagent.core.logging import get_logger

logger = get_logger(__name__)

EXEMPT_PATHS = frozenset({"/health"})


class InMemoryRateLimiter:
    """Track request timestamps per key inside a sliding window."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.requests: Dict[str, List[float]] = {}
        self._clock = clock
        self._last_sweep = clock()

    def is_allowed(self, key: str, limit: int, window_seconds: int) -> Tuple[bool, int, float]:
        """Return ``(allowed, remaining, seconds_until_reset)`` and record allowed hits."""
        now = self._clock()
        window_start = now - window_seconds
        if now - self._last_sweep >= window_seconds:
            self.sweep(window_start)
            self._last_sweep = now
        hits = [ts for ts in self.requests.pop(key, []) if ts > window_start]

        reset_in = (hits[0] + window_seconds - now) if hits else window_seconds
        if len(hits) >= limit:
            self.requests[key] = hits
            return False, 0, reset_in

        hits.append(now)
        self.requests[key] = hits
        return True, limit - len(hits), reset_in

    def sweep(self, window_start: float) -> None:
        """Forget clients with no request inside the current window."""
        stale = [key for key, hits in self.requests.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self.requests[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject clients that exceed ``max_requests`` per window with HTTP 429."""

    def __init__(self, app, settings: RateLimitConfig):
        super().__init__(app)
        self.settings = settings
        self.limiter = InMemoryRateLimiter()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        key = request.client.host if request.client else "anonymous"
        limit = self.settings.max_requests
        allowed, remaining, reset_in = self.limiter.is_allowed(
            key, limit, self.settings.window_seconds
        )
        headers = {
            "RateLimit-Limit": str(limit),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(math.ceil(reset_in)),
        }

        if not allowed:
            logger.warning("rate_limit_exceeded", client=key, path=request.url.path)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests, please try again later"},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
