"""
VectorDB CRUD — Rate Limiting Middleware
=========================================

What:  Per-IP sliding window rate limiter.
How:   SlidingWindowLimiter keeps one deque of hit times per client. Expired
       hits are popped from the left on every request; a client whose deque
       is already full is told how long until its oldest hit expires.
When:  Runs inside RequestIDMiddleware, before any collaborator is called.

Single-process only: counters live in this process's memory.
"""

import logging
import math
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from vectordb_crud.config import settings
from vectordb_crud.exceptions import RateLimitExceededError
from vectordb_crud.middleware.request_id import error_response

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """
    At most `limit` hits per key within any `window`-second span.

    Limit and window are read through callables on every hit, so a settings
    change applies to requests already being tracked.
    """

    # Idle keys are swept at most this often
    SWEEP_INTERVAL = 300.0

    def __init__(
        self,
        limit: Callable[[], int],
        window: Callable[[], float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._limit = limit
        self._window = window
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def hit(self, key: str) -> Optional[int]:
        """
        Record one hit for `key`.

        Returns:
            None if the hit is allowed, otherwise the seconds until it would be.
        """
        now = self._clock()
        window = self._window()
        hits = self._hits.setdefault(key, deque())

        while hits and hits[0] <= now - window:
            hits.popleft()

        if len(hits) >= self._limit():
            return max(math.ceil(hits[0] + window - now), 1)

        hits.append(now)
        if now - self._last_sweep >= self.SWEEP_INTERVAL:
            self._sweep(now - window)
            self._last_sweep = now
        return None

    def _sweep(self, horizon: float) -> None:
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= horizon]
        for key in idle:
            del self._hits[key]
        if idle:
            logger.debug("Dropped rate-limit state for %d idle clients", len(idle))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings):
        rate_limit_requests: Max requests per window (default: 100)
        rate_limit_window: Window duration in seconds (default: 3600)

    Excluded paths: /health and the API documentation.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self.limiter = SlidingWindowLimiter(
            limit=lambda: settings.rate_limit_requests,
            window=lambda: settings.rate_limit_window,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        retry_after = self.limiter.hit(client_ip)
        if retry_after is None:
            return await call_next(request)

        error = RateLimitExceededError(retry_after=retry_after, context={"client_ip": client_ip})
        logger.warning("Rate limit exceeded for %s; retry in %ds", client_ip, retry_after)
        return error_response(429, error.message, headers={"Retry-After": str(retry_after)})
