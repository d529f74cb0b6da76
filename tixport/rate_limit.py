"""Per client request throttling for the ``/api`` routes.

Event searches fan out to the ticketing provider, which enforces its own
quota, so they get a stricter budget than the other endpoints.
"""

import asyncio
import time
from collections import defaultdict, deque
from typing import NamedTuple

from fastapi import Request, status
from fastapi.responses import ORJSONResponse

from . import config
from .utils.network import get_client_ip


class Decision(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: float


class RateLimiter:
    """In-memory sliding window limiter keyed by client address."""

    def __init__(self, limit: int, period: int) -> None:
        self.limit = limit
        self.period = period
        self.history: dict[str, deque[float]] = defaultdict(deque)
        self.lock = asyncio.Lock()

    async def is_allowed(self, key: str) -> Decision:
        now = time.monotonic()
        async with self.lock:
            hits = self.history[key]
            while hits and hits[0] <= now - self.period:
                hits.popleft()
            if len(hits) >= self.limit:
                return Decision(False, 0, self.period - (now - hits[0]))
            hits.append(now)
            return Decision(True, self.limit - len(hits), 0.0)


general_limiter = RateLimiter(config.GENERAL_RATE_LIMIT, config.RATE_PERIOD)
search_limiter = RateLimiter(config.SEARCH_RATE_LIMIT, config.RATE_PERIOD)


def limiter_for(path: str) -> RateLimiter:
    """Return the limiter guarding ``path``."""

    if path.startswith("/api/events") or (
        path.startswith("/api/categories/") and path.endswith("/events")
    ):
        return search_limiter
    return general_limiter


async def rate_limit(request: Request, call_next):
    path = request.url.path
    if not config.RATE_LIMIT_ENABLED or not path.startswith("/api"):
        return await call_next(request)

    limiter = limiter_for(path)
    decision = await limiter.is_allowed(get_client_ip(request))
    if not decision.allowed:
        return ORJSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "success": False,
                "detail": "Too many requests from this IP, please try again later.",
            },
            headers={
                "Retry-After": str(max(1, int(decision.retry_after))),
                "X-RateLimit-Limit": str(limiter.limit),
                "X-RateLimit-Remaining": "0",
            },
        )
    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(limiter.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    return response
