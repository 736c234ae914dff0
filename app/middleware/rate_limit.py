"""Per-IP rate limiting for /api routes. /actuator is never limited."""

import logging
import math
import time

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.errors import error_body

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window rate limiter by IP. In-process, not shared across workers."""

    def __init__(self, max_requests: int, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window = window_seconds
        self._hits: dict[str, list[float]] = {}

    def _prune(self, ip: str, now: float) -> list[float]:
        """Drop hits outside the window; IPs with none left are forgotten."""
        window_start = now - self.window
        hits = [t for t in self._hits.get(ip, ()) if t > window_start]
        if hits:
            self._hits[ip] = hits
        else:
            self._hits.pop(ip, None)
        return hits

    def is_limited(self, ip: str) -> bool:
        now = time.monotonic()
        hits = self._prune(ip, now)
        if len(hits) >= self.max_requests:
            return True
        hits.append(now)
        self._hits[ip] = hits
        return False

    def remaining(self, ip: str) -> int:
        return max(0, self.max_requests - len(self._prune(ip, time.monotonic())))

    def retry_after(self, ip: str) -> int:
        """Seconds until the oldest hit in the window expires."""
        hits = self._prune(ip, time.monotonic())
        if not hits:
            return 0
        return max(1, math.ceil(hits[0] + self.window - time.monotonic()))


def client_ip(request: Request, trust_forwarded: bool = False) -> str:
    """Peer address, or the first X-Forwarded-For hop when a trusted proxy sets it."""
    if trust_forwarded:
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        if forwarded:
            return forwarded
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter, path_prefix: str = "/api", trust_forwarded: bool = False):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix
        self.trust_forwarded = trust_forwarded

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        ip = client_ip(request, self.trust_forwarded)
        if self.limiter.is_limited(ip):
            logger.warning("Rate limit exceeded for IP: %s", ip)
            response = JSONResponse(
                status_code=429,
                content=error_body(
                    request, 429, "Too many requests from this IP, please try again later",
                ),
            )
            response.headers["Retry-After"] = str(self.limiter.retry_after(ip))
        else:
            response = await call_next(request)

        response.headers["RateLimit-Limit"] = str(self.limiter.max_requests)
        response.headers["RateLimit-Remaining"] = str(self.limiter.remaining(ip))
        return response
