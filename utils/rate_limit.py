from time import time
from typing import Dict, Tuple
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
import logging

logger = logging.getLogger(__name__)


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    In-memory rate limiter keyed by client IP.
    Uses Token Bucket Algorithm.
    Default: 30 requests per 60 seconds per IP; 0 turns the limiter off.

    Buckets are kept in least-recently-used order. A bucket idle for a whole
    window has refilled and is dropped; the map never exceeds ``max_buckets``.
    """

    def __init__(self, app, requests_per_minute: int = 30, max_buckets: int = 10000):
        super().__init__(app)
        self.capacity = requests_per_minute
        self.refill_time_window = 60.0
        self.max_buckets = max_buckets
        # ip -> (tokens, last_refill_ts), oldest access first
        self._buckets: Dict[str, Tuple[float, float]] = {}

    def _get_client_ip(self, request: Request) -> str:
        xff = request.headers.get("x-forwarded-for")
        if xff:
            # Take first IP in the list
            return xff.split(",")[0].strip()
        client = request.client
        return client.host if client else "unknown"

    def _evict(self, now: float) -> None:
        """Drop refilled buckets from the old end, and the oldest ones while over capacity."""
        while self._buckets:
            oldest = next(iter(self._buckets))
            _, last_refill = self._buckets[oldest]
            idle = now - last_refill >= self.refill_time_window
            if not idle and len(self._buckets) < self.max_buckets:
                break
            del self._buckets[oldest]

    def _consume(self, ip: str) -> bool:
        """
        Take one token from the bucket of ``ip``.
        Returns True if request is allowed, False if rate limited.
        """
        now = time()
        tokens, last_refill = self._buckets.pop(ip, (float(self.capacity), now))
        self._evict(now)

        # Refill based on elapsed time
        elapsed = max(0.0, now - last_refill)
        refill = (elapsed / self.refill_time_window) * self.capacity
        tokens = min(self.capacity, tokens + refill)

        if tokens < 1.0:
            self._buckets[ip] = (tokens, now)
            return False

        self._buckets[ip] = (tokens - 1.0, now)
        return True

    async def dispatch(self, request: Request, call_next) -> Response:
        if self.capacity <= 0:
            return await call_next(request)

        ip = self._get_client_ip(request)
        if not self._consume(ip):
            logger.warning(f"Rate limit exceeded for {ip}")
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Rate limit exceeded. Try again shortly.",
                },
            )

        return await call_next(request)
