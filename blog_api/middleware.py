"""HTTP middleware: request logging with timing, and per-IP rate limiting."""

import threading
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from blog_api.core.logging import get_logger

logger = get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

RATE_LIMIT_EXEMPT_PATHS = frozenset({"/api/v1/health"})


async def log_requests(request: Request, call_next: CallNext) -> Response:
    """Log all incoming HTTP requests with timing information."""
    start_time = time.perf_counter()

    logger.info(f">>> {request.method} {request.url.path}")
    logger.debug(f"    Client: {request.client.host if request.client else 'unknown'}")

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    method = request.method
    path = request.url.path
    status_code = response.status_code
    time_str = f"{duration_ms:.2f}ms"

    if duration_ms < 100:
        logger.info(f"<<< {method} {path} - {status_code} [{time_str}]")
    elif duration_ms < 500:
        logger.info(f"<<< {method} {path} - {status_code} [{time_str}] (slow)")
    else:
        logger.warning(f"<<< {method} {path} - {status_code} [{time_str}] (very slow)")

    return response


class TokenBucketLimiter:
    """In-process token buckets keyed by client.

    Each key starts with ``capacity`` tokens and regains ``rate_per_second``
    tokens per second up to ``capacity``. A request spends one token.
    """

    def __init__(
        self,
        rate_per_second: float,
        capacity: int,
        *,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate_per_second <= 0 or capacity <= 0:
            raise ValueError("rate_per_second and capacity must be positive")
        self.rate_per_second = rate_per_second
        self.capacity = capacity
        self.max_keys = max_keys
        self._clock = clock
        self._buckets: dict[str, tuple[float, float]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            tokens, last = self._buckets.get(key, (float(self.capacity), now))
            tokens = min(float(self.capacity), tokens + (now - last) * self.rate_per_second)
            allowed = tokens >= 1.0
            if allowed:
                tokens -= 1.0
            self._buckets[key] = (tokens, now)
            if len(self._buckets) > self.max_keys:
                self._prune(now)
            return allowed

    def _prune(self, now: float) -> None:
        # A bucket that has refilled completely is indistinguishable from a new one
        full_after = self.capacity / self.rate_per_second
        stale = [k for k, (_, last) in self._buckets.items() if now - last >= full_after]
        for key in stale:
            del self._buckets[key]


def rate_limit_middleware(limiter: TokenBucketLimiter):
    """Build an HTTP middleware answering 429 once a client's bucket is empty."""

    async def _rate_limit(request: Request, call_next: CallNext) -> Response:
        if request.url.path in RATE_LIMIT_EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        if not limiter.allow(client_ip):
            logger.warning(
                f"Rate limit exceeded for {client_ip}",
                extra={"operation": "rate_limit", "http_details": {"path": request.url.path}},
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": {"code": "rate_limited", "message": "Too Many Requests"}},
            )
        return await call_next(request)

    return _rate_limit
