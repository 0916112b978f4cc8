"""Timing utilities for profiling database calls."""

import time
from collections.abc import Generator
from contextlib import contextmanager

from blog_api.core.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def timed(operation: str, *, slow_ms: float = 50, very_slow_ms: float = 200) -> Generator[None]:
    """Log how long the wrapped block took.

    Fast blocks are logged at DEBUG, slow ones at INFO and very slow ones at
    WARNING, each carrying ``operation`` and ``duration_ms`` as structured fields.

    Usage:
        with timed("fetch posts page"):
            rows = session.execute(stmt).all()
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        extra = {"operation": operation, "context_data": {"duration_ms": round(duration_ms, 2)}}
        if duration_ms < slow_ms:
            logger.debug(f"[{duration_ms:.2f}ms] {operation}", extra=extra)
        elif duration_ms < very_slow_ms:
            logger.info(f"[{duration_ms:.2f}ms] {operation} (slow)", extra=extra)
        else:
            logger.warning(f"[{duration_ms:.2f}ms] {operation} (very slow)", extra=extra)
