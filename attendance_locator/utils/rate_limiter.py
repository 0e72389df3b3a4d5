import asyncio
import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class MinIntervalRateLimiter:
    """
    Per-provider request spacing.

    Callers queue on a lock and sleep until ``min_interval_seconds`` has passed
    since the previous request started. The wait is a suspension point, so
    other providers keep running while this one is throttled.
    """

    def __init__(self, min_interval_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.min_interval_seconds = min_interval_seconds
        self.clock = clock
        self.last_request_time = None
        self.total_requests = 0
        self.total_wait_seconds = 0.0
        self._lock = asyncio.Lock()

    @classmethod
    def per_minute(cls, requests_per_minute: int) -> "MinIntervalRateLimiter":
        return cls(60.0 / requests_per_minute if requests_per_minute > 0 else 0.0)

    async def wait_if_needed(self) -> None:
        """Enforce rate limiting"""
        async with self._lock:
            if self.last_request_time is not None and self.min_interval_seconds > 0:
                elapsed = self.clock() - self.last_request_time
                if elapsed < self.min_interval_seconds:
                    sleep_time = self.min_interval_seconds - elapsed
                    self.total_wait_seconds += sleep_time
                    logger.debug(f"Rate limit: waiting {sleep_time:.3f}s")
                    await asyncio.sleep(sleep_time)

            self.last_request_time = self.clock()
            self.total_requests += 1

    def get_usage_stats(self) -> dict:
        return {
            "min_interval_seconds": self.min_interval_seconds,
            "total_requests": self.total_requests,
            "total_wait_seconds": round(self.total_wait_seconds, 3),
        }
