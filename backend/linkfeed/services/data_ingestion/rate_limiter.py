"""
Rate limiting for outbound requests.

Keeps feed fetches and calls to the generation service under a
sliding-window budget shared by every ingestion running in-process.
"""

import asyncio
import time
from collections import defaultdict, deque
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter with per-key tracking.

    Keys name an external service ("rss", "generation", ...). Each key
    remembers the monotonic timestamps of the calls made inside its
    current window.
    """

    # Default limits per key (requests, period_seconds)
    DEFAULT_LIMITS = {
        "rss": (10, 1),
        "generation": (60, 60),
        "default": (60, 60),
    }

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._windows: dict[str, deque[float]] = defaultdict(deque)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._custom_limits: dict[str, tuple[int, float]] = {}

    def set_limit(self, key: str, requests: int, period_seconds: float):
        """Override the budget of a key."""
        self._custom_limits[key] = (requests, period_seconds)

    def _get_limit(self, key: str) -> tuple[int, float]:
        return self._custom_limits.get(key) or self.DEFAULT_LIMITS.get(key, self.DEFAULT_LIMITS["default"])

    def _expire(self, key: str, now: float, period_seconds: float) -> deque[float]:
        window = self._windows[key]
        while window and window[0] <= now - period_seconds:
            window.popleft()
        return window

    async def acquire(self, key: str, timeout: Optional[float] = 30.0) -> bool:
        """
        Take one slot of a key's budget, waiting for the window to move.

        Args:
            key: Service name for rate limiting
            timeout: Max seconds to wait (None = wait forever)

        Returns:
            True if acquired, False if the wait would exceed timeout
        """
        max_requests, period_seconds = self._get_limit(key)
        deadline = None if timeout is None else self._clock() + timeout

        async with self._locks[key]:
            while True:
                now = self._clock()
                window = self._expire(key, now, period_seconds)
                if len(window) < max_requests:
                    window.append(now)
                    return True

                wait_seconds = window[0] + period_seconds - now
                if deadline is not None and now + wait_seconds > deadline:
                    logger.warning(f"Rate limit timeout for {key}: would need to wait {wait_seconds:.1f}s")
                    return False

                logger.debug(f"Rate limited for {key}, waiting {wait_seconds:.1f}s")
                await asyncio.sleep(min(wait_seconds + 0.05, 1.0))

    async def wait_if_needed(self, key: str):
        """Wait until a request may be made (no timeout)."""
        await self.acquire(key, timeout=None)


# Process-wide limiter shared by all extractors and services
_global_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter instance."""
    global _global_limiter
    if _global_limiter is None:
        _global_limiter = RateLimiter()
    return _global_limiter
