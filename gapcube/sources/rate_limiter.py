"""
Per-source rate limiting.

One RateLimiter is constructed per source at startup and handed to that
source's adapter. Requests through the same limiter are serialised; different
limiters never wait on each other.
"""

import asyncio
import logging
import math
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Minimum-interval limiter for one external host.

    Usage:
        limiter = RateLimiter.per_second("openalex", 9.0)
        async with limiter:
            response = await client.get(url)
    """

    def __init__(
        self,
        name: str,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            name: Identifier for logging
            min_interval: Seconds between the starts of consecutive requests
            clock: Monotonic clock (injectable for tests)
        """
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.name = name
        self.min_interval = min_interval
        self._clock = clock
        self._last_call: Optional[float] = None
        self._lock: Optional[asyncio.Lock] = None

    @classmethod
    def per_second(cls, name: str, max_per_second: float) -> "RateLimiter":
        if max_per_second <= 0:
            raise ValueError("max_per_second must be positive")
        return cls(name, math.ceil(1000 / max_per_second) / 1000)

    @classmethod
    def for_source(cls, name: str) -> "RateLimiter":
        """Limiter for a provider listed in RATE_LIMITS."""
        from gapcube.config import config

        if name not in config.RATE_LIMITS:
            raise KeyError(f"No rate limit configured for {name!r}")
        return cls.per_second(name, config.RATE_LIMITS[name])

    @property
    def lock(self) -> asyncio.Lock:
        # Created lazily so the limiter can be built outside a running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def throttle(self) -> float:
        """
        Wait until the next request may start.

        Returns:
            Seconds slept (0.0 if no wait was needed)
        """
        waited = 0.0
        if self._last_call is not None:
            elapsed = self._clock() - self._last_call
            if elapsed < self.min_interval:
                waited = self.min_interval - elapsed
                logger.debug(f"[{self.name}] throttling {waited * 1000:.0f}ms")
                await asyncio.sleep(waited)
        self._last_call = self._clock()
        return waited

    async def __aenter__(self):
        await self.lock.acquire()
        try:
            await self.throttle()
        except BaseException:
            self.lock.release()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.lock.release()
        return False

    def __repr__(self) -> str:
        return f"RateLimiter(name={self.name!r}, min_interval={self.min_interval:.3f}s)"
