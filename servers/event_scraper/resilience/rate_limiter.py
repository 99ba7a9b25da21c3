"""Token-bucket rate limiter shared by every scraper."""

import asyncio
import time
from typing import Callable

import structlog

from ..context import RunContext
from ..errors import RunCancelledError

logger = structlog.get_logger()


class RateLimiter:
    """Global pace limit for outbound requests across all sources.

    Tokens refill continuously at ``rate`` per second up to ``burst``.
    Each admitted request spends one token. There is no fairness between
    waiting callers: whoever finds a token first proceeds.
    """

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            rate: Tokens added per second
            burst: Maximum tokens the bucket holds
            clock: Monotonic time source in seconds
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")

        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    @classmethod
    def every(cls, interval: float, burst: int = 1) -> "RateLimiter":
        """Allow one request per ``interval`` seconds."""
        return cls(rate=1.0 / interval, burst=burst)

    async def acquire(self, ctx: RunContext) -> None:
        """Wait for a token.

        Args:
            ctx: Run context; waiting stops as soon as it is done

        Raises:
            RunCancelledError: If ctx finished first. No token is consumed.
        """
        while True:
            ctx.check()
            async with self._lock:
                delay = self._try_take()
            if delay <= 0:
                return
            if not await ctx.sleep(delay):
                logger.debug("rate_limit_wait_cancelled", reason=ctx.reason)
                raise RunCancelledError(ctx.reason or "cancelled")

    def _try_take(self) -> float:
        """Take a token if one is available, else return seconds to wait."""
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._last_refill = now

        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0
        return (1.0 - self._tokens) / self.rate
