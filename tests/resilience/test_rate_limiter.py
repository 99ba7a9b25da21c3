"""Tests for the token-bucket rate limiter."""

import asyncio

import pytest

from servers.event_scraper.context import RunContext
from servers.event_scraper.errors import RunCancelledError
from servers.event_scraper.resilience import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.mark.parametrize("rate,burst", [(0, 1), (-1, 1), (1, 0)])
    def test_rejects_invalid_arguments(self, rate: float, burst: int):
        with pytest.raises(ValueError):
            RateLimiter(rate=rate, burst=burst)

    def test_every(self):
        limiter = RateLimiter.every(0.25)
        assert limiter.rate == pytest.approx(4.0)
        assert limiter.burst == 1

    @pytest.mark.asyncio
    async def test_burst_is_immediate(self):
        limiter = RateLimiter(rate=1, burst=3)
        loop = asyncio.get_running_loop()
        ctx = RunContext()

        started = loop.time()
        for _ in range(3):
            await limiter.acquire(ctx)
        assert loop.time() - started < 0.5

    @pytest.mark.asyncio
    async def test_requests_beyond_burst_are_paced(self):
        """K acquisitions take at least (K - burst) / rate seconds."""
        rate, burst, count = 20.0, 2, 5
        limiter = RateLimiter(rate=rate, burst=burst)
        loop = asyncio.get_running_loop()
        ctx = RunContext()

        started = loop.time()
        for _ in range(count):
            await limiter.acquire(ctx)
        elapsed = loop.time() - started

        # Allow for timer granularity
        assert elapsed >= (count - burst) / rate * 0.9

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_the_budget(self):
        rate, count = 50.0, 4
        limiter = RateLimiter(rate=rate, burst=1)
        loop = asyncio.get_running_loop()
        ctx = RunContext()

        started = loop.time()
        await asyncio.gather(*(limiter.acquire(ctx) for _ in range(count)))
        elapsed = loop.time() - started

        assert elapsed >= (count - 1) / rate * 0.9

    @pytest.mark.asyncio
    async def test_cancelled_context_raises_immediately(self):
        limiter = RateLimiter(rate=1, burst=5)
        ctx = RunContext()
        ctx.cancel()

        with pytest.raises(RunCancelledError):
            await limiter.acquire(ctx)

    @pytest.mark.asyncio
    async def test_cancellation_during_wait(self):
        limiter = RateLimiter(rate=0.1, burst=1)
        loop = asyncio.get_running_loop()

        async with RunContext(timeout=5) as ctx:
            await limiter.acquire(ctx)
            loop.call_later(0.02, ctx.cancel)

            started = loop.time()
            with pytest.raises(RunCancelledError) as exc_info:
                await limiter.acquire(ctx)

        assert loop.time() - started < 1.0
        assert exc_info.value.reason == "cancelled"

    @pytest.mark.asyncio
    async def test_cancelled_wait_consumes_no_token(self):
        clock = FakeClock()
        limiter = RateLimiter(rate=1, burst=1, clock=clock)

        async with RunContext() as ctx:
            await limiter.acquire(ctx)

        async with RunContext(timeout=0.02) as ctx:
            with pytest.raises(RunCancelledError):
                await limiter.acquire(ctx)

        # Exactly one interval later a single token is available
        clock.now = 1.0
        async with RunContext(timeout=0.5) as ctx:
            await limiter.acquire(ctx)
            with pytest.raises(RunCancelledError):
                await limiter.acquire(ctx)
