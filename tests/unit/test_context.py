"""Tests for the run cancellation context."""

import asyncio

import pytest

from servers.event_scraper.context import CANCELLED, DEADLINE_EXCEEDED, RunContext
from servers.event_scraper.errors import RunCancelledError


class TestRunContext:
    """Tests for RunContext."""

    @pytest.mark.asyncio
    async def test_cancel_keeps_first_reason(self):
        ctx = RunContext()
        assert ctx.done is False

        ctx.cancel()
        ctx.cancel(DEADLINE_EXCEEDED)

        assert ctx.done is True
        assert ctx.reason == CANCELLED

    @pytest.mark.asyncio
    async def test_deadline_expires(self):
        async with RunContext(timeout=0.02) as ctx:
            await asyncio.wait_for(ctx.wait(), timeout=1.0)
            assert ctx.reason == DEADLINE_EXCEEDED
            assert ctx.remaining() == 0.0

    @pytest.mark.asyncio
    async def test_check_raises_when_done(self):
        ctx = RunContext()
        ctx.check()

        ctx.cancel()
        with pytest.raises(RunCancelledError) as exc_info:
            ctx.check()
        assert exc_info.value.reason == CANCELLED

    @pytest.mark.asyncio
    async def test_sleep_completes(self):
        ctx = RunContext()
        assert await ctx.sleep(0.01) is True
        assert await ctx.sleep(0) is True

    @pytest.mark.asyncio
    async def test_sleep_interrupted_by_cancel(self):
        ctx = RunContext()
        loop = asyncio.get_running_loop()
        loop.call_later(0.02, ctx.cancel)

        started = loop.time()
        assert await ctx.sleep(5) is False
        assert loop.time() - started < 1.0

    @pytest.mark.asyncio
    async def test_no_deadline(self):
        ctx = RunContext()
        assert ctx.deadline is None
        assert ctx.remaining() is None

    @pytest.mark.asyncio
    async def test_close_drops_deadline_timer(self):
        async with RunContext(timeout=0.02) as ctx:
            pass
        await asyncio.sleep(0.05)
        assert ctx.done is False
