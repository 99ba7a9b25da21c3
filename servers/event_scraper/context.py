"""Cancellation and deadline token threaded through a scraping run."""

import asyncio
from typing import Optional

from .errors import RunCancelledError

DEADLINE_EXCEEDED = "deadline_exceeded"
CANCELLED = "cancelled"


class RunContext:
    """Cooperative cancellation shared by every task of a run.

    Cancellation is either explicit (``cancel()``) or triggered by the
    deadline. Scrapers are expected to check it between outbound requests
    and return whatever they collected so far.

    Must be created inside a running event loop when a timeout is given.
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize run context.

        Args:
            timeout: Seconds until the deadline, or None for no deadline
        """
        self._done = asyncio.Event()
        self._reason: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self.deadline: Optional[float] = None

        if timeout is not None:
            loop = asyncio.get_running_loop()
            self.deadline = loop.time() + timeout
            self._timer = loop.call_at(self.deadline, self._expire)

    async def __aenter__(self) -> "RunContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def reason(self) -> Optional[str]:
        """Why the context is done: ``cancelled`` or ``deadline_exceeded``."""
        return self._reason

    def cancel(self, reason: str = CANCELLED) -> None:
        """Cancel the run. Only the first reason is kept."""
        if self._done.is_set():
            return
        self._reason = reason
        self._done.set()
        self.close()

    def _expire(self) -> None:
        self._timer = None
        self.cancel(DEADLINE_EXCEEDED)

    def close(self) -> None:
        """Drop the pending deadline timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - asyncio.get_running_loop().time())

    def check(self) -> None:
        """Raise RunCancelledError if the context is done."""
        if self._done.is_set():
            raise RunCancelledError(self._reason or CANCELLED)

    async def wait(self) -> None:
        """Block until the context is done."""
        await self._done.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep unless cancelled first.

        Returns:
            True if the full delay elapsed, False if the context finished
        """
        if self._done.is_set():
            return False
        if seconds <= 0:
            return True
        try:
            await asyncio.wait_for(self._done.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False
