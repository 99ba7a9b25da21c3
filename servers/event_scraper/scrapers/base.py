"""
Scraper capability contract.

A scraper is any object with a stable ``name`` and an async ``scrape``
method. Implementations do not share a base class; the manager only
relies on this protocol.

Contract for ``scrape(ctx)``:
- Call ``RateLimiter.acquire(ctx)`` before every outbound request
- Return promptly once ``ctx`` is done, raising ``ScrapeCancelledError``
  with the events gathered so far (or letting ``RunCancelledError`` escape)
- Raise ``ScrapeError(partial=...)`` to report a failure without losing
  events already collected
- Return ``[]`` or raise ``SourceSkipped`` when unconfigured
"""

from typing import Protocol, runtime_checkable

from ..context import RunContext
from ..models import NormalizedEvent


@runtime_checkable
class Scraper(Protocol):
    """A pluggable source of normalized events."""

    @property
    def name(self) -> str:
        """Stable, unique, human-readable source name."""
        ...

    async def scrape(self, ctx: RunContext) -> list[NormalizedEvent]:
        """Fetch and normalize events from this source."""
        ...
