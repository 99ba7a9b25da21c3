"""Shared pytest fixtures for scraper service tests."""

import asyncio
from datetime import datetime
from typing import Callable, Optional

import pytest

from servers.event_scraper.context import RunContext
from servers.event_scraper.errors import DeliveryError, ScrapeCancelledError
from servers.event_scraper.models import NormalizedEvent


def make_event(title: str = "Free Pizza Friday", source: str = "Test", **overrides) -> NormalizedEvent:
    """Build a valid event with sensible defaults."""
    fields = {
        "title": title,
        "description": "Free slices in the quad",
        "latitude": 37.8715,
        "longitude": -122.2730,
        "start_time": datetime(2025, 11, 15, 12, 0),
        "category": "Free Food",
        "source": source,
        "source_url": "https://example.com/event",
    }
    fields.update(overrides)
    return NormalizedEvent(**fields)


def make_events(count: int, source: str) -> list[NormalizedEvent]:
    return [make_event(title=f"{source} event {i}", source=source) for i in range(count)]


class ConcurrencyTracker:
    """Tracks how many scrapers are inside scrape() at once."""

    def __init__(self):
        self.active = 0
        self.max_active = 0

    def enter(self) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)

    def exit(self) -> None:
        self.active -= 1


class StubScraper:
    """Configurable scraper double.

    Sleeps for ``delay`` (through the context when ``honor_cancel``),
    then raises ``error`` or returns ``events``.
    """

    def __init__(
        self,
        name: str,
        events: Optional[list[NormalizedEvent]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        honor_cancel: bool = True,
        tracker: Optional[ConcurrencyTracker] = None,
    ):
        self._name = name
        self.events = events if events is not None else []
        self.error = error
        self.delay = delay
        self.honor_cancel = honor_cancel
        self.tracker = tracker
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def scrape(self, ctx: RunContext) -> list[NormalizedEvent]:
        self.calls += 1
        if self.tracker:
            self.tracker.enter()
        try:
            if self.delay:
                if self.honor_cancel:
                    if not await ctx.sleep(self.delay):
                        raise ScrapeCancelledError(ctx.reason, partial=self.events)
                else:
                    await asyncio.sleep(self.delay)
            if self.error:
                raise self.error
            return list(self.events)
        finally:
            if self.tracker:
                self.tracker.exit()


class RecordingSink:
    """Sink double recording every delivered batch."""

    def __init__(self, fail_sources: tuple[str, ...] = ()):
        self.fail_sources = fail_sources
        self.batches: list[list[NormalizedEvent]] = []
        self.attempts: list[str] = []

    async def deliver(self, records: list[NormalizedEvent]) -> None:
        source = records[0].source
        self.attempts.append(source)
        if source in self.fail_sources:
            raise DeliveryError(f"Ingestion failed with status 500 for {source}", status_code=500)
        self.batches.append(list(records))

    @property
    def delivered_sources(self) -> list[str]:
        return [batch[0].source for batch in self.batches]


@pytest.fixture
def sample_event() -> NormalizedEvent:
    """Provide a sample free food event."""
    return make_event()


@pytest.fixture
def event_factory() -> Callable[..., list[NormalizedEvent]]:
    """Provide a factory for batches of events from one source."""
    return make_events


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def tracker() -> ConcurrencyTracker:
    return ConcurrencyTracker()


@pytest.fixture
def reddit_listing() -> dict:
    """Sample /r/freefood/new.json response."""
    return {
        "data": {
            "children": [
                {
                    "data": {
                        "title": "Free pizza at Berkeley campus tonight!",
                        "selftext": "Leftover pizza from our club meeting, come get it",
                        "url": "https://www.reddit.com/r/freefood/comments/abc",
                        "created_utc": 1731672000.0,
                        "score": 42,
                        "num_comments": 7,
                        "author": "pizza_person",
                        "permalink": "/r/freefood/comments/abc/free_pizza/",
                    }
                },
                {
                    "data": {
                        "title": "What is your favorite sandwich?",
                        "selftext": "Just curious",
                        "permalink": "/r/freefood/comments/def/",
                    }
                },
                {
                    "data": {
                        "title": "Giving away free books",
                        "selftext": "Somewhere in my apartment",
                        "permalink": "/r/freefood/comments/ghi/",
                    }
                },
            ]
        }
    }
