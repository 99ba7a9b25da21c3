"""
University event calendar scraper.

Cost: Free (uses httpx + BeautifulSoup)
Use Case: Campus event pages without an API

Only listings that mention being free are kept. Every event is placed at
the campus coordinates.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urljoin

import httpx
import structlog
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from ..context import RunContext
from ..errors import RunCancelledError, ScrapeCancelledError, ScrapeError
from ..models import NormalizedEvent
from ..resilience import RateLimiter
from .http import open_client

logger = structlog.get_logger()

EVENT_CONTAINER_SELECTOR = ".event-item, .event, article"
TITLE_SELECTORS = [".event-title", ".title", "h2", "h3"]
DESCRIPTION_SELECTORS = [".event-description", ".description", "p"]
TIME_SELECTORS = [".event-time", ".time", "time"]

FREE_MARKERS = ["free", "no cost", "$0"]


@dataclass(frozen=True)
class Campus:
    """A university event page and the campus location."""

    name: str
    url: str
    latitude: float
    longitude: float


DEFAULT_CAMPUSES = [
    Campus("UC Berkeley", "https://events.berkeley.edu/", 37.8715, -122.2730),
    Campus("Stanford", "https://events.stanford.edu/", 37.4275, -122.1697),
]


class UniversityScraper:
    """Scrape free events from university calendar pages."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        user_agent: str,
        campuses: Optional[list[Campus]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rate_limiter = rate_limiter
        self.user_agent = user_agent
        self.campuses = campuses or list(DEFAULT_CAMPUSES)
        self._client = client

    @property
    def name(self) -> str:
        return "University Pages"

    async def scrape(self, ctx: RunContext) -> list[NormalizedEvent]:
        events: list[NormalizedEvent] = []

        async with open_client(self._client, self.user_agent) as client:
            for campus in self.campuses:
                if ctx.done:
                    raise ScrapeCancelledError(ctx.reason or "cancelled", partial=events)
                try:
                    events.extend(await self._scrape_campus(client, ctx, campus))
                except RunCancelledError as e:
                    raise ScrapeCancelledError(e.reason, partial=events) from e
                except httpx.HTTPError as e:
                    logger.warning("campus_page_failed", campus=campus.name, error=str(e))
                except Exception as e:
                    raise ScrapeError(
                        f"{campus.name}: {type(e).__name__}: {e}", partial=events
                    ) from e

        return events

    async def _scrape_campus(
        self, client: httpx.AsyncClient, ctx: RunContext, campus: Campus
    ) -> list[NormalizedEvent]:
        await self.rate_limiter.acquire(ctx)

        response = await client.get(campus.url)
        response.raise_for_status()
        return parse_campus_page(response.text, campus)


def parse_campus_page(html: str, campus: Campus) -> list[NormalizedEvent]:
    """Extract free events from a campus calendar page."""
    soup = BeautifulSoup(html, "html.parser")
    events = []

    for element in soup.select(EVENT_CONTAINER_SELECTOR):
        title = _first_text(element, TITLE_SELECTORS)
        if not title:
            continue

        page_text = element.get_text(" ", strip=True).lower()
        if not any(marker in page_text for marker in FREE_MARKERS):
            continue

        link = element.select_one("a[href]")
        event_url = urljoin(campus.url, link["href"]) if link else campus.url

        events.append(
            NormalizedEvent(
                title=title,
                description=_first_text(element, DESCRIPTION_SELECTORS) or "",
                latitude=campus.latitude,
                longitude=campus.longitude,
                address=f"{campus.name} Campus",
                start_time=parse_event_time(_first_text(element, TIME_SELECTORS)),
                category="Campus Events",
                source=campus.name,
                source_url=event_url,
            )
        )

    return events


def parse_event_time(text: Optional[str]) -> datetime:
    """Parse a listing's time; unknown times default to a week from now."""
    if text:
        try:
            parsed = date_parser.parse(text, fuzzy=True)
        except (ValueError, TypeError, OverflowError):
            pass
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) + timedelta(days=7)


def _first_text(element, selectors: list[str]) -> Optional[str]:
    for selector in selectors:
        found = element.select_one(selector)
        if found:
            text = found.get_text(strip=True)
            if text:
                return text
    return None
