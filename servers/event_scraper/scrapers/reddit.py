"""
Reddit scraper for free food and freebie posts.

Cost: Free (public JSON listing, no auth)
Use Case: Ad-hoc campus and neighborhood giveaways

Posts carry no structured location, so a small known-city table and a
street-address pattern stand in for geocoding. Posts without any location
hint are dropped.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import structlog

from ..context import RunContext
from ..errors import RunCancelledError, ScrapeCancelledError, ScrapeError
from ..models import NormalizedEvent
from ..resilience import RateLimiter
from .categorize import categorize_text, is_relevant
from .http import open_client

logger = structlog.get_logger()

REDDIT_BASE = "https://www.reddit.com"
DEFAULT_SUBREDDITS = ["freefood", "freebies", "FREE", "randomactsofpizza"]

# Whole-word matches, first hit wins
KNOWN_CITIES = [
    ("san francisco", 37.7749, -122.4194),
    ("los angeles", 34.0522, -118.2437),
    ("new york", 40.7128, -74.0060),
    ("stanford", 37.4275, -122.1697),
    ("berkeley", 37.8715, -122.2730),
    ("portland", 45.5152, -122.6784),
    ("chicago", 41.8781, -87.6298),
    ("seattle", 47.6062, -122.3321),
    ("boston", 42.3601, -71.0589),
    ("denver", 39.7392, -104.9903),
    ("austin", 30.2672, -97.7431),
    ("nyc", 40.7128, -74.0060),
    ("sf", 37.7749, -122.4194),
    ("la", 34.0522, -118.2437),
]

ADDRESS_PATTERN = re.compile(
    r"\d+\s+[\w\s]+?(?:street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln)\b"
)

# Addresses without a city are assumed to be in San Francisco
DEFAULT_ADDRESS_COORDS = (37.7749, -122.4194)


class RedditScraper:
    """Scrape recent posts from free-stuff subreddits."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        user_agent: str,
        subreddits: Optional[list[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rate_limiter = rate_limiter
        self.user_agent = user_agent
        self.subreddits = subreddits or list(DEFAULT_SUBREDDITS)
        self._client = client

    @property
    def name(self) -> str:
        return "Reddit"

    async def scrape(self, ctx: RunContext) -> list[NormalizedEvent]:
        """Scrape every subreddit; a failing subreddit is logged and skipped."""
        events: list[NormalizedEvent] = []

        async with open_client(self._client, self.user_agent) as client:
            for subreddit in self.subreddits:
                if ctx.done:
                    raise ScrapeCancelledError(ctx.reason or "cancelled", partial=events)
                try:
                    events.extend(await self._scrape_subreddit(client, ctx, subreddit))
                except RunCancelledError as e:
                    raise ScrapeCancelledError(e.reason, partial=events) from e
                except (httpx.HTTPError, ValueError) as e:
                    logger.warning("subreddit_failed", subreddit=subreddit, error=str(e))
                except Exception as e:
                    raise ScrapeError(
                        f"/r/{subreddit}: {type(e).__name__}: {e}", partial=events
                    ) from e

        return events

    async def _scrape_subreddit(
        self, client: httpx.AsyncClient, ctx: RunContext, subreddit: str
    ) -> list[NormalizedEvent]:
        await self.rate_limiter.acquire(ctx)

        response = await client.get(f"{REDDIT_BASE}/r/{subreddit}/new.json", params={"limit": 25})
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected listing type {type(data).__name__}")

        events = []
        for child in (data.get("data") or {}).get("children") or []:
            event = parse_reddit_post(child.get("data") or {}, subreddit)
            if event:
                events.append(event)
        return events


def parse_reddit_post(post: dict, subreddit: str) -> Optional[NormalizedEvent]:
    """Turn one Reddit post into an event, or None if it is not usable."""
    title = post.get("title", "")
    body = post.get("selftext", "")
    if not title or not is_relevant(title, body):
        return None

    location = extract_location(f"{title} {body}")
    if location is None:
        return None
    latitude, longitude, address = location

    return NormalizedEvent(
        title=title,
        description=body,
        latitude=latitude,
        longitude=longitude,
        address=address,
        # Posts rarely state a time; assume the next day
        start_time=datetime.now(timezone.utc) + timedelta(hours=24),
        category=categorize_text(title, body),
        source=f"Reddit /r/{subreddit}",
        source_url=f"{REDDIT_BASE}{post.get('permalink', '')}",
        organizer=post.get("author"),
        raw_data={
            "score": post.get("score", 0),
            "num_comments": post.get("num_comments", 0),
            "created_utc": post.get("created_utc"),
        },
    )


def extract_location(text: str) -> Optional[tuple[float, float, str]]:
    """Find coordinates for a known city name or a street address."""
    lowered = text.lower()

    for city, latitude, longitude in KNOWN_CITIES:
        if re.search(rf"\b{re.escape(city)}\b", lowered):
            return latitude, longitude, city

    match = ADDRESS_PATTERN.search(lowered)
    if match:
        latitude, longitude = DEFAULT_ADDRESS_COORDS
        return latitude, longitude, match.group().strip()

    return None
