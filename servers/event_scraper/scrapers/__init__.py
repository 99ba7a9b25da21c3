"""
Event source scrapers.

Each source implements the Scraper protocol:
- name -> stable source name
- async scrape(ctx) -> list[NormalizedEvent]
- Shared rate limiting through RateLimiter.acquire(ctx)
"""

from ..config import ScraperConfig
from ..resilience import RateLimiter
from .base import Scraper
from .eventbrite import EventbriteScraper
from .meetup import MeetupScraper
from .reddit import RedditScraper
from .university import UniversityScraper


def build_default_scrapers(config: ScraperConfig, rate_limiter: RateLimiter) -> list[Scraper]:
    """Create every built-in scraper, in registration order."""
    return [
        RedditScraper(rate_limiter, user_agent=config.user_agent),
        EventbriteScraper(
            rate_limiter, api_key=config.eventbrite_api_key, user_agent=config.user_agent
        ),
        MeetupScraper(rate_limiter, api_key=config.meetup_api_key),
        UniversityScraper(rate_limiter, user_agent=config.user_agent),
    ]


__all__ = [
    "Scraper",
    "RedditScraper",
    "EventbriteScraper",
    "MeetupScraper",
    "UniversityScraper",
    "build_default_scrapers",
]
