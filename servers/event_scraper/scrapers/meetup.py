"""
Meetup integration.

Meetup moved its public API to OAuth2 + GraphQL; until that client
exists this source only reports whether it is configured.
"""

import structlog

from ..context import RunContext
from ..errors import SourceSkipped
from ..models import NormalizedEvent
from ..resilience import RateLimiter

logger = structlog.get_logger()


class MeetupScraper:
    """Placeholder source for Meetup groups."""

    def __init__(self, rate_limiter: RateLimiter, api_key: str):
        self.rate_limiter = rate_limiter
        self.api_key = api_key

    @property
    def name(self) -> str:
        return "Meetup"

    async def scrape(self, ctx: RunContext) -> list[NormalizedEvent]:
        if not self.api_key:
            raise SourceSkipped("MEETUP_API_KEY not configured")

        ctx.check()
        # TODO: query the GraphQL API (keywordSearch on free events) once OAuth2 credentials exist
        logger.info("meetup_not_implemented", message="GraphQL API client pending")
        return []
