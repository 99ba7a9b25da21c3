"""
Eventbrite API integration for free events.

Cost: Free API token
Use Case: Structured listings with venue coordinates and capacity

Searches free events around a fixed set of metro areas.
"""

from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog

from ..context import RunContext
from ..errors import RunCancelledError, ScrapeCancelledError, ScrapeError, SourceSkipped
from ..models import NormalizedEvent
from ..resilience import RateLimiter
from .categorize import map_eventbrite_category
from .http import open_client

logger = structlog.get_logger()

EVENTBRITE_SEARCH_URL = "https://www.eventbriteapi.com/v3/events/search/"
EVENTBRITE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

DEFAULT_LOCATIONS = [
    ("San Francisco", 37.7749, -122.4194),
    ("New York", 40.7128, -74.0060),
    ("Los Angeles", 34.0522, -118.2437),
]


class EventbriteScraper:
    """Search Eventbrite for free events near each configured location."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        api_key: str,
        user_agent: str,
        locations: Optional[list[tuple[str, float, float]]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rate_limiter = rate_limiter
        self.api_key = api_key
        self.user_agent = user_agent
        self.locations = locations or list(DEFAULT_LOCATIONS)
        self._client = client

    @property
    def name(self) -> str:
        return "Eventbrite"

    async def scrape(self, ctx: RunContext) -> list[NormalizedEvent]:
        if not self.api_key:
            raise SourceSkipped("EVENTBRITE_API_KEY not configured")

        events: list[NormalizedEvent] = []

        async with open_client(self._client, self.user_agent) as client:
            for location_name, latitude, longitude in self.locations:
                if ctx.done:
                    raise ScrapeCancelledError(ctx.reason or "cancelled", partial=events)
                try:
                    events.extend(
                        await self._scrape_location(client, ctx, latitude, longitude)
                    )
                except RunCancelledError as e:
                    raise ScrapeCancelledError(e.reason, partial=events) from e
                except (httpx.HTTPError, ValueError) as e:
                    logger.warning(
                        "eventbrite_location_failed", location=location_name, error=str(e)
                    )
                except Exception as e:
                    raise ScrapeError(
                        f"{location_name}: {type(e).__name__}: {e}", partial=events
                    ) from e

        return events

    async def _scrape_location(
        self,
        client: httpx.AsyncClient,
        ctx: RunContext,
        latitude: float,
        longitude: float,
    ) -> list[NormalizedEvent]:
        await self.rate_limiter.acquire(ctx)

        response = await client.get(
            EVENTBRITE_SEARCH_URL,
            params={
                "location.latitude": f"{latitude:f}",
                "location.longitude": f"{longitude:f}",
                "location.within": "25km",
                "price": "free",
                "sort_by": "date",
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected search response type {type(data).__name__}")

        events = []
        for item in data.get("events") or []:
            event = parse_eventbrite_event(item, latitude, longitude)
            if event:
                events.append(event)
        return events


def parse_eventbrite_event(
    item: dict, default_latitude: float, default_longitude: float
) -> Optional[NormalizedEvent]:
    """Parse one Eventbrite search result; None if its start time is unusable."""
    start_time = _parse_local_time((item.get("start") or {}).get("local"))
    if start_time is None:
        logger.debug("eventbrite_bad_start_time", event_id=item.get("id"))
        return None
    end_time = _parse_local_time((item.get("end") or {}).get("local"))

    venue = item.get("venue") or {}
    address_info = venue.get("address") or {}

    latitude = _parse_coordinate(address_info.get("latitude"))
    longitude = _parse_coordinate(address_info.get("longitude"))
    # Fall back to the search point when the venue has no coordinates
    if latitude == 0 and longitude == 0:
        latitude, longitude = default_latitude, default_longitude

    address = address_info.get("address_1") or ""
    if address_info.get("city"):
        address = f"{address}, {address_info['city']}" if address else address_info["city"]

    return NormalizedEvent(
        title=(item.get("name") or {}).get("text", ""),
        description=(item.get("description") or {}).get("text") or "",
        latitude=latitude,
        longitude=longitude,
        address=address or None,
        start_time=start_time,
        end_time=end_time,
        category=map_eventbrite_category((item.get("category") or {}).get("name")),
        source="Eventbrite",
        source_url=item.get("url", ""),
        image_url=(item.get("logo") or {}).get("url"),
        organizer=(item.get("organizer") or {}).get("name"),
        capacity=item.get("capacity") or None,
        raw_data={"event_id": item.get("id"), "venue": venue.get("name")},
    )


def _parse_local_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        # Venue-local wall time without an offset; read as UTC
        return datetime.strptime(value, EVENTBRITE_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _parse_coordinate(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
