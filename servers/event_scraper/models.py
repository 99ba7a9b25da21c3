"""
Pydantic models for scraped events and run results.

These models define the core data types used throughout the service:
- NormalizedEvent: One free event, normalized across every source
- SourceOutcome: Result of running one scraper once
- RunSummary: Aggregate over one full scraping pass
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


# Source-independent taxonomy shared with the ingestion API
CATEGORIES = {
    "Free Food": "Pizza, snacks, meals and other free food",
    "Entertainment": "Concerts, shows, film and performances",
    "Workshops": "Classes, seminars, tutorials and talks",
    "Giveaways": "Free stuff, swag and giveaways",
    "Sports": "Games, races and fitness",
    "Health & Wellness": "Health screenings, yoga, wellness",
    "Campus Events": "Events hosted by universities",
    "Community Events": "Everything else",
}

# Catch-all bucket for labels outside the taxonomy
DEFAULT_CATEGORY = "Community Events"


class NormalizedEvent(BaseModel):
    """A single discovered event, normalized for ingestion."""

    # Core event info
    title: str
    description: str = ""

    # Location; (0, 0) means unknown, never a real place
    latitude: float
    longitude: float
    address: Optional[str] = None

    # Timing (start may be approximate but is always set)
    start_time: datetime
    end_time: Optional[datetime] = None

    # Classification
    category: str = DEFAULT_CATEGORY

    # Source tracking
    source: str
    source_url: str = ""

    # Details
    image_url: Optional[str] = None
    organizer: Optional[str] = None
    capacity: Optional[int] = None

    # Source-specific payload, kept for audit/debug only
    raw_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> str:
        """Map labels onto the taxonomy, falling back to the catch-all."""
        if not value:
            return DEFAULT_CATEGORY
        for name in CATEGORIES:
            if name.lower() == str(value).strip().lower():
                return name
        return DEFAULT_CATEGORY

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Naive times are taken as UTC; aware ones are converted to it."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def has_location(self) -> bool:
        """False when coordinates are the (0, 0) unknown sentinel."""
        return not (self.latitude == 0 and self.longitude == 0)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the ingestion API wire format."""
        payload = self.model_dump(mode="json", exclude_none=True)
        # Mirror the API's omitempty fields
        for key in ("address", "image_url", "organizer", "capacity", "raw_data"):
            if not payload.get(key):
                payload.pop(key, None)
        return payload


class OutcomeStatus(str, Enum):
    """How a single scraper run ended."""

    SUCCESS = "success"
    SKIPPED = "skipped"  # Unconfigured or inapplicable source
    ERROR = "error"
    CANCELLED = "cancelled"  # Run context cancelled or deadline hit


class SourceOutcome(BaseModel):
    """Result of running one scraper once. Immutable after creation."""

    model_config = ConfigDict(frozen=True)

    source: str
    records: list[NormalizedEvent] = Field(default_factory=list)
    status: OutcomeStatus = OutcomeStatus.SUCCESS
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.status in (OutcomeStatus.ERROR, OutcomeStatus.CANCELLED)

    @property
    def record_count(self) -> int:
        return len(self.records)


class RunSummary(BaseModel):
    """Aggregate result of one orchestration pass across all sources."""

    model_config = ConfigDict(frozen=True)

    records_forwarded: int = 0
    error_count: int = 0
    duration_ms: int = 0

    # Breakdown for logs
    sources: int = 0
    scrape_errors: int = 0
    delivery_errors: int = 0
    skipped: int = 0
    cancelled: int = 0
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Per-source detail, for logging only
    outcomes: list[SourceOutcome] = Field(default_factory=list, repr=False)

    @computed_field
    @property
    def failed_sources(self) -> list[str]:
        """Names of sources whose scrape failed or was cancelled."""
        return [o.source for o in self.outcomes if o.failed]
