"""Per-source health carried across scraping runs."""

from dataclasses import dataclass
from typing import Optional

import structlog

from ..models import OutcomeStatus, SourceOutcome

logger = structlog.get_logger()


@dataclass
class SourceHealth:
    consecutive_failures: int = 0
    last_error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.consecutive_failures == 0


class HealthMonitor:
    """Track failing sources from successive scrape outcomes.

    A source turns unhealthy on its first failed or cancelled run and
    recovers on the next successful one. Skipped runs change nothing.
    """

    def __init__(self):
        self.sources: dict[str, SourceHealth] = {}

    def record_outcome(self, outcome: SourceOutcome) -> None:
        """Update a source's health from one scraper outcome."""
        if outcome.status == OutcomeStatus.SKIPPED:
            return

        health = self.sources.setdefault(outcome.source, SourceHealth())
        if outcome.failed:
            health.consecutive_failures += 1
            health.last_error = outcome.error or outcome.status.value
            logger.warning(
                "source_unhealthy",
                source=outcome.source,
                consecutive_failures=health.consecutive_failures,
                error=health.last_error,
            )
        elif not health.healthy:
            logger.info(
                "source_recovered",
                source=outcome.source,
                after_failures=health.consecutive_failures,
            )
            health.consecutive_failures = 0
            health.last_error = None

    def is_healthy(self, source: str) -> bool:
        """Unknown sources count as healthy."""
        health = self.sources.get(source)
        return health is None or health.healthy

    def unhealthy_sources(self) -> dict[str, int]:
        """Map each failing source to its consecutive failure count."""
        return {
            name: health.consecutive_failures
            for name, health in self.sources.items()
            if not health.healthy
        }
