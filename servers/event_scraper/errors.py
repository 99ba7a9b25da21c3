"""Exception hierarchy for scraping and delivery failures."""

from typing import Optional


class ScraperServiceError(Exception):
    """Base class for all scraper service errors."""


class RunCancelledError(ScraperServiceError):
    """Raised when the run context is cancelled or its deadline expired."""

    def __init__(self, reason: str = "cancelled"):
        super().__init__(f"Run context done: {reason}")
        self.reason = reason


class SourceSkipped(ScraperServiceError):
    """Raised by a scraper that is unconfigured or inapplicable for this run."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ScrapeError(ScraperServiceError):
    """A scraper failed, possibly after collecting some events.

    Events gathered before the failure travel on ``partial`` so they are
    still forwarded.
    """

    def __init__(self, message: str, partial: Optional[list] = None):
        super().__init__(message)
        self.partial = list(partial or [])


class ScrapeCancelledError(ScrapeError):
    """A scraper stopped early because the run context was done."""

    def __init__(self, reason: str = "cancelled", partial: Optional[list] = None):
        super().__init__(f"Scrape cancelled: {reason}", partial=partial)
        self.reason = reason


class DeliveryError(ScraperServiceError):
    """The sink rejected or failed to accept a batch."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        source: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.source = source

    @property
    def is_transient(self) -> bool:
        """Transport failures and 5xx responses are worth another attempt."""
        return self.status_code is None or self.status_code >= 500
