"""Resilience patterns shared by scrapers and the ingestion client."""

from .health import HealthMonitor
from .rate_limiter import RateLimiter
from .retry import retry_with_backoff

__all__ = [
    "RateLimiter",
    "retry_with_backoff",
    "HealthMonitor",
]
