"""
Service configuration loaded from environment variables.

Credentials are optional: a scraper whose credentials are missing skips
itself instead of failing the run.
"""

import os
from typing import Any, Mapping, Optional

import structlog
from pydantic import BaseModel, Field, field_validator

logger = structlog.get_logger()


class ScraperConfig(BaseModel):
    """Runtime settings for the scraper service."""

    java_api_url: str = "http://localhost:8080"
    scraper_interval_minutes: int = 30
    run_timeout_minutes: int = 30
    user_agent: str = "ZeroCostBot/1.0"
    log_level: str = "INFO"

    # Sent on ingestion requests; scrapers use user_agent
    ingest_user_agent: str = "ZeroCost-Scraper/1.0"

    # External API credentials
    eventbrite_api_key: str = Field(default="", repr=False)
    meetup_api_key: str = Field(default="", repr=False)

    # Concurrency and pacing
    max_concurrent_scrapers: int = Field(default=4, ge=1)
    request_delay_ms: int = Field(default=1000, ge=1)
    delivery_timeout_seconds: float = 30.0
    cancel_grace_seconds: float = 5.0

    @property
    def request_delay_seconds(self) -> float:
        return self.request_delay_ms / 1000.0

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    def log_fields(self) -> dict[str, Any]:
        """Effective settings safe to log; credentials are reduced to flags."""
        return {
            "java_api_url": self.java_api_url,
            "scraper_interval_minutes": self.scraper_interval_minutes,
            "max_concurrent_scrapers": self.max_concurrent_scrapers,
            "request_delay_ms": self.request_delay_ms,
            "eventbrite_configured": bool(self.eventbrite_api_key),
            "meetup_configured": bool(self.meetup_api_key),
        }


def load_config(environ: Optional[Mapping[str, str]] = None) -> ScraperConfig:
    """
    Build configuration from the environment.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Validated ScraperConfig
    """
    env = os.environ if environ is None else environ
    defaults = ScraperConfig()

    return ScraperConfig(
        java_api_url=_get_env(env, "JAVA_API_URL", defaults.java_api_url).rstrip("/"),
        scraper_interval_minutes=_get_env_int(
            env, "SCRAPER_INTERVAL_MINUTES", defaults.scraper_interval_minutes
        ),
        run_timeout_minutes=_get_env_int(env, "RUN_TIMEOUT_MINUTES", defaults.run_timeout_minutes),
        user_agent=_get_env(env, "SCRAPER_USER_AGENT", defaults.user_agent),
        log_level=_get_env(env, "LOG_LEVEL", defaults.log_level),
        eventbrite_api_key=_get_env(env, "EVENTBRITE_API_KEY", ""),
        meetup_api_key=_get_env(env, "MEETUP_API_KEY", ""),
        max_concurrent_scrapers=max(
            1, _get_env_int(env, "MAX_CONCURRENT_SCRAPERS", defaults.max_concurrent_scrapers)
        ),
        request_delay_ms=max(1, _get_env_int(env, "REQUEST_DELAY_MS", defaults.request_delay_ms)),
        delivery_timeout_seconds=_get_env_int(
            env, "DELIVERY_TIMEOUT_SECONDS", int(defaults.delivery_timeout_seconds)
        ),
    )


def _get_env(env: Mapping[str, str], key: str, default: str) -> str:
    value = env.get(key, "")
    return value if value else default


def _get_env_int(env: Mapping[str, str], key: str, default: int) -> int:
    """Parse an integer variable, keeping the default on bad input."""
    raw = env.get(key, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("invalid_config_value", key=key, value=raw, default=default)
        return default
