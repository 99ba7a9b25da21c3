"""
Delivery of scraped batches to the events ingestion API.

The manager depends only on the Sink protocol; IngestionClient is the
HTTP implementation posting to ``/api/v1/events/ingest``.
"""

from typing import Optional, Protocol, runtime_checkable

import httpx
import structlog

from .errors import DeliveryError
from .models import NormalizedEvent
from .resilience import retry_with_backoff

logger = structlog.get_logger()

INGEST_PATH = "/api/v1/events/ingest"
ACCEPTED_STATUS_CODES = (200, 201)


@runtime_checkable
class Sink(Protocol):
    """Downstream target for one source's batch of events."""

    async def deliver(self, records: list[NormalizedEvent]) -> None:
        """Transfer the whole batch or raise DeliveryError."""
        ...


class IngestionClient:
    """Post event batches to the ingestion API.

    Transport errors and 5xx responses are retried with backoff; 4xx
    responses fail immediately.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        user_agent: str = "ZeroCost-Scraper/1.0",
        max_attempts: int = 3,
        retry_base_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize ingestion client.

        Args:
            api_url: Base URL of the events API
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header sent with each batch
            max_attempts: Attempts per batch, including the first
            retry_base_delay: Initial backoff delay in seconds
            client: Optional shared httpx client (one is created per call otherwise)
        """
        self.endpoint = f"{api_url.rstrip('/')}{INGEST_PATH}"
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client
        self._send = retry_with_backoff(
            max_attempts=max_attempts,
            base_delay=retry_base_delay,
            retryable_exceptions=(DeliveryError,),
            should_retry=lambda e: e.is_transient,
        )(self._post)

    async def deliver(self, records: list[NormalizedEvent]) -> None:
        """Send one batch. Empty batches are a no-op."""
        if not records:
            return

        payload = {"events": [record.to_payload() for record in records]}
        await self._send(payload, source=records[0].source)

        logger.info("events_ingested", count=len(records), source=records[0].source)

    async def _post(self, payload: dict, source: Optional[str] = None) -> None:
        headers = {"Content-Type": "application/json", "User-Agent": self.user_agent}

        try:
            if self._client is not None:
                response = await self._client.post(self.endpoint, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.RequestError as e:
            raise DeliveryError(f"Request failed: {e}", source=source) from e

        if response.status_code not in ACCEPTED_STATUS_CODES:
            raise DeliveryError(
                f"Ingestion failed with status {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
                source=source,
            )
