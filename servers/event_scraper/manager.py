"""
Scrape orchestration: run every scraper, collect outcomes, deliver batches.

One pass (``run_all``) works like this:
- Each scraper runs as its own task, admitted through a counting semaphore
- Each task publishes exactly one SourceOutcome to an unbounded queue
- Outcomes are consumed as they arrive; each non-empty one is delivered
  to the sink as a single batch, concurrently with the others
- The pass ends when every outcome is in and every delivery has finished

Failures stay with their source: a scrape error never stops another
scraper and a delivery error never blocks another source's batch.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Optional, Sequence

import structlog

from .config import ScraperConfig
from .context import CANCELLED, RunContext
from .errors import (
    RunCancelledError,
    ScrapeCancelledError,
    ScrapeError,
    SourceSkipped,
)
from .ingestion import IngestionClient, Sink
from .models import NormalizedEvent, OutcomeStatus, RunSummary, SourceOutcome
from .resilience import HealthMonitor, RateLimiter
from .scrapers import Scraper, build_default_scrapers

logger = structlog.get_logger()


class ScraperManager:
    """Run registered scrapers with bounded parallelism and forward results.

    The scraper list, rate limiter and admission semaphore belong to the
    manager for its whole lifetime. Overlapping ``run_all`` calls share the
    limiter and the semaphore, so the concurrency bound holds across them.
    """

    def __init__(
        self,
        scrapers: Sequence[Scraper],
        sink: Sink,
        rate_limiter: RateLimiter,
        max_concurrent: int = 4,
        delivery_timeout: float = 30.0,
        cancel_grace: float = 5.0,
        health: Optional[HealthMonitor] = None,
    ):
        """Initialize the manager.

        Args:
            scrapers: Ordered scrapers; names must be unique
            sink: Delivery target for each source's batch
            rate_limiter: Limiter shared with every scraper
            max_concurrent: Maximum scrapers executing at once
            delivery_timeout: Seconds allowed for one batch delivery
            cancel_grace: Seconds a scraper may keep running after the
                context is done before its task is cancelled
            health: Monitor updated after every run
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.scrapers = list(scrapers)
        self.sink = sink
        self.rate_limiter = rate_limiter
        self.max_concurrent = max_concurrent
        self.delivery_timeout = delivery_timeout
        self.cancel_grace = cancel_grace
        self.health = health or HealthMonitor()
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @classmethod
    def from_config(
        cls,
        config: ScraperConfig,
        sink: Optional[Sink] = None,
        scrapers: Optional[Sequence[Scraper]] = None,
    ) -> "ScraperManager":
        """Wire the limiter, built-in scrapers and ingestion client from config."""
        rate_limiter = RateLimiter.every(config.request_delay_seconds)
        if scrapers is None:
            scrapers = build_default_scrapers(config, rate_limiter)
        if sink is None:
            sink = IngestionClient(
                config.java_api_url,
                timeout=config.delivery_timeout_seconds,
                user_agent=config.ingest_user_agent,
            )

        return cls(
            scrapers,
            sink,
            rate_limiter,
            max_concurrent=config.max_concurrent_scrapers,
            delivery_timeout=config.delivery_timeout_seconds,
            cancel_grace=config.cancel_grace_seconds,
        )

    async def run_all(self, ctx: RunContext) -> RunSummary:
        """Run one full scraping pass.

        Args:
            ctx: Cancellation/deadline shared by every scraper of this pass

        Returns:
            RunSummary; errors are counted, never raised
        """
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()
        logger.info(
            "scrape_run_started",
            scrapers=len(self.scrapers),
            max_concurrent=self.max_concurrent,
        )

        outcomes: asyncio.Queue[SourceOutcome] = asyncio.Queue()
        tasks = [
            asyncio.create_task(self._run_task(scraper, ctx, outcomes))
            for scraper in self.scrapers
        ]

        collected: list[SourceOutcome] = []
        deliveries: list[asyncio.Task] = []
        try:
            for _ in tasks:
                outcome = await outcomes.get()
                collected.append(outcome)
                self._log_outcome(outcome)
                self.health.record_outcome(outcome)
                if outcome.records:
                    deliveries.append(asyncio.create_task(self._deliver(outcome)))

            await asyncio.gather(*tasks)
            delivery_errors = await asyncio.gather(*deliveries)
        except BaseException:
            for task in tasks + deliveries:
                task.cancel()
            raise

        summary = self._summarize(collected, delivery_errors, started_at, start)
        logger.info(
            "scrape_run_completed",
            records_forwarded=summary.records_forwarded,
            errors=summary.error_count,
            duration_ms=summary.duration_ms,
            skipped=summary.skipped,
            cancelled=summary.cancelled,
            unhealthy_sources=self.health.unhealthy_sources(),
        )
        return summary

    async def _run_task(
        self,
        scraper: Scraper,
        ctx: RunContext,
        outcomes: "asyncio.Queue[SourceOutcome]",
    ) -> None:
        """Admit, run and publish exactly one outcome for a scraper."""
        outcome: Optional[SourceOutcome] = None
        admitted = False
        try:
            admitted = await self._acquire_slot(ctx)
            if not admitted or ctx.done:
                outcome = SourceOutcome(
                    source=scraper.name,
                    status=OutcomeStatus.CANCELLED,
                    error=f"Not started: {ctx.reason or CANCELLED}",
                )
            else:
                outcome = await self._run_scraper(scraper, ctx)
        except Exception as e:
            logger.exception("scraper_task_failed", source=scraper.name)
            outcome = SourceOutcome(
                source=scraper.name,
                status=OutcomeStatus.ERROR,
                error=f"{type(e).__name__}: {e}",
            )
        finally:
            if admitted:
                self._semaphore.release()
            if outcome is None:
                outcome = SourceOutcome(
                    source=scraper.name,
                    status=OutcomeStatus.CANCELLED,
                    error=f"Task cancelled: {ctx.reason or CANCELLED}",
                )
            outcomes.put_nowait(outcome)

    async def _acquire_slot(self, ctx: RunContext) -> bool:
        """Wait for an admission slot.

        Returns:
            True if a slot was taken (caller must release it), False if
            the context finished first
        """
        acquire = asyncio.ensure_future(self._semaphore.acquire())
        waiter = asyncio.ensure_future(ctx.wait())
        completed = False
        try:
            await asyncio.wait({acquire, waiter}, return_when=asyncio.FIRST_COMPLETED)
            completed = True
        finally:
            waiter.cancel()
            if not acquire.done():
                acquire.cancel()
                await asyncio.wait({acquire})
            # Our own task was cancelled after the slot was granted
            if not completed and not acquire.cancelled():
                self._semaphore.release()

        return not acquire.cancelled()

    async def _run_scraper(self, scraper: Scraper, ctx: RunContext) -> SourceOutcome:
        """Time one scrape and turn its result or exception into an outcome."""
        name = scraper.name
        logger.info("scraper_started", source=name)
        start = time.monotonic()

        records: list[NormalizedEvent] = []
        status = OutcomeStatus.SUCCESS
        error: Optional[str] = None

        try:
            records = list(await self._invoke(scraper, ctx))
        except SourceSkipped as e:
            status = OutcomeStatus.SKIPPED
            logger.info("scraper_skipped", source=name, reason=e.reason)
        except ScrapeCancelledError as e:
            records, status, error = e.partial, OutcomeStatus.CANCELLED, str(e)
        except RunCancelledError as e:
            status, error = OutcomeStatus.CANCELLED, str(e)
        except ScrapeError as e:
            records, status, error = e.partial, OutcomeStatus.ERROR, str(e)
        except Exception as e:
            status, error = OutcomeStatus.ERROR, f"{type(e).__name__}: {e}"

        valid = [r for r in records if isinstance(r, NormalizedEvent)]
        if len(valid) != len(records):
            dropped = len(records) - len(valid)
            logger.error("scraper_returned_invalid_records", source=name, dropped=dropped)
            if status == OutcomeStatus.SUCCESS:
                status, error = OutcomeStatus.ERROR, f"{dropped} invalid records dropped"
            records = valid

        return SourceOutcome(
            source=name,
            records=records,
            status=status,
            error=error,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    async def _invoke(self, scraper: Scraper, ctx: RunContext) -> list[NormalizedEvent]:
        """Await a scrape, cancelling it if it outlives the context by cancel_grace."""
        scrape = asyncio.ensure_future(scraper.scrape(ctx))
        waiter = asyncio.ensure_future(ctx.wait())
        try:
            await asyncio.wait({scrape, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if not scrape.done():
                await asyncio.wait({scrape}, timeout=self.cancel_grace)

            if not scrape.done():
                logger.warning(
                    "scraper_ignored_cancellation",
                    source=scraper.name,
                    grace_seconds=self.cancel_grace,
                )
                scrape.cancel()
                await asyncio.wait({scrape}, timeout=self.cancel_grace)
                if not scrape.done():
                    logger.error("scraper_abandoned", source=scraper.name)

            if not scrape.done() or scrape.cancelled():
                raise RunCancelledError(ctx.reason or CANCELLED)
            return scrape.result()
        finally:
            waiter.cancel()
            if not scrape.done():
                scrape.cancel()

    async def _deliver(self, outcome: SourceOutcome) -> Optional[str]:
        """Deliver one source's batch.

        Returns:
            None on success, otherwise the error message
        """
        try:
            await asyncio.wait_for(
                self.sink.deliver(list(outcome.records)),
                timeout=self.delivery_timeout,
            )
        except asyncio.TimeoutError:
            error = f"Delivery timed out after {self.delivery_timeout}s"
        except Exception as e:
            error = str(e) or type(e).__name__
        else:
            return None

        logger.error(
            "delivery_failed",
            source=outcome.source,
            events=outcome.record_count,
            error=error,
        )
        return error

    def _log_outcome(self, outcome: SourceOutcome) -> None:
        context = {
            "source": outcome.source,
            "events": outcome.record_count,
            "duration_ms": outcome.duration_ms,
        }
        if outcome.status == OutcomeStatus.CANCELLED:
            logger.warning("scraper_cancelled", error=outcome.error, **context)
        elif outcome.status == OutcomeStatus.ERROR:
            logger.error("scraper_failed", error=outcome.error, **context)
        elif outcome.status == OutcomeStatus.SUCCESS:
            logger.info("scraper_completed", **context)

    def _summarize(
        self,
        outcomes: list[SourceOutcome],
        delivery_errors: list[Optional[str]],
        started_at: datetime,
        start: float,
    ) -> RunSummary:
        delivered = [o for o in outcomes if o.records]
        forwarded = sum(
            o.record_count for o, err in zip(delivered, delivery_errors) if err is None
        )
        scrape_errors = sum(1 for o in outcomes if o.status == OutcomeStatus.ERROR)
        cancelled = sum(1 for o in outcomes if o.status == OutcomeStatus.CANCELLED)
        failed_deliveries = sum(1 for err in delivery_errors if err is not None)

        return RunSummary(
            records_forwarded=forwarded,
            error_count=scrape_errors + cancelled + failed_deliveries,
            duration_ms=int((time.monotonic() - start) * 1000),
            sources=len(outcomes),
            scrape_errors=scrape_errors,
            delivery_errors=failed_deliveries,
            skipped=sum(1 for o in outcomes if o.status == OutcomeStatus.SKIPPED),
            cancelled=cancelled,
            started_at=started_at,
            outcomes=outcomes,
        )
