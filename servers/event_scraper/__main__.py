"""
Entry point for the free event scraper service.

Runs one scraping pass at startup, then one every
SCRAPER_INTERVAL_MINUTES until interrupted. Each pass gets its own
RUN_TIMEOUT_MINUTES deadline.

Run with: python -m servers.event_scraper [--once]
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

import structlog

from .config import ScraperConfig, load_config
from .context import RunContext
from .log_config import configure_logging
from .manager import ScraperManager
from .models import RunSummary

logger = structlog.get_logger()


async def run_once(manager: ScraperManager, timeout_minutes: int) -> RunSummary:
    """Run a single pass under a fresh deadline."""
    async with RunContext(timeout=timeout_minutes * 60) as ctx:
        return await manager.run_all(ctx)


async def run_forever(manager: ScraperManager, config: ScraperConfig) -> None:
    """Run at startup and then on the configured interval until stopped."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    interval = config.scraper_interval_minutes * 60
    logger.info("scheduler_started", interval_minutes=config.scraper_interval_minutes)

    while not stop.is_set():
        # A pass that outlives the interval delays the next one; passes never overlap here
        run = asyncio.create_task(run_once(manager, config.run_timeout_minutes))
        stopped = asyncio.create_task(stop.wait())
        await asyncio.wait({run, stopped}, return_when=asyncio.FIRST_COMPLETED)
        stopped.cancel()

        if not run.done():
            logger.info("shutdown_cancelling_run")
            run.cancel()
            await asyncio.gather(run, return_exceptions=True)
            break

        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue

    logger.info("scheduler_stopped")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m servers.event_scraper",
        description="Scrape free events and forward them to the ingestion API",
    )
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument(
        "--interval-minutes",
        type=int,
        default=None,
        help="Override SCRAPER_INTERVAL_MINUTES",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    return parser.parse_args(argv)


async def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the scraper service."""
    args = parse_args(argv)
    config = load_config()
    configure_logging(config.log_level, json_output=args.json_logs)
    logger.info("config_loaded", **config.log_fields())

    if args.interval_minutes:
        config = config.model_copy(update={"scraper_interval_minutes": args.interval_minutes})
    manager = ScraperManager.from_config(config)

    if args.once:
        summary = await run_once(manager, config.run_timeout_minutes)
        return 1 if summary.error_count and not summary.records_forwarded else 0

    await run_forever(manager, config)
    return 0


def cli() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
