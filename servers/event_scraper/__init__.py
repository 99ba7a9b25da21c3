"""
Free Event Scraper Service

Periodically pulls free event listings from independent sources and
forwards them to the ingestion API:
- Reddit, Eventbrite, Meetup and university event pages
- Shared token-bucket rate limit across every source
- Bounded concurrency with per-source failure isolation

Run with: python -m servers.event_scraper
"""

__version__ = "1.0.0"
