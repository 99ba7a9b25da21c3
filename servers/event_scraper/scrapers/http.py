"""Shared httpx client handling for scrapers."""

from contextlib import nullcontext
from typing import AsyncContextManager, Optional

import httpx

DEFAULT_TIMEOUT = 30.0


def open_client(
    client: Optional[httpx.AsyncClient],
    user_agent: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> AsyncContextManager[httpx.AsyncClient]:
    """Reuse an injected client, or open a short-lived one for this scrape."""
    if client is not None:
        return nullcontext(client)
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
    )
