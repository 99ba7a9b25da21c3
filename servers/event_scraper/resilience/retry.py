"""Retry with exponential backoff for sink-level delivery."""

import asyncio
import random
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    should_retry: Optional[Callable[[Exception], bool]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for async retry with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts, including the first
        base_delay: Initial delay between attempts in seconds
        max_delay: Maximum delay between attempts in seconds
        exponential_base: Base for exponential backoff calculation
        jitter: Randomize delays so concurrent callers spread out
        retryable_exceptions: Exception types eligible for a retry
        should_retry: Optional predicate narrowing which errors are retried

    Returns:
        Decorated async function with retry logic
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    retry = should_retry is None or should_retry(e)
                    if not retry or attempt == max_attempts - 1:
                        if retry:
                            logger.error(
                                "retry_exhausted",
                                function=func.__name__,
                                max_attempts=max_attempts,
                                error=str(e),
                            )
                        raise

                    delay = min(base_delay * (exponential_base**attempt), max_delay)
                    if jitter:
                        delay *= 0.5 + random.random()

                    logger.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay=round(delay, 2),
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("max_attempts must be at least 1")

        return wrapper  # type: ignore

    return decorator
