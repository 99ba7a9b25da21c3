"""Tests for retry with backoff."""

from unittest.mock import patch

import pytest

from servers.event_scraper.errors import DeliveryError
from servers.event_scraper.resilience.retry import retry_with_backoff


class TestRetryWithBackoff:
    """Tests for retry_with_backoff decorator."""

    @pytest.mark.asyncio
    async def test_returns_on_success(self):
        """Should return result on successful call."""

        @retry_with_backoff(max_attempts=3)
        async def success():
            return "ok"

        assert await success() == "ok"

    @pytest.mark.asyncio
    async def test_retries_on_failure(self):
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        async def fail_then_succeed():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError("retry me")
            return "ok"

        assert await fail_then_succeed() == "ok"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_raises_after_max_attempts(self):

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        async def always_fail():
            raise ValueError("always fails")

        with pytest.raises(ValueError) as exc_info:
            await always_fail()

        assert "always fails" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_respects_retryable_exceptions(self):
        """Should only retry specified exception types."""
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01, retryable_exceptions=(ValueError,))
        async def raise_type_error():
            nonlocal call_count
            call_count += 1
            raise TypeError("not retryable")

        with pytest.raises(TypeError):
            await raise_type_error()
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_should_retry_predicate(self):
        """Permanent delivery errors are raised on the first attempt."""
        statuses = []

        @retry_with_backoff(
            max_attempts=3,
            base_delay=0.01,
            retryable_exceptions=(DeliveryError,),
            should_retry=lambda e: e.is_transient,
        )
        async def post(status_code):
            statuses.append(status_code)
            raise DeliveryError("rejected", status_code=status_code)

        with pytest.raises(DeliveryError):
            await post(422)
        assert statuses == [422]

        statuses.clear()
        with pytest.raises(DeliveryError):
            await post(502)
        assert statuses == [502, 502, 502]

    @pytest.mark.asyncio
    async def test_exponential_delay(self):
        delays = []

        async def mock_sleep(delay):
            delays.append(delay)

        @retry_with_backoff(max_attempts=4, base_delay=0.1, exponential_base=2.0, jitter=False)
        async def fail():
            raise ValueError("fail")

        with patch("asyncio.sleep", mock_sleep):
            with pytest.raises(ValueError):
                await fail()

        # No delay after the final failure
        assert delays == pytest.approx([0.1, 0.2, 0.4])

    @pytest.mark.asyncio
    async def test_max_delay_cap(self):
        delays = []

        async def mock_sleep(delay):
            delays.append(delay)

        @retry_with_backoff(max_attempts=5, base_delay=10.0, max_delay=1.0, jitter=False)
        async def fail():
            raise ValueError("fail")

        with patch("asyncio.sleep", mock_sleep):
            with pytest.raises(ValueError):
                await fail()

        assert delays == [1.0, 1.0, 1.0, 1.0]

    @pytest.mark.asyncio
    async def test_passes_args_and_kwargs(self):

        @retry_with_backoff(max_attempts=2)
        async def add(a, b, multiplier=1):
            return (a + b) * multiplier

        assert await add(2, 3, multiplier=2) == 10
