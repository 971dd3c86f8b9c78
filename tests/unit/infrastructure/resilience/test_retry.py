"""Unit tests for retry and backoff."""

# Standard library imports
from unittest.mock import AsyncMock, patch

# Third-party imports
import pytest

# Local imports
from tradedesk.infrastructure.resilience.retry import (
    ExponentialBackoff,
    RetryConfig,
    RetryExhaustedException,
    is_retryable_exception,
    retry_async,
)


@pytest.mark.unit
class TestRetryConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"initial_delay": 0},
            {"initial_delay": 5, "max_delay": 1},
            {"exponential_base": 1.0},
            {"jitter_range": 1.5},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)


@pytest.mark.unit
class TestExponentialBackoff:
    def test_delays_double_until_cap(self):
        backoff = ExponentialBackoff(RetryConfig(initial_delay=1, max_delay=5, jitter=False))

        assert [backoff.get_delay(n) for n in range(5)] == [1, 2, 4, 5, 5]

    def test_jitter_stays_in_range(self):
        backoff = ExponentialBackoff(RetryConfig(initial_delay=10, max_delay=10, jitter_range=0.1))

        for _ in range(20):
            assert 9 <= backoff.get_delay(0) <= 11


@pytest.mark.unit
class TestRetryAsync:
    def test_retryable_classification(self):
        config = RetryConfig()

        assert is_retryable_exception(OSError("reset"), config)
        assert not is_retryable_exception(ValueError("bad"), config)
        assert not is_retryable_exception(RuntimeError("unknown"), config)

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        func = AsyncMock(side_effect=[OSError("1"), OSError("2"), "ok"])

        with patch("tradedesk.infrastructure.resilience.retry.asyncio.sleep", AsyncMock()):
            result = await retry_async(func, config=RetryConfig(max_retries=3))

        assert result == "ok"
        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_exhaustion(self):
        func = AsyncMock(side_effect=OSError("down"))

        with patch("tradedesk.infrastructure.resilience.retry.asyncio.sleep", AsyncMock()):
            with pytest.raises(RetryExhaustedException) as exc_info:
                await retry_async(func, config=RetryConfig(max_retries=2))

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_exception, OSError)

    @pytest.mark.asyncio
    async def test_non_retryable_is_raised_immediately(self):
        func = AsyncMock(side_effect=ValueError("bad dsn"))

        with pytest.raises(ValueError):
            await retry_async(func, config=RetryConfig(max_retries=5))

        assert func.await_count == 1
