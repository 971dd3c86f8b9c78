"""
Retry Logic with Exponential Backoff

Backoff delays for the price feed reconnect loop and retry of the database
pool startup.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    # Basic retry settings
    max_retries: int = 3
    initial_delay: float = 1.0  # Initial delay in seconds
    max_delay: float = 60.0  # Maximum delay in seconds
    exponential_base: float = 2.0

    # Jitter settings
    jitter: bool = True  # Add random jitter to prevent thundering herd
    jitter_range: float = 0.1  # Jitter as fraction of delay (0.1 = +/-10%)

    # Exception handling
    retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
        OSError,
    )
    non_retryable_exceptions: tuple[type[Exception], ...] = (
        ValueError,
        TypeError,
        KeyError,
        AttributeError,
    )

    timeout_per_attempt: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.initial_delay <= 0:
            raise ValueError("initial_delay must be positive")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must not be below initial_delay")
        if self.exponential_base <= 1.0:
            raise ValueError("exponential_base must be greater than 1.0")
        if self.jitter_range < 0 or self.jitter_range > 1:
            raise ValueError("jitter_range must be between 0 and 1")


class RetryExhaustedException(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, attempts: int, last_exception: Exception | None, total_time: float) -> None:
        self.attempts = attempts
        self.last_exception = last_exception
        self.total_time = total_time
        error_msg = f"Last error: {last_exception}" if last_exception else "No exception recorded"
        super().__init__(
            f"Retry exhausted after {attempts} attempts in {total_time:.2f}s. {error_msg}"
        )


class ExponentialBackoff:
    """Exponential backoff calculator with jitter."""

    def __init__(self, config: RetryConfig) -> None:
        self.config = config

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for given attempt number.

        Args:
            attempt: Attempt number (0-based)

        Returns:
            Delay in seconds
        """
        if attempt < 0:
            return 0.0

        # initial_delay * (base ^ attempt), capped at max_delay
        delay = min(
            self.config.initial_delay * (self.config.exponential_base**attempt),
            self.config.max_delay,
        )

        if self.config.jitter and delay > 0:
            jitter_amount = delay * self.config.jitter_range
            jitter = random.uniform(-jitter_amount, jitter_amount)
            delay = max(0.1, delay + jitter)  # Minimum 100ms delay

        return delay


def is_retryable_exception(exception: Exception, config: RetryConfig) -> bool:
    """
    Check if an exception is retryable based on configuration.

    Non-retryable exceptions take precedence; unknown exceptions are not
    retried.
    """
    if isinstance(exception, config.non_retryable_exceptions):
        return False
    return isinstance(exception, config.retryable_exceptions)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """
    Execute async function with retry and exponential backoff.

    Args:
        func: Async function to execute
        *args: Positional arguments for func
        config: Retry configuration
        **kwargs: Keyword arguments for func

    Returns:
        Function result

    Raises:
        RetryExhaustedException: When all retries are exhausted
        Exception: A non-retryable exception is re-raised unchanged
    """
    config = config or RetryConfig()
    backoff = ExponentialBackoff(config)
    name = getattr(func, "__name__", repr(func))

    start_time = time.monotonic()
    last_exception: Exception | None = None

    for attempt in range(config.max_retries + 1):  # +1 for initial attempt
        try:
            if config.timeout_per_attempt:
                async with asyncio.timeout(config.timeout_per_attempt):
                    result = await func(*args, **kwargs)
            else:
                result = await func(*args, **kwargs)

            if attempt > 0:
                logger.info(
                    f"Function {name} succeeded on attempt {attempt + 1} "
                    f"after {time.monotonic() - start_time:.2f}s"
                )
            return result

        except Exception as e:
            if not is_retryable_exception(e, config):
                logger.warning(f"Non-retryable exception for {name}: {e}")
                raise

            last_exception = e
            if attempt >= config.max_retries:
                logger.warning(f"Max retries ({config.max_retries}) reached for {name}")
                break

            delay = backoff.get_delay(attempt)
            logger.warning(f"Attempt {attempt + 1} failed for {name}: {e}. Retrying in {delay:.2f}s")
            await asyncio.sleep(delay)

    raise RetryExhaustedException(
        attempts=config.max_retries + 1,
        last_exception=last_exception,
        total_time=time.monotonic() - start_time,
    )
