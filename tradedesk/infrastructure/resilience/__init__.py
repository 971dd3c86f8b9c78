"""Retry and backoff helpers."""

from .retry import (
    ExponentialBackoff,
    RetryConfig,
    RetryExhaustedException,
    is_retryable_exception,
    retry_async,
)

__all__ = [
    "ExponentialBackoff",
    "RetryConfig",
    "RetryExhaustedException",
    "is_retryable_exception",
    "retry_async",
]
