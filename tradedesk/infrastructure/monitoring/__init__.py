"""Logging setup and correlation context."""

from .logging import (
    StructuredFormatter,
    correlation_context,
    get_correlation_id,
    setup_logging,
    user_context,
)

__all__ = [
    "StructuredFormatter",
    "correlation_context",
    "get_correlation_id",
    "setup_logging",
    "user_context",
]
