"""
Structured Logging

JSON or text logs with correlation IDs, trade-specific fields and masking of
sensitive values. Modules keep using ``logging.getLogger(__name__)``; this
module only configures handlers and formatting.
"""

import json
import logging
import re
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from logging.handlers import RotatingFileHandler
from typing import Any
from uuid import UUID

from tradedesk.application.config import LoggingConfig

# Context variables for correlation tracking
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)

TRADE_FIELDS = ("symbol", "trade_id", "portfolio_id", "operation_type")

_STANDARD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "correlation_id", "user_id", *TRADE_FIELDS}


@dataclass
class SensitiveDataConfig:
    """Configuration for sensitive data masking."""

    key_patterns: list[str] = field(
        default_factory=lambda: [
            r"api[_-]?key",
            r"secret[_-]?key",
            r"access[_-]?token",
            r"authorization",
            r"server[_-]?key",
            r"account[_-]?number",
        ]
    )
    mask_replacement: str = "***MASKED***"

    # Fields dropped from logs entirely
    excluded_fields: set[str] = field(
        default_factory=lambda: {"password", "passwd", "secret", "private_key", "token"}
    )


class SensitiveDataMasker:
    """Masks sensitive data in log messages and extra fields."""

    def __init__(self, config: SensitiveDataConfig | None = None) -> None:
        self.config = config or SensitiveDataConfig()
        self._key_patterns = [re.compile(p, re.IGNORECASE) for p in self.config.key_patterns]
        self._value_patterns = [
            re.compile(rf'("?{p}"?\s*[:=]\s*)("[^"]*"|\S+)', re.IGNORECASE)
            for p in self.config.key_patterns
        ]

    def mask_message(self, message: str) -> str:
        """Mask ``key=value`` and ``key: value`` pairs with sensitive keys."""
        for pattern in self._value_patterns:
            message = pattern.sub(rf"\g<1>{self.config.mask_replacement}", message)
        return message

    def mask_extra_fields(self, extra: dict[str, Any]) -> dict[str, Any]:
        """Mask sensitive data in extra log fields."""
        masked: dict[str, Any] = {}
        for key, value in extra.items():
            if key.lower() in self.config.excluded_fields:
                continue
            if any(p.search(key) for p in self._key_patterns):
                masked[key] = self.config.mask_replacement
            elif isinstance(value, str):
                masked[key] = self.mask_message(value)
            elif isinstance(value, dict):
                masked[key] = self.mask_extra_fields(value)
            else:
                masked[key] = value
        return masked


class ContextFilter(logging.Filter):
    """Copies the correlation and user context onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        record.user_id = user_id_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logs."""

    def __init__(
        self,
        sensitive_data_config: SensitiveDataConfig | None = None,
        include_extra: bool = True,
        sort_keys: bool = True,
    ) -> None:
        super().__init__()
        self.include_extra = include_extra
        self.sort_keys = sort_keys
        self.masker = SensitiveDataMasker(sensitive_data_config)

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self.masker.mask_message(record.getMessage()),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            log_entry["correlation_id"] = correlation_id
        user_id = getattr(record, "user_id", None)
        if user_id:
            log_entry["user_id"] = user_id

        trade_fields = {
            name: _serialize_value(getattr(record, name))
            for name in TRADE_FIELDS
            if getattr(record, name, None) is not None
        }
        if trade_fields:
            log_entry["trade"] = trade_fields

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if self.include_extra:
            extra = {
                key: _serialize_value(value)
                for key, value in record.__dict__.items()
                if key not in _STANDARD_FIELDS and not key.startswith("_")
            }
            if extra:
                log_entry["extra"] = self.masker.mask_extra_fields(extra)

        return json.dumps(log_entry, sort_keys=self.sort_keys, default=_serialize_value)


def _serialize_value(value: Any) -> Any:
    """Serialize complex values for JSON output."""
    if isinstance(value, Decimal | UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, set | frozenset):
        return sorted(value, key=str)
    return value


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """Get current correlation ID."""
    return correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str, None, None]:
    """Context manager for correlation ID scope."""
    if correlation_id is None:
        correlation_id = generate_correlation_id()

    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


@contextmanager
def user_context(user_id: UUID | str | None) -> Generator[None, None, None]:
    """Context manager for user context scope, None for anonymous callers."""
    token = user_id_var.set(str(user_id) if user_id is not None else None)
    try:
        yield
    finally:
        user_id_var.reset(token)


def setup_logging(
    config: LoggingConfig | None = None,
    sensitive_data_config: SensitiveDataConfig | None = None,
) -> None:
    """
    Configure root logging from the logging section of the configuration.

    Args:
        config: Level, format, JSON switch and optional rotating log file
        sensitive_data_config: Masking rules for the JSON formatter
    """
    config = config or LoggingConfig()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter: logging.Formatter
    if config.json:
        formatter = StructuredFormatter(sensitive_data_config)
    else:
        formatter = logging.Formatter(config.format)

    context_filter = ContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(context_filter)
    root_logger.addHandler(console_handler)

    if config.file:
        file_handler = RotatingFileHandler(
            config.file, maxBytes=config.max_bytes, backupCount=config.backup_count
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context_filter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    logging.getLogger(__name__).debug("Logging configured")
