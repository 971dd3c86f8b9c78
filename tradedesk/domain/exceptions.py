"""
Domain-level exceptions for the trade lifecycle.

This module defines exceptions that are specific to domain logic and business rules.
These exceptions are raised within domain entities and services and are surfaced
to callers unchanged.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID


class DomainException(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class InsufficientBalanceError(DomainException):
    """Raised when a debit exceeds the targeted balance field."""

    def __init__(
        self,
        portfolio_id: UUID | str,
        required: Decimal,
        available: Decimal,
        is_demo: bool = False,
    ) -> None:
        account = "demo" if is_demo else "real"
        super().__init__(
            f"Insufficient {account} balance in portfolio {portfolio_id}: "
            f"required {required}, but only {available} available",
            details={
                "portfolio_id": str(portfolio_id),
                "required": str(required),
                "available": str(available),
                "is_demo": is_demo,
            },
        )
        self.portfolio_id = portfolio_id
        self.required = required
        self.available = available
        self.is_demo = is_demo


class NoMarketDataError(DomainException):
    """Raised when no mark has ever been received for a symbol."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"No market data available for {symbol}", details={"symbol": symbol})
        self.symbol = symbol


class InvalidTradeStateError(DomainException):
    """
    Raised when a transition is attempted from a state that does not allow it.

    Closing a trade that is already completed or cancelled is the common case,
    which makes this the guard against double-close.
    """

    def __init__(self, trade_id: UUID | str, current_status: str, operation: str = "close") -> None:
        super().__init__(
            f"Cannot {operation} trade {trade_id} in status '{current_status}'",
            details={
                "trade_id": str(trade_id),
                "status": current_status,
                "operation": operation,
            },
        )
        self.trade_id = trade_id
        self.current_status = current_status
        self.operation = operation


class NotAuthenticatedError(DomainException):
    """Raised when an operation requires a user and none (or the wrong one) is present."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class ValidationError(DomainException):
    """Exception raised when domain validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details)
        self.field = field
        self.value = value
