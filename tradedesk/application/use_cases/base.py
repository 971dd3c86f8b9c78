"""
Base Use Case

Provides the foundation for all use cases in the application layer.
Implements common patterns like logging, validation, and error handling.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from uuid import UUID, uuid4

from tradedesk.application.interfaces.exceptions import (
    PortfolioNotFoundError,
    TradeNotFoundError,
    TransactionNotFoundError,
)
from tradedesk.domain.exceptions import (
    InsufficientBalanceError,
    InvalidTradeStateError,
    NoMarketDataError,
    NotAuthenticatedError,
    ValidationError,
)
from tradedesk.infrastructure.monitoring.logging import correlation_context, user_context

logger = logging.getLogger(__name__)

# Type variables for request and response
TRequest = TypeVar("TRequest")
TResponse = TypeVar("TResponse")


class ErrorCode:
    """Stable error codes surfaced to callers."""

    INSUFFICIENT_BALANCE = "insufficient_balance"
    PORTFOLIO_NOT_FOUND = "portfolio_not_found"
    NO_MARKET_DATA = "no_market_data"
    INVALID_STATE = "invalid_state"
    NOT_AUTHENTICATED = "not_authenticated"
    TRADE_NOT_FOUND = "trade_not_found"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    VALIDATION_ERROR = "validation_error"
    INTERNAL_ERROR = "internal_error"


# Order matters: the first matching class wins
_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (InsufficientBalanceError, ErrorCode.INSUFFICIENT_BALANCE),
    (PortfolioNotFoundError, ErrorCode.PORTFOLIO_NOT_FOUND),
    (NoMarketDataError, ErrorCode.NO_MARKET_DATA),
    (InvalidTradeStateError, ErrorCode.INVALID_STATE),
    (NotAuthenticatedError, ErrorCode.NOT_AUTHENTICATED),
    (TradeNotFoundError, ErrorCode.TRADE_NOT_FOUND),
    (TransactionNotFoundError, ErrorCode.TRANSACTION_NOT_FOUND),
    (ValidationError, ErrorCode.VALIDATION_ERROR),
    (ValueError, ErrorCode.VALIDATION_ERROR),
)


def error_code_for(error: Exception) -> str:
    """Map an exception to its stable error code."""
    for exc_type, code in _ERROR_CODES:
        if isinstance(error, exc_type):
            return code
    return ErrorCode.INTERNAL_ERROR


@dataclass
class UseCaseRequest:
    """Base class for use case requests."""

    request_id: UUID | None = None
    correlation_id: UUID | None = None
    metadata: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        """Initialize request with defaults."""
        if self.request_id is None:
            self.request_id = uuid4()
        if self.metadata is None:
            self.metadata = {}


@dataclass
class UseCaseResponse:
    """Base class for use case responses."""

    success: bool
    data: Any | None = None
    error: str | None = None
    error_code: str | None = None
    request_id: UUID | None = None

    @classmethod
    def success_response(cls, data: Any, request_id: UUID) -> "UseCaseResponse":
        """Create a successful response."""
        return cls(success=True, data=data, request_id=request_id)

    @classmethod
    def error_response(
        cls, error: str, request_id: UUID, error_code: str = ErrorCode.INTERNAL_ERROR
    ) -> "UseCaseResponse":
        """Create an error response."""
        return cls(success=False, error=error, error_code=error_code, request_id=request_id)


class UseCase(ABC, Generic[TRequest, TResponse]):
    """
    Abstract base class for all use cases.

    Provides a consistent interface and common functionality for
    business logic orchestration. Services raise; ``execute`` turns whatever
    they raise into an error response carrying a stable code.
    """

    def __init__(self, name: str | None = None) -> None:
        """
        Initialize use case.

        Args:
            name: Optional name for the use case (defaults to class name)
        """
        self.name = name or self.__class__.__name__
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    async def execute(self, request: TRequest) -> TResponse:
        """
        Execute the use case.

        Logs emitted while it runs carry the request's correlation id (its
        request id when none was given) and the caller's user id.

        Args:
            request: The use case request

        Returns:
            The use case response
        """
        request_id = getattr(request, "request_id", None) or uuid4()
        correlation_id = getattr(request, "correlation_id", None) or request_id
        user_id = getattr(request, "user_id", None)

        with correlation_context(str(correlation_id)), user_context(user_id):
            return await self._execute(request, request_id)

    async def _execute(self, request: TRequest, request_id: UUID) -> TResponse:
        self.logger.info(
            f"Executing {self.name}",
            extra={
                "request_id": str(request_id),
                "use_case": self.name,
            },
        )

        try:
            # Validate the request
            validation_error = await self.validate(request)
            if validation_error:
                self.logger.warning(
                    f"Validation failed for {self.name}: {validation_error}",
                    extra={"request_id": str(request_id)},
                )
                return self._create_error_response(
                    validation_error, request_id, ErrorCode.VALIDATION_ERROR
                )

            # Execute the business logic
            response = await self.process(request)

            self.logger.info(
                f"Successfully executed {self.name}",
                extra={
                    "request_id": str(request_id),
                    "success": getattr(response, "success", True),
                },
            )

            return response

        except Exception as e:
            code = error_code_for(e)
            if code == ErrorCode.INTERNAL_ERROR:
                self.logger.error(
                    f"Error executing {self.name}: {e}",
                    extra={"request_id": str(request_id)},
                    exc_info=True,
                )
                message = f"{self.name} failed due to internal error"
            else:
                self.logger.warning(
                    f"{self.name} rejected: {e}",
                    extra={"request_id": str(request_id), "error_code": code},
                )
                message = str(e)
            return self._create_error_response(message, request_id, code)

    @abstractmethod
    async def validate(self, request: TRequest) -> str | None:
        """
        Validate the request.

        Returns:
            Error message if validation fails, None otherwise
        """
        pass

    @abstractmethod
    async def process(self, request: TRequest) -> TResponse:
        """
        Process the request and execute business logic.

        Args:
            request: The validated request

        Returns:
            The response
        """
        pass

    def _create_error_response(self, error: str, request_id: UUID, error_code: str) -> TResponse:
        """
        Create an error response.

        Subclasses with their own response type override this.
        """
        return UseCaseResponse.error_response(error, request_id, error_code)  # type: ignore
