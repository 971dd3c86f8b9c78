"""
Base Request DTOs for Use Cases

Common request fields and the authenticated-caller guard shared by the
trading and wallet use cases.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from tradedesk.domain.exceptions import NotAuthenticatedError

from .base import UseCaseRequest


@dataclass(kw_only=True)
class BaseRequestDTO(UseCaseRequest):
    """
    Base class for all request DTOs with common fields.

    Uses kw_only=True to allow derived classes to have required fields
    before optional ones from the base class.
    """

    request_id: UUID = field(default_factory=uuid4)
    correlation_id: UUID | None = field(default=None)
    metadata: dict[str, Any] = field(default_factory=dict)

    def with_correlation_id(self, correlation_id: UUID) -> "BaseRequestDTO":
        """Set the correlation ID and return self for chaining."""
        self.correlation_id = correlation_id
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert request to a dictionary with identifiers and decimals as strings."""
        data: dict[str, Any] = {}
        for key, value in self.__dict__.items():
            if isinstance(value, UUID):
                value = str(value)
            elif isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Decimal):
                value = str(value)
            data[key] = value
        return data


@dataclass(kw_only=True)
class AuthenticatedRequestDTO(BaseRequestDTO):
    """
    Request made on behalf of a signed-in user.

    ``user_id`` is None when the caller has no session; such requests are
    rejected with ``not_authenticated`` before any work is done.
    """

    user_id: UUID | None = None

    def require_user(self) -> UUID:
        """
        Get the caller's user id.

        Raises:
            NotAuthenticatedError: If the request carries no user
        """
        if self.user_id is None:
            raise NotAuthenticatedError()
        return self.user_id
