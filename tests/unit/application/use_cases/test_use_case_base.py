"""Unit tests for the UseCase base class."""

# Standard library imports
from dataclasses import dataclass
from uuid import UUID, uuid4

# Third-party imports
import pytest

# Local imports
from tradedesk.application.use_cases.base import UseCase, UseCaseRequest, UseCaseResponse
from tradedesk.infrastructure.monitoring.logging import get_correlation_id, user_id_var


@dataclass
class EchoRequest(UseCaseRequest):
    user_id: UUID | None = None


class ContextEchoUseCase(UseCase[EchoRequest, UseCaseResponse]):
    """Answers with the logging context seen while processing."""

    async def validate(self, request: EchoRequest) -> str | None:
        return None

    async def process(self, request: EchoRequest) -> UseCaseResponse:
        return UseCaseResponse.success_response(
            {"correlation_id": get_correlation_id(), "user_id": user_id_var.get()},
            request.request_id,
        )


@pytest.mark.unit
class TestUseCaseLoggingContext:
    @pytest.mark.asyncio
    async def test_request_id_and_user_are_in_context(self):
        user_id = uuid4()
        request = EchoRequest(user_id=user_id)

        response = await ContextEchoUseCase().execute(request)

        assert response.data == {"correlation_id": str(request.request_id), "user_id": str(user_id)}
        assert get_correlation_id() is None
        assert user_id_var.get() is None

    @pytest.mark.asyncio
    async def test_explicit_correlation_id_wins(self):
        correlation_id = uuid4()

        response = await ContextEchoUseCase().execute(EchoRequest(correlation_id=correlation_id))

        assert response.data == {"correlation_id": str(correlation_id), "user_id": None}
