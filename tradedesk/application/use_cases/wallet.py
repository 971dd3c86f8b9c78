"""
Wallet Use Cases

Deposits, withdrawals and the transaction history for the signed-in user.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from tradedesk.application.interfaces.unit_of_work import IUnitOfWorkFactory
from tradedesk.application.services.wallet_service import WalletService
from tradedesk.domain.entities.transaction import Transaction

from .base import UseCase, UseCaseResponse
from .base_request import AuthenticatedRequestDTO
from .trading import resolve_portfolio


@dataclass
class WalletRequest(AuthenticatedRequestDTO):
    """Deposit or withdrawal request."""

    amount: Decimal
    is_demo: bool
    portfolio_id: UUID | None = None


@dataclass
class WalletResponse(UseCaseResponse):
    transaction: Transaction | None = None
    reference_id: str | None = None


@dataclass
class ListTransactionsRequest(AuthenticatedRequestDTO):
    limit: int = 20


@dataclass
class ListTransactionsResponse(UseCaseResponse):
    transactions: list[Transaction] = field(default_factory=list)


class _WalletUseCase(UseCase[WalletRequest, WalletResponse]):
    def __init__(
        self,
        wallet: WalletService,
        unit_of_work_factory: IUnitOfWorkFactory,
        name: str | None = None,
    ):
        super().__init__(name)
        self.wallet = wallet
        self.unit_of_work_factory = unit_of_work_factory

    async def validate(self, request: WalletRequest) -> str | None:
        if request.amount <= 0:
            return "Amount must be positive"
        return None

    async def _portfolio_id(self, request: WalletRequest) -> tuple[UUID, UUID]:
        user_id = request.require_user()
        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            portfolio = await resolve_portfolio(uow, user_id, request.portfolio_id)
        return user_id, portfolio.id

    def _create_error_response(self, error: str, request_id: UUID, error_code: str) -> WalletResponse:
        return WalletResponse(success=False, error=error, error_code=error_code, request_id=request_id)


class DepositUseCase(_WalletUseCase):
    """Demo deposit into the caller's portfolio."""

    def __init__(self, wallet: WalletService, unit_of_work_factory: IUnitOfWorkFactory):
        super().__init__(wallet, unit_of_work_factory, "DepositUseCase")

    async def process(self, request: WalletRequest) -> WalletResponse:
        user_id, portfolio_id = await self._portfolio_id(request)
        transaction = await self.wallet.deposit(user_id, portfolio_id, request.amount, request.is_demo)
        return WalletResponse(
            success=True,
            transaction=transaction,
            reference_id=transaction.reference_id,
            request_id=request.request_id,
        )


class WithdrawUseCase(_WalletUseCase):
    """Withdrawal from the caller's portfolio."""

    def __init__(self, wallet: WalletService, unit_of_work_factory: IUnitOfWorkFactory):
        super().__init__(wallet, unit_of_work_factory, "WithdrawUseCase")

    async def process(self, request: WalletRequest) -> WalletResponse:
        user_id, portfolio_id = await self._portfolio_id(request)
        transaction = await self.wallet.withdraw(user_id, portfolio_id, request.amount, request.is_demo)
        return WalletResponse(
            success=True,
            transaction=transaction,
            reference_id=transaction.reference_id,
            request_id=request.request_id,
        )


class ListTransactionsUseCase(UseCase[ListTransactionsRequest, ListTransactionsResponse]):
    """The caller's most recent wallet transactions."""

    def __init__(self, wallet: WalletService):
        super().__init__("ListTransactionsUseCase")
        self.wallet = wallet

    async def validate(self, request: ListTransactionsRequest) -> str | None:
        if request.limit <= 0:
            return "Limit must be positive"
        return None

    async def process(self, request: ListTransactionsRequest) -> ListTransactionsResponse:
        user_id = request.require_user()
        transactions = await self.wallet.list_transactions(user_id, request.limit)
        return ListTransactionsResponse(
            success=True, transactions=transactions, request_id=request.request_id
        )

    def _create_error_response(
        self, error: str, request_id: UUID, error_code: str
    ) -> ListTransactionsResponse:
        return ListTransactionsResponse(
            success=False, error=error, error_code=error_code, request_id=request_id
        )
