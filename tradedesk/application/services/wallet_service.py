"""Wallet Service - Deposits and withdrawals as ledger credits and debits."""

import logging
from decimal import Decimal
from uuid import UUID

from tradedesk.application.interfaces.exceptions import (
    PortfolioNotFoundError,
    TransactionNotFoundError,
)
from tradedesk.application.interfaces.unit_of_work import IUnitOfWorkFactory
from tradedesk.domain.entities.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from tradedesk.domain.exceptions import ValidationError

from .position_ledger import PositionLedger

logger = logging.getLogger(__name__)

DEFAULT_MIN_WITHDRAWAL = Decimal("10")


class WalletService:
    """Moves funds in and out of a portfolio outside the trade state machine.

    Every method records a transaction row and applies the matching ledger
    operation in the same unit of work.
    """

    def __init__(
        self,
        unit_of_work_factory: IUnitOfWorkFactory,
        ledger: PositionLedger | None = None,
        min_withdrawal: Decimal = DEFAULT_MIN_WITHDRAWAL,
    ) -> None:
        self.unit_of_work_factory = unit_of_work_factory
        self.ledger = ledger or PositionLedger(unit_of_work_factory)
        self.min_withdrawal = min_withdrawal

    async def deposit(
        self, user_id: UUID, portfolio_id: UUID, amount: Decimal, is_demo: bool
    ) -> Transaction:
        """
        Deposit simulated funds into the demo balance.

        Real deposits arrive through the payment provider and are applied by
        ``settle_deposit``.

        Raises:
            ValidationError: If the amount is not positive or the deposit is real
            PortfolioNotFoundError: If the portfolio does not exist
        """
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive", field="amount", value=amount)
        if not is_demo:
            raise ValidationError("Real deposits go through the payment provider", field="is_demo")

        transaction = Transaction(
            user_id=user_id,
            portfolio_id=portfolio_id,
            type=TransactionType.DEPOSIT,
            amount=amount,
            is_demo=True,
            status=TransactionStatus.PROCESSING,
        )

        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            transaction = await uow.transactions.save_transaction(transaction)
            await self.ledger.credit(portfolio_id, True, amount, uow=uow)
            transaction.mark_succeeded()
            await uow.transactions.transition_status(transaction, TransactionStatus.PROCESSING)

        logger.info(f"Demo deposit {transaction.reference_id} of {amount} to portfolio {portfolio_id}")
        return transaction

    async def withdraw(
        self, user_id: UUID, portfolio_id: UUID, amount: Decimal, is_demo: bool
    ) -> Transaction:
        """
        Withdraw funds from the balance selected by ``is_demo``.

        Raises:
            ValidationError: If the amount is below the minimum withdrawal
            InsufficientBalanceError: If the amount exceeds the targeted balance
            PortfolioNotFoundError: If the portfolio does not exist
        """
        if amount < self.min_withdrawal:
            raise ValidationError(
                f"Minimum withdrawal is ${self.min_withdrawal}", field="amount", value=amount
            )

        transaction = Transaction(
            user_id=user_id,
            portfolio_id=portfolio_id,
            type=TransactionType.WITHDRAWAL,
            amount=amount,
            is_demo=is_demo,
            status=TransactionStatus.PROCESSING,
        )

        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            await self.ledger.debit(portfolio_id, is_demo, amount, uow=uow)
            transaction.mark_succeeded()
            transaction = await uow.transactions.save_transaction(transaction)

        logger.info(
            f"Withdrawal {transaction.reference_id} of {amount} from "
            f"{'demo' if is_demo else 'real'} balance of portfolio {portfolio_id}"
        )
        return transaction

    async def record_pending_deposit(
        self, user_id: UUID, portfolio_id: UUID, amount: Decimal
    ) -> Transaction:
        """Record a real deposit awaiting payment confirmation."""
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive", field="amount", value=amount)

        transaction = Transaction(
            user_id=user_id,
            portfolio_id=portfolio_id,
            type=TransactionType.DEPOSIT,
            amount=amount,
            is_demo=False,
            status=TransactionStatus.PENDING,
        )
        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            return await uow.transactions.save_transaction(transaction)

    async def settle_deposit(self, reference_id: str, succeeded: bool) -> Transaction:
        """
        Apply a verified payment notification to a pending real deposit.

        A successful payment credits the user's default portfolio real balance.
        The status transition is guarded, so a repeated notification credits
        nothing.

        Args:
            reference_id: Reference the payment provider echoes back
            succeeded: Whether the payment settled

        Returns:
            The transaction in its final state

        Raises:
            TransactionNotFoundError: If no transaction has the reference
            PortfolioNotFoundError: If the user has no default portfolio
        """
        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            transaction = await uow.transactions.get_by_reference(reference_id)
            if transaction is None:
                raise TransactionNotFoundError(reference_id)

            if transaction.status not in (TransactionStatus.PENDING, TransactionStatus.PROCESSING):
                logger.info(
                    f"Deposit {reference_id} already settled as {transaction.status.value}"
                )
                return transaction

            expected = transaction.status
            if not succeeded:
                transaction.mark_failed()
                await uow.transactions.transition_status(transaction, expected)
                logger.info(f"Deposit {reference_id} failed")
                return transaction

            transaction.mark_succeeded()
            if not await uow.transactions.transition_status(transaction, expected):
                logger.info(f"Deposit {reference_id} settled concurrently")
                return transaction

            portfolio = await uow.portfolios.get_default_portfolio(transaction.user_id)
            if portfolio is None:
                raise PortfolioNotFoundError(transaction.portfolio_id)
            await self.ledger.credit(portfolio.id, False, transaction.amount, uow=uow)

        logger.info(f"Deposit {reference_id} of {transaction.amount} credited to {portfolio.id}")
        return transaction

    async def list_transactions(self, user_id: UUID, limit: int = 20) -> list[Transaction]:
        """Get a user's most recent transactions, newest first."""
        async with self.unit_of_work_factory.create_unit_of_work() as uow:
            return await uow.transactions.get_transactions_by_user(user_id, limit)
