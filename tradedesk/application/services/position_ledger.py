"""Position Ledger - Atomic debit, credit and read of portfolio balances."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from uuid import UUID

from tradedesk.application.interfaces.exceptions import PortfolioNotFoundError
from tradedesk.application.interfaces.unit_of_work import IUnitOfWork, IUnitOfWorkFactory
from tradedesk.domain.constants import ZERO
from tradedesk.domain.entities.portfolio import Portfolio

logger = logging.getLogger(__name__)


class PositionLedger:
    """Application service owning every balance mutation.

    Each operation either joins the caller's unit of work (so a debit and the
    trade insert it pays for commit together) or opens its own. The actual
    compare-and-set lives in the portfolio repository; this service only
    validates arguments and logs.
    """

    def __init__(self, unit_of_work_factory: IUnitOfWorkFactory) -> None:
        self.unit_of_work_factory = unit_of_work_factory

    @asynccontextmanager
    async def _within(self, uow: IUnitOfWork | None) -> AsyncIterator[IUnitOfWork]:
        if uow is not None:
            yield uow
            return
        async with self.unit_of_work_factory.create_unit_of_work() as own_uow:
            yield own_uow

    async def debit(
        self,
        portfolio_id: UUID,
        is_demo: bool,
        amount: Decimal,
        uow: IUnitOfWork | None = None,
    ) -> Portfolio:
        """
        Remove funds from the balance field selected by ``is_demo``.

        Args:
            portfolio_id: Portfolio to debit
            is_demo: Debit demo_balance when True, balance otherwise
            amount: Positive amount to remove
            uow: Unit of work to join, if the debit is part of a larger change

        Returns:
            Portfolio snapshot after the debit

        Raises:
            ValueError: If amount is not positive
            InsufficientBalanceError: If amount exceeds the targeted field
            PortfolioNotFoundError: If the portfolio does not exist
        """
        if amount <= 0:
            raise ValueError(f"Debit amount must be positive, got {amount}")

        async with self._within(uow) as active:
            portfolio = await active.portfolios.debit_balance(portfolio_id, is_demo, amount)

        logger.info(
            f"Debited {amount} from {'demo' if is_demo else 'real'} balance of portfolio "
            f"{portfolio_id}, remaining {portfolio.balance_for(is_demo)}"
        )
        return portfolio

    async def credit(
        self,
        portfolio_id: UUID,
        is_demo: bool,
        amount: Decimal,
        realized_pnl_delta: Decimal = ZERO,
        uow: IUnitOfWork | None = None,
    ) -> Portfolio:
        """
        Return funds to the balance field selected by ``is_demo``.

        Credits have no value check. The stored balance is floored at zero
        when a leveraged loss exceeds the principal, while
        ``total_realized_pnl`` still takes the full loss, so the two diverge
        by the part the floor absorbed.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        async with self._within(uow) as active:
            portfolio = await active.portfolios.credit_balance(
                portfolio_id, is_demo, amount, realized_pnl_delta
            )

        if amount < ZERO and portfolio.balance_for(is_demo) == ZERO:
            logger.warning(
                f"Credit of {amount} left portfolio {portfolio_id} at zero; "
                f"realized P&L records the full {realized_pnl_delta}"
            )

        logger.info(
            f"Credited {amount} to {'demo' if is_demo else 'real'} balance of portfolio "
            f"{portfolio_id} (realized P&L {realized_pnl_delta:+})"
        )
        return portfolio

    async def read(self, portfolio_id: UUID, uow: IUnitOfWork | None = None) -> Portfolio:
        """
        Get a snapshot of a portfolio's balances.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        async with self._within(uow) as active:
            portfolio = await active.portfolios.get_portfolio_by_id(portfolio_id)

        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio
