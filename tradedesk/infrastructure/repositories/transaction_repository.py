"""PostgreSQL Transaction Repository - wallet deposit and withdrawal records."""

# Standard library imports
import logging
from uuid import UUID

# Local imports
from tradedesk.application.interfaces.exceptions import RepositoryError
from tradedesk.application.interfaces.repositories import ITransactionRepository
from tradedesk.domain.entities.transaction import Transaction, TransactionStatus
from tradedesk.infrastructure.database.adapter import PostgreSQLAdapter, Row

logger = logging.getLogger(__name__)

TRANSACTION_COLUMNS = """
    id, user_id, portfolio_id, type, amount, method, status, is_demo,
    reference_id, created_at, completed_at
"""


class PostgreSQLTransactionRepository(ITransactionRepository):
    """PostgreSQL implementation of ITransactionRepository."""

    def __init__(self, adapter: PostgreSQLAdapter) -> None:
        self.adapter = adapter

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert a new transaction.

        Raises:
            RepositoryError: If save operation fails
        """
        insert_query = f"""
        INSERT INTO transactions ({TRANSACTION_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        try:
            await self.adapter.execute_query(
                insert_query,
                transaction.id,
                transaction.user_id,
                transaction.portfolio_id,
                transaction.type.value,
                transaction.amount,
                transaction.method,
                transaction.status.value,
                transaction.is_demo,
                transaction.reference_id,
                transaction.created_at,
                transaction.completed_at,
            )
        except Exception as e:
            logger.error(f"Failed to save transaction {transaction.reference_id}: {e}")
            raise RepositoryError(f"Failed to save transaction: {e}") from e
        return transaction

    async def get_by_reference(self, reference_id: str) -> Transaction | None:
        try:
            record = await self.adapter.fetch_one(
                f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE reference_id = %s",
                reference_id,
            )
        except Exception as e:
            logger.error(f"Failed to get transaction {reference_id}: {e}")
            raise RepositoryError(f"Failed to retrieve transaction: {e}") from e

        if record is None:
            return None
        return self._map_record_to_transaction(record)

    async def get_transactions_by_user(self, user_id: UUID, limit: int = 20) -> list[Transaction]:
        query = f"""
        SELECT {TRANSACTION_COLUMNS} FROM transactions
        WHERE user_id = %s
        ORDER BY created_at DESC
        LIMIT %s
        """
        try:
            records = await self.adapter.fetch_all(query, user_id, limit)
        except Exception as e:
            logger.error(f"Failed to list transactions of user {user_id}: {e}")
            raise RepositoryError(f"Failed to retrieve transactions: {e}") from e
        return [self._map_record_to_transaction(record) for record in records]

    async def transition_status(
        self, transaction: Transaction, expected: TransactionStatus
    ) -> bool:
        update_query = """
        UPDATE transactions
        SET status = %s, completed_at = %s
        WHERE id = %s AND status = %s
        """
        try:
            result = await self.adapter.execute_query(
                update_query,
                transaction.status.value,
                transaction.completed_at,
                transaction.id,
                expected.value,
            )
        except Exception as e:
            logger.error(f"Failed to update transaction {transaction.reference_id}: {e}")
            raise RepositoryError(f"Failed to update transaction: {e}") from e
        return result != "EXECUTE 0"

    def _map_record_to_transaction(self, record: Row) -> Transaction:
        return Transaction(
            id=record["id"],
            user_id=record["user_id"],
            portfolio_id=record["portfolio_id"],
            type=record["type"],
            amount=record["amount"],
            method=record["method"],
            status=record["status"],
            is_demo=record["is_demo"],
            reference_id=record["reference_id"],
            created_at=record["created_at"],
            completed_at=record["completed_at"],
        )
