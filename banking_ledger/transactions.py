"""
Transaction Log Module

Append-only log of signed amounts against accounts. Records are written
inside the caller's atomic unit so that a balance change and its log entry
commit together. Reads are best-effort: history is reporting, not a
correctness path, so a store failure there yields an empty list.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, List, Optional
import logging

from .errors import PersistenceError
from .money import to_money
from .storage import Database


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionRecord:
    """A single ledger entry; positive amounts are credits, negative are debits"""
    transaction_id: int
    account_id: str
    amount: Decimal
    timestamp: datetime

    @property
    def is_credit(self) -> bool:
        return self.amount > 0

    @property
    def is_debit(self) -> bool:
        return self.amount < 0


def to_timestamp(value: Any) -> datetime:
    """Normalize a driver timestamp (ISO text or naive datetime) to aware UTC"""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class TransactionLog:
    """Reads and writes the transactions table"""

    _SELECT = """
        SELECT transaction_id, account_id, amount, transaction_date
        FROM transactions
    """
    _ORDER = " ORDER BY transaction_date DESC, transaction_id DESC"

    def __init__(self, database: Database):
        self.database = database

    def append(self, conn: Any, account_id: str, amount: Decimal) -> None:
        """Append one record on ``conn``; store errors propagate to the unit"""
        self.database.execute(
            conn,
            "INSERT INTO transactions (account_id, amount) VALUES (?, ?)",
            (account_id, amount),
        )

    def delete_for_account(self, conn: Any, account_id: str) -> int:
        """Delete every record of one account on ``conn``"""
        cursor = self.database.execute(
            conn, "DELETE FROM transactions WHERE account_id = ?", (account_id,)
        )
        return cursor.rowcount

    def history(self, account_id: Optional[str] = None) -> List[TransactionRecord]:
        """
        Records newest first, for one account or for all of them.

        Returns an empty list when the store cannot be read.
        """
        if account_id is None:
            sql, params = self._SELECT + self._ORDER, ()
        else:
            sql, params = self._SELECT + " WHERE account_id = ?" + self._ORDER, (account_id,)

        try:
            with self.database.connection() as conn:
                rows = self.database.execute(conn, sql, params).fetchall()
        except self.database.errors as e:
            logger.error("Failed to read transaction history: %s", e)
            return []

        return [self._row_to_record(row) for row in rows]

    def count(self, account_id: Optional[str] = None) -> int:
        """Number of records, for one account or overall"""
        sql = "SELECT COUNT(*) AS total FROM transactions"
        params: tuple = ()
        if account_id is not None:
            sql += " WHERE account_id = ?"
            params = (account_id,)
        try:
            with self.database.connection() as conn:
                row = self.database.execute(conn, sql, params).fetchone()
        except self.database.errors as e:
            raise PersistenceError("count transactions", e) from e
        return int(row["total"])

    def clear(self) -> int:
        """Administrative bulk delete of the whole log"""
        try:
            with self.database.connection() as conn, self.database.atomic(conn):
                cursor = self.database.execute(conn, "DELETE FROM transactions")
                deleted = cursor.rowcount
        except self.database.errors as e:
            raise PersistenceError("clear transactions", e) from e
        logger.warning("Cleared %d transaction records", deleted)
        return deleted

    @staticmethod
    def _row_to_record(row: Any) -> TransactionRecord:
        return TransactionRecord(
            transaction_id=int(row["transaction_id"]),
            account_id=row["account_id"],
            amount=to_money(row["amount"]),
            timestamp=to_timestamp(row["transaction_date"]),
        )
