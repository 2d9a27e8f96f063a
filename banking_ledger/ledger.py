"""
Ledger Engine

Account creation, balance queries, deposits, withdrawals and transfers.
Every mutation and its transaction-log entries run as one atomic unit, and
no balance is ever observed below zero.

Debits use a conditional update (``... AND balance >= ?``) so the funds
check and the debit are a single statement; there is no window between
reading a balance and writing it back.
"""

from decimal import Decimal
from datetime import date, datetime, timedelta, timezone
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Union
from contextlib import contextmanager
import logging

from .accounts import Account, AccountType
from .errors import AccountNotFoundError, InsufficientFundsError, PersistenceError
from .logging_config import log_action
from .money import Amount, ZERO, require_non_negative, require_positive, to_money
from .storage import Database
from .transactions import TransactionLog, TransactionRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountSummary:
    """Totals across all accounts"""
    total_accounts: int
    total_balance: Decimal


@dataclass(frozen=True)
class DailyActivity:
    """Credits and debits recorded on one UTC day"""
    day: date
    total_deposits: Decimal
    total_withdrawals: Decimal  # Sum of negative amounts, so <= 0

    @property
    def net_change(self) -> Decimal:
        return self.total_deposits + self.total_withdrawals


@dataclass(frozen=True)
class AccountActivity:
    """Most active and richest accounts; ids are None on an empty ledger"""
    most_active_account: Optional[str]
    transaction_count: int
    highest_balance_account: Optional[str]
    highest_balance: Decimal


class LedgerEngine:
    """
    Account/ledger consistency engine

    The database handle is passed in; the engine never creates or caches
    connections of its own.

    Example:
        database = create_database(get_config())
        ledger = LedgerEngine(database)
        ledger.create_account(AccountType.SAVINGS, "SAV001", Decimal("1000.00"))
        ledger.withdraw("SAV001", Decimal("200.00"))
        ledger.get_balance("SAV001")  # Decimal("800.00")
    """

    def __init__(self, database: Database, transaction_log: Optional[TransactionLog] = None):
        self.database = database
        self.transaction_log = transaction_log or TransactionLog(database)

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Any]:
        """Atomic unit on a fresh connection; store errors become PersistenceError"""
        try:
            with self.database.connection() as conn, self.database.atomic(conn):
                yield conn
        except self.database.errors as e:
            logger.error("Failed to %s: %s", operation, e)
            raise PersistenceError(operation, e) from e

    @contextmanager
    def _read(self, operation: str) -> Iterator[Any]:
        """Plain connection for single consistent reads"""
        try:
            with self.database.connection() as conn:
                yield conn
        except self.database.errors as e:
            logger.error("Failed to %s: %s", operation, e)
            raise PersistenceError(operation, e) from e

    def _fetch_balance(self, conn: Any, account_id: str) -> Optional[Decimal]:
        """Balance on ``conn``, or None if the account does not exist"""
        row = self.database.execute(
            conn, "SELECT balance FROM accounts WHERE account_id = ?", (account_id,)
        ).fetchone()
        if row is None:
            return None
        return to_money(row["balance"])

    def _credit(self, conn: Any, account_id: str, amount: Decimal) -> None:
        cursor = self.database.execute(
            conn,
            "UPDATE accounts SET balance = ROUND(balance + ?, 2) WHERE account_id = ?",
            (amount, account_id),
        )
        if cursor.rowcount == 0:
            raise AccountNotFoundError(account_id)
        self.transaction_log.append(conn, account_id, amount)

    def _debit(self, conn: Any, account_id: str, amount: Decimal) -> None:
        cursor = self.database.execute(
            conn,
            "UPDATE accounts SET balance = ROUND(balance - ?, 2) "
            "WHERE account_id = ? AND ROUND(balance, 2) >= ROUND(?, 2)",
            (amount, account_id, amount),
        )
        if cursor.rowcount == 0:
            current = self._fetch_balance(conn, account_id)
            if current is None:
                raise AccountNotFoundError(account_id)
            raise InsufficientFundsError(account_id, current, amount)
        self.transaction_log.append(conn, account_id, -amount)

    def create_account(
        self,
        account_type: Union[AccountType, str],
        account_id: str,
        initial_balance: Amount = ZERO
    ) -> Account:
        """
        Open an account and record its opening balance as a credit

        Args:
            account_type: SAVINGS or CHECKING (enum or name)
            account_id: Unique account identifier
            initial_balance: Opening balance, zero or positive

        Returns:
            The new account

        Raises:
            ValidationError: unknown type or negative/non-numeric balance
            PersistenceError: duplicate id or store failure
        """
        account_type = AccountType.parse(account_type)
        balance = require_non_negative(initial_balance, "initial_balance", "Initial balance")

        with self._unit_of_work(f"create account {account_id}") as conn:
            self.database.execute(
                conn,
                "INSERT INTO accounts (account_id, account_type, balance) VALUES (?, ?, ?)",
                (account_id, account_type.value, balance),
            )
            self.transaction_log.append(conn, account_id, balance)

        log_action(logger, "info", "Account created", action="create_account",
                   resource=account_id,
                   extra={"account_type": account_type.value, "initial_balance": str(balance)})
        return Account(account_id=account_id, account_type=account_type, balance=balance)

    def deposit(self, account_id: str, amount: Amount) -> None:
        """
        Credit an account

        Raises:
            ValidationError: amount is not positive
            AccountNotFoundError: no such account
            PersistenceError: store failure
        """
        amount = require_positive(amount, label="Deposit amount")

        with self._unit_of_work(f"deposit to {account_id}") as conn:
            self._credit(conn, account_id, amount)

        log_action(logger, "info", "Deposit applied", action="deposit",
                   resource=account_id, extra={"amount": str(amount)})

    def withdraw(self, account_id: str, amount: Amount) -> None:
        """
        Debit an account if it holds at least ``amount``

        Raises:
            ValidationError: amount is not positive
            AccountNotFoundError: no such account
            InsufficientFundsError: balance below amount; nothing is changed
            PersistenceError: store failure
        """
        amount = require_positive(amount, label="Withdrawal amount")

        with self._unit_of_work(f"withdraw from {account_id}") as conn:
            self._debit(conn, account_id, amount)

        log_action(logger, "info", "Withdrawal applied", action="withdraw",
                   resource=account_id, extra={"amount": str(amount)})

    def transfer(self, from_account_id: str, to_account_id: str, amount: Amount) -> None:
        """
        Move funds between two accounts as one atomic unit

        Either both balances change and two records are appended, or
        nothing changes at all.

        Raises:
            ValidationError: amount is not positive (checked before any I/O)
            AccountNotFoundError: either account is missing
            InsufficientFundsError: source balance below amount
            PersistenceError: store failure
        """
        amount = require_positive(amount, label="Transfer amount")

        with self._unit_of_work(f"transfer from {from_account_id} to {to_account_id}") as conn:
            self._debit(conn, from_account_id, amount)
            self._credit(conn, to_account_id, amount)

        log_action(logger, "info", "Transfer applied", action="transfer",
                   resource=from_account_id,
                   extra={"to_account_id": to_account_id, "amount": str(amount)})

    def get_balance(self, account_id: str) -> Decimal:
        """Current persisted balance; a NULL balance reads as zero"""
        with self._read(f"get balance of {account_id}") as conn:
            balance = self._fetch_balance(conn, account_id)
        if balance is None:
            raise AccountNotFoundError(account_id)
        return balance

    def get_account(self, account_id: str) -> Account:
        """Load one account"""
        with self._read(f"load account {account_id}") as conn:
            row = self.database.execute(
                conn,
                "SELECT account_id, account_type, balance FROM accounts WHERE account_id = ?",
                (account_id,),
            ).fetchone()
        if row is None:
            raise AccountNotFoundError(account_id)
        return self._row_to_account(row)

    def list_accounts(self) -> List[Account]:
        """All accounts ordered by id"""
        with self._read("list accounts") as conn:
            rows = self.database.execute(
                conn,
                "SELECT account_id, account_type, balance FROM accounts ORDER BY account_id",
            ).fetchall()
        return [self._row_to_account(row) for row in rows]

    def get_transaction_history(self, account_id: str) -> List[TransactionRecord]:
        """Records of one account, newest first; empty if the store fails"""
        return self.transaction_log.history(account_id)

    def get_all_transactions(self) -> List[TransactionRecord]:
        """Records of all accounts, newest first; empty if the store fails"""
        return self.transaction_log.history()

    def delete_account(self, account_id: str) -> None:
        """
        Delete an account and its transaction records

        Raises:
            AccountNotFoundError: no such account; the unit is rolled back
            PersistenceError: store failure
        """
        with self._unit_of_work(f"delete account {account_id}") as conn:
            removed = self.transaction_log.delete_for_account(conn, account_id)
            cursor = self.database.execute(
                conn, "DELETE FROM accounts WHERE account_id = ?", (account_id,)
            )
            if cursor.rowcount == 0:
                raise AccountNotFoundError(account_id)

        log_action(logger, "info", "Account deleted", action="delete_account",
                   resource=account_id, extra={"transactions_removed": removed})

    def clear_transactions(self) -> int:
        """Delete the whole transaction log; balances are left as they are"""
        return self.transaction_log.clear()

    def get_account_summary(self) -> AccountSummary:
        """Number of accounts and the sum of their balances"""
        with self._read("create summary") as conn:
            row = self.database.execute(
                conn, "SELECT COUNT(*) AS total, SUM(balance) AS balance FROM accounts"
            ).fetchone()
        return AccountSummary(
            total_accounts=int(row["total"]),
            total_balance=to_money(row["balance"]),
        )

    def get_daily_activity(self, day: Optional[date] = None) -> DailyActivity:
        """
        Sums of positive and negative amounts recorded on ``day``

        Args:
            day: UTC calendar day, defaults to today
        """
        if day is None:
            day = datetime.now(timezone.utc).date()
        start = day.isoformat()
        end = (day + timedelta(days=1)).isoformat()

        with self._read("create daily report") as conn:
            row = self.database.execute(
                conn,
                """
                SELECT
                    SUM(CASE WHEN amount > 0 THEN amount ELSE 0 END) AS deposits,
                    SUM(CASE WHEN amount < 0 THEN amount ELSE 0 END) AS withdrawals
                FROM transactions
                WHERE transaction_date >= ? AND transaction_date < ?
                """,
                (start, end),
            ).fetchone()
        return DailyActivity(
            day=day,
            total_deposits=to_money(row["deposits"]),
            total_withdrawals=to_money(row["withdrawals"]),
        )

    def get_account_activity(self) -> AccountActivity:
        """Account with the most transactions and account with the highest balance"""
        with self._read("create activity report") as conn:
            active = self.database.execute(
                conn,
                """
                SELECT account_id, COUNT(*) AS tx_count
                FROM transactions
                GROUP BY account_id
                ORDER BY tx_count DESC, account_id
                LIMIT 1
                """,
            ).fetchone()
            richest = self.database.execute(
                conn,
                "SELECT account_id, balance FROM accounts ORDER BY balance DESC, account_id LIMIT 1",
            ).fetchone()

        return AccountActivity(
            most_active_account=active["account_id"] if active else None,
            transaction_count=int(active["tx_count"]) if active else 0,
            highest_balance_account=richest["account_id"] if richest else None,
            highest_balance=to_money(richest["balance"]) if richest else ZERO,
        )

    @staticmethod
    def _row_to_account(row: Any) -> Account:
        return Account(
            account_id=row["account_id"],
            account_type=AccountType.parse(row["account_type"]),
            balance=to_money(row["balance"]),
        )
