"""
Ledger Error Taxonomy

Every failure the ledger reports belongs to one of a closed set of kinds.
Each exception carries the structured context a caller needs to react to it
without parsing the message.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Kinds of ledger failures"""
    VALIDATION = "validation"
    ACCOUNT_NOT_FOUND = "account_not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    PERSISTENCE = "persistence"


class BankingError(Exception):
    """Base class for all ledger errors"""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BankingError, ValueError):
    """Raised when an operation argument is rejected before touching the store"""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class AccountNotFoundError(BankingError, LookupError):
    """Raised when an account id has no matching row"""

    kind = ErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, account_id: str):
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class InsufficientFundsError(BankingError):
    """Raised when a debit would take a balance below zero"""

    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, account_id: str, current_balance: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient funds in {account_id}: "
            f"balance {current_balance:.2f}, requested {requested:.2f}"
        )
        self.account_id = account_id
        self.current_balance = current_balance
        self.requested = requested


class PersistenceError(BankingError):
    """Raised when the underlying store fails; the driver error is the cause"""

    kind = ErrorKind.PERSISTENCE

    def __init__(self, operation: str, cause: BaseException):
        super().__init__(f"Failed to {operation}: {cause}")
        self.operation = operation
        self.cause = cause
