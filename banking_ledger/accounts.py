"""
Account Model Module

Account types and the in-memory account value returned by the ledger.
Balances are only ever changed through LedgerEngine operations.
"""

from decimal import Decimal
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import ValidationError
from .money import format_amount


class AccountType(Enum):
    """Banking product types"""
    SAVINGS = "SAVINGS"    # Savings account
    CHECKING = "CHECKING"  # Checking account

    @classmethod
    def parse(cls, value: Union['AccountType', str]) -> 'AccountType':
        """Accept an AccountType or its name, case-insensitively"""
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            allowed = ", ".join(member.name for member in cls)
            raise ValidationError(
                f"Unknown account type {value!r}; expected one of {allowed}",
                field="account_type", value=value
            )


@dataclass(frozen=True)
class Account:
    """
    Snapshot of an account row

    Immutable: a later deposit does not change an Account already handed out.
    Read the balance again through the ledger to observe it.
    """
    account_id: str
    account_type: AccountType
    balance: Decimal

    @property
    def is_savings(self) -> bool:
        return self.account_type == AccountType.SAVINGS

    @property
    def is_checking(self) -> bool:
        return self.account_type == AccountType.CHECKING

    def __str__(self) -> str:
        return f"{self.account_type.name} account {self.account_id} (balance: ${format_amount(self.balance)})"
