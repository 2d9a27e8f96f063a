"""
Reporting Module

Presentation layer over the ledger's aggregate queries. Turns structured
results into the text blocks and history lines shown to users.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from .ledger import LedgerEngine
from .money import format_amount
from .transactions import TransactionRecord


SEPARATOR = "-" * 25
NOT_AVAILABLE = "N/A"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way history lines and report headers show it"""
    return value.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def format_transaction(record: TransactionRecord) -> str:
    """``timestamp,accountId,amount`` with two-decimal amounts"""
    return f"{format_timestamp(record.timestamp)},{record.account_id},{format_amount(record.amount)}"


def format_history(records: Iterable[TransactionRecord]) -> List[str]:
    return [format_transaction(record) for record in records]


class ReportGenerator:
    """
    Builds the summary, daily and top-accounts reports

    Args:
        ledger: Engine providing the aggregate queries
        clock: Returns "now"; injectable for deterministic output
    """

    def __init__(self, ledger: LedgerEngine, clock: Optional[Callable[[], datetime]] = None):
        self.ledger = ledger
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def account_summary_report(self) -> str:
        summary = self.ledger.get_account_summary()
        return (
            "ACCOUNT SUMMARY REPORT\n"
            f"Generated: {format_timestamp(self.clock())}\n"
            f"{SEPARATOR}\n"
            f"Total Accounts: {summary.total_accounts}\n"
            f"Total Balance: ${format_amount(summary.total_balance)}\n"
        )

    def daily_transaction_report(self) -> str:
        activity = self.ledger.get_daily_activity(self.clock().date())
        return (
            "TODAY'S TRANSACTIONS\n"
            f"Date: {activity.day.isoformat()}\n"
            f"{SEPARATOR}\n"
            f"Money Deposited: ${format_amount(activity.total_deposits)}\n"
            f"Money Withdrawn: ${format_amount(activity.total_withdrawals)}\n"
            f"Total Change: ${format_amount(activity.net_change)}\n"
        )

    def account_activity_report(self) -> str:
        activity = self.ledger.get_account_activity()
        return (
            "TOP ACCOUNTS REPORT\n"
            f"Generated: {format_timestamp(self.clock())}\n"
            f"{SEPARATOR}\n"
            f"Most Active Account: {activity.most_active_account or NOT_AVAILABLE}\n"
            f"→ Number of Transactions: {activity.transaction_count}\n"
            "\n"
            f"Highest Balance Account: {activity.highest_balance_account or NOT_AVAILABLE}\n"
            f"→ Current Balance: ${format_amount(activity.highest_balance)}\n"
        )
