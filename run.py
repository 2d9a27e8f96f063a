#!/usr/bin/env python3
"""
Banking Ledger Demo Entry Point

Builds configuration, logging and the database explicitly, then replays a
short session: opens accounts, moves money, prints histories and reports.
"""

import sys
import traceback
from decimal import Decimal
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from banking_ledger.accounts import AccountType
from banking_ledger.config import get_config
from banking_ledger.ledger import LedgerEngine
from banking_ledger.logging_config import get_logger, setup_logging
from banking_ledger.reporting import ReportGenerator, format_history
from banking_ledger.storage import create_database


def run_demo(ledger: LedgerEngine) -> None:
    reports = ReportGenerator(ledger)

    print("Creating accounts...")
    savings = ledger.create_account(AccountType.SAVINGS, "SAV001", Decimal("5000.00"))
    print(f"Created savings account: {savings}")
    checking = ledger.create_account(AccountType.CHECKING, "CHK001", Decimal("1000.00"))
    print(f"Created checking account: {checking}")
    small_savings = ledger.create_account(AccountType.SAVINGS, "SAV002", Decimal("500.00"))
    print(f"Created small savings account: {small_savings}")

    print("\nPerforming transactions...")
    ledger.deposit("CHK001", Decimal("2000.00"))
    print("Deposited $2000 to checking")
    print(f"Checking balance: ${ledger.get_balance('CHK001')}")

    ledger.withdraw("SAV002", Decimal("100.00"))
    print("Withdrew $100 from small savings")
    print(f"Small savings balance: ${ledger.get_balance('SAV002')}")

    ledger.deposit("SAV001", Decimal("500.00"))
    print("Deposited $500 to savings")
    print(f"Savings balance: ${ledger.get_balance('SAV001')}")

    ledger.transfer("SAV001", "CHK001", Decimal("1000.00"))
    print("Transferred $1000 from savings to checking")
    print(f"Savings balance: ${ledger.get_balance('SAV001')}")
    print(f"Checking balance: ${ledger.get_balance('CHK001')}")

    for account_id in ("SAV001", "CHK001"):
        print(f"\nTransaction History for {account_id}:")
        for line in format_history(ledger.get_transaction_history(account_id)):
            print(line)

    print("\nAll Transactions:")
    for line in format_history(ledger.get_all_transactions()):
        print(line)

    print("\n=== Account Summary ===")
    print(reports.account_summary_report())
    print("\n=== Daily Transactions ===")
    print(reports.daily_transaction_report())
    print("\n=== Account Activity ===")
    print(reports.account_activity_report())


def main() -> int:
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger = get_logger()

    try:
        database = create_database(config)
        run_demo(LedgerEngine(database))
    except Exception as e:
        logger.error("Demo failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        print("Stack trace:", file=sys.stderr)
        traceback.print_exc()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
