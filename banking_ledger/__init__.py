"""
Banking Ledger

A small bank-account ledger with atomic balance mutations, an append-only
transaction log and aggregate reports. All money uses Decimal.
"""

__version__ = "1.0.0"
