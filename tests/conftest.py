"""
Shared fixtures: a fresh SQLite ledger per test
"""

import pytest

from banking_ledger.ledger import LedgerEngine
from banking_ledger.storage import SQLiteDatabase


@pytest.fixture
def database(tmp_path):
    db = SQLiteDatabase(tmp_path / "ledger.db")
    db.initialize_schema()
    return db


@pytest.fixture
def ledger(database):
    return LedgerEngine(database)
