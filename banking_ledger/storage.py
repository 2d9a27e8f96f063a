"""
Storage Backend Module

Persistence gateway for the ledger. Provides scoped connections, an atomic
unit-of-work primitive and schema bootstrapping for SQLite (development and
tests) and PostgreSQL (production). Monetary columns are DECIMAL(15, 2).

Each call acquires a fresh connection from the driver and releases it on
exit. There is no pooling, retry or backoff.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, Optional, Sequence, Tuple, Union
from decimal import Decimal
from pathlib import Path
from contextlib import contextmanager
import logging
import sqlite3

from .config import LedgerConfig


logger = logging.getLogger(__name__)


SQLITE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id TEXT PRIMARY KEY,
    account_type TEXT NOT NULL,
    balance DECIMAL(15, 2) NOT NULL DEFAULT 0 CHECK (balance >= 0 AND balance <= 9999999999999.99)
);

CREATE TABLE IF NOT EXISTS transactions (
    transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id TEXT NOT NULL REFERENCES accounts(account_id),
    amount DECIMAL(15, 2) NOT NULL,
    transaction_date TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_transactions_account_id ON transactions(account_id);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(transaction_date);
"""

POSTGRESQL_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id VARCHAR(64) PRIMARY KEY,
    account_type VARCHAR(32) NOT NULL,
    balance NUMERIC(15, 2) NOT NULL DEFAULT 0 CHECK (balance >= 0)
);

CREATE TABLE IF NOT EXISTS transactions (
    transaction_id BIGSERIAL PRIMARY KEY,
    account_id VARCHAR(64) NOT NULL REFERENCES accounts(account_id),
    amount NUMERIC(15, 2) NOT NULL,
    transaction_date TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'utc')
);

CREATE INDEX IF NOT EXISTS idx_transactions_account_id ON transactions(account_id);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(transaction_date);
"""


def split_statements(script: str) -> Iterator[str]:
    """Split a SQL script on ';', skipping empty and whitespace-only entries"""
    for statement in script.split(";"):
        if statement.strip():
            yield statement.strip()


class Database(ABC):
    """
    Abstract persistence gateway

    Statements are written with '?' placeholders; backends translate them to
    their driver's paramstyle. Rows support access by column name.
    """

    schema_sql: str = ""

    @property
    @abstractmethod
    def errors(self) -> Tuple[type, ...]:
        """Driver exception types that signal a store failure"""
        pass

    @abstractmethod
    def _connect(self) -> Any:
        """Open a new driver connection in autocommit mode"""
        pass

    @abstractmethod
    def _set_autocommit(self, conn: Any, enabled: bool) -> None:
        """Switch a connection in or out of autocommit"""
        pass

    @abstractmethod
    def execute(self, conn: Any, sql: str, params: Sequence[Any] = ()) -> Any:
        """Execute one statement and return the cursor"""
        pass

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Acquire a connection, guaranteeing it is closed on exit"""
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def atomic(self, conn: Any) -> Iterator[Any]:
        """
        Group statements on ``conn`` so they all commit or all roll back.

        Autocommit is restored afterwards regardless of the outcome.
        """
        self._set_autocommit(conn, False)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._set_autocommit(conn, True)

    def execute_script(self, statements: Union[str, Iterable[str]]) -> int:
        """
        Execute statements in order on one connection.

        Accepts a ';'-separated script or an iterable of statements. Empty and
        whitespace-only entries are skipped.

        Returns:
            Number of statements executed
        """
        if isinstance(statements, str):
            statements = split_statements(statements)

        executed = 0
        with self.connection() as conn:
            for statement in statements:
                if not statement.strip():
                    continue
                self.execute(conn, statement)
                executed += 1
        return executed

    def initialize_schema(self) -> None:
        """Create the accounts and transactions tables if absent"""
        count = self.execute_script(self.schema_sql)
        logger.info("Database schema initialized (%d statements)", count)


class SQLiteDatabase(Database):
    """SQLite gateway; one file, one fresh connection per call"""

    schema_sql = SQLITE_SCHEMA_SQL

    def __init__(self, db_path: Union[str, Path] = "ledger.db", busy_timeout_ms: int = 5000):
        db_path = str(db_path)
        if db_path == ":memory:":
            raise ValueError("In-memory SQLite does not survive per-call connections; use a file path")

        # Ensure directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms

    @property
    def errors(self) -> Tuple[type, ...]:
        return (sqlite3.Error,)

    def _connect(self) -> sqlite3.Connection:
        # isolation_level=None: autocommit outside explicit transactions
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.busy_timeout_ms / 1000,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _set_autocommit(self, conn: sqlite3.Connection, enabled: bool) -> None:
        if not enabled:
            # Take the write lock up front so check-and-act runs serialized
            conn.execute("BEGIN IMMEDIATE")
        # SQLite drops back to autocommit once COMMIT or ROLLBACK runs

    def execute(self, conn: sqlite3.Connection, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        # sqlite3 has no Decimal binding; NUMERIC affinity converts the text
        params = tuple(str(p) if isinstance(p, Decimal) else p for p in params)
        return conn.execute(sql, params)

    def __repr__(self) -> str:
        return f"SQLiteDatabase(db_path={self.db_path!r})"


class PostgreSQLDatabase(Database):
    """PostgreSQL gateway with ACID transaction support"""

    schema_sql = POSTGRESQL_SCHEMA_SQL

    def __init__(self, connection_string: str, username: Optional[str] = None,
                 password: Optional[str] = None):
        try:
            import psycopg2
            import psycopg2.extras
            self.psycopg2 = psycopg2
            self.extras = psycopg2.extras
        except ImportError:
            raise ImportError("psycopg2 is required for PostgreSQL storage. Install with: pip install psycopg2-binary")

        self.connection_string = connection_string
        self.username = username
        self.password = password

    @property
    def errors(self) -> Tuple[type, ...]:
        return (self.psycopg2.Error,)

    def _connect(self) -> Any:
        credentials = {}
        if self.username:
            credentials["user"] = self.username
        if self.password:
            credentials["password"] = self.password

        conn = self.psycopg2.connect(
            self.connection_string,
            cursor_factory=self.extras.RealDictCursor,
            **credentials
        )
        conn.autocommit = True
        return conn

    def _set_autocommit(self, conn: Any, enabled: bool) -> None:
        conn.autocommit = enabled

    def execute(self, conn: Any, sql: str, params: Sequence[Any] = ()) -> Any:
        cursor = conn.cursor()
        if params:
            cursor.execute(sql.replace("?", "%s"), tuple(params))
        else:
            cursor.execute(sql)
        return cursor

    def __repr__(self) -> str:
        return f"PostgreSQLDatabase(user={self.username!r})"


def create_database(config: LedgerConfig, initialize: bool = True) -> Database:
    """
    Build the gateway named by ``config.database_url``.

    Supported URLs: ``sqlite:///relative.db``, ``sqlite:////absolute.db``
    and ``postgresql://host/dbname``.

    Args:
        config: Ledger configuration
        initialize: Create the schema before returning

    Raises:
        ValueError: unsupported URL scheme
    """
    url = config.database_url

    if url.startswith("sqlite:///"):
        database: Database = SQLiteDatabase(
            url[len("sqlite:///"):],
            busy_timeout_ms=config.database_busy_timeout_ms,
        )
    elif url.startswith(("postgresql://", "postgres://")):
        database = PostgreSQLDatabase(
            url,
            username=config.database_username,
            password=config.database_password,
        )
    else:
        raise ValueError(f"Unsupported database URL: {url}")

    logger.info("Using %r", database)
    if initialize:
        database.initialize_schema()
    return database
