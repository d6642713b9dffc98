"""
Connection management and schema initialization.

Provides the foundation for all database operations in Tallybook: one
SQLite handle per process, opened lazily, with statements from independent
callers queued on a single lock so they never interleave.
"""

import asyncio
import logging
import sqlite3
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from tallybook.config import DB_BUSY_TIMEOUT_MS, DB_TIMEOUT, DEFAULT_DB_PATH
from tallybook.errors import InitializationError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS income (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source TEXT NOT NULL,
        amount REAL NOT NULL,
        date TEXT NOT NULL,
        is_recurring INTEGER DEFAULT 0,
        recurring_date TEXT,
        template_id INTEGER,
        last_materialized TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS expenses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        item TEXT NOT NULL,
        amount REAL NOT NULL,
        date TEXT NOT NULL,
        is_recurring INTEGER DEFAULT 0,
        recurring_date TEXT,
        template_id INTEGER,
        last_materialized TEXT,
        purchase_id INTEGER REFERENCES planned_purchases(id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS planned_purchases (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        item TEXT NOT NULL,
        amount REAL NOT NULL,
        purchased INTEGER DEFAULT 0,
        due_date TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS savings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        amount REAL NOT NULL,
        frequency TEXT NOT NULL,
        date TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
)

# Columns added after the first release: (table, column, definition).
# Schema changes are additive only so existing installs upgrade in place.
MIGRATIONS = (
    ("planned_purchases", "due_date", "TEXT"),
    ("income", "template_id", "INTEGER"),
    ("income", "last_materialized", "TEXT"),
    ("expenses", "template_id", "INTEGER"),
    ("expenses", "last_materialized", "TEXT"),
    (
        "expenses",
        "purchase_id",
        "INTEGER REFERENCES planned_purchases(id) ON DELETE SET NULL",
    ),
)

INDEXES = (
    ("idx_income_date", "income", "date DESC"),
    ("idx_income_recurring", "income", "is_recurring, template_id"),
    ("idx_expenses_date", "expenses", "date DESC"),
    ("idx_expenses_recurring", "expenses", "is_recurring, template_id"),
    ("idx_expenses_item", "expenses", "item"),
    ("idx_expenses_purchase_id", "expenses", "purchase_id"),
)

LEDGER_TABLES = ("income", "expenses", "planned_purchases", "savings")


class ConnectionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


class ConnectionManager:
    """
    Owner of the single SQLite handle.

    ``initialize()`` may be called any number of times from any number of
    tasks: the first call opens the file and creates the schema, callers
    arriving while that is in flight await the same future, and later calls
    return immediately. A failed attempt leaves the manager ready to retry.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        busy_timeout_ms: int = DB_BUSY_TIMEOUT_MS,
    ):
        """
        Initialize the connection manager.

        Args:
            db_path: Path to the SQLite database file. Defaults to data/tallybook.db
            busy_timeout_ms: How long a statement waits on a locked database
        """
        self.db_path = Path(db_path or DEFAULT_DB_PATH)
        self.busy_timeout_ms = busy_timeout_ms
        self.state = ConnectionState.UNINITIALIZED
        self.schema_runs = 0
        self._conn: Optional[sqlite3.Connection] = None
        self._pending: Optional[asyncio.Future] = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY

    async def initialize(self) -> bool:
        """
        Open the database and create the schema, exactly once.

        Returns:
            True once the store is ready

        Raises:
            InitializationError: If the store could not be opened or migrated
        """
        if self.state is ConnectionState.READY:
            return True

        if self._pending is not None:
            logger.debug("Initialization in progress, waiting for it to finish")
            return await asyncio.shield(self._pending)

        pending = asyncio.get_running_loop().create_future()
        self._pending = pending
        self.state = ConnectionState.CONNECTING

        try:
            self._conn = await asyncio.to_thread(self._open)
        except asyncio.CancelledError:
            self._reset(ConnectionState.UNINITIALIZED)
            pending.cancel()
            raise
        except InitializationError as e:
            self._reset(ConnectionState.FAILED)
            pending.set_exception(e)
            # Waiters re-raise it; mark retrieved so an unobserved failure stays quiet
            pending.exception()
            raise

        self.state = ConnectionState.READY
        self._pending = None
        pending.set_result(True)
        logger.info(f"Database initialized successfully: {self.db_path}")
        return True

    def _reset(self, state: ConnectionState):
        self._conn = None
        self._pending = None
        self.state = state

    def _open(self) -> sqlite3.Connection:
        """Open the handle, apply pragmas and bring the schema up to date."""
        conn = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self.db_path,
                timeout=DB_TIMEOUT,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
            self._init_schema(conn)
            return conn
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            if conn:
                conn.close()
            raise InitializationError(f"Failed to open {self.db_path}: {e}") from e

    def _init_schema(self, conn: sqlite3.Connection):
        """Create missing tables, add missing columns, create indexes."""
        self.schema_runs += 1
        with self._transaction(conn):
            for statement in SCHEMA:
                conn.execute(statement)

            for table, column, definition in MIGRATIONS:
                if not self._has_column(conn, table, column):
                    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
                    logger.info(f"Added {column} column to {table} table")

            for index_name, table, columns in INDEXES:
                conn.execute(
                    f"CREATE INDEX IF NOT EXISTS {index_name} ON {table}({columns})"
                )

        logger.debug("Ledger schema initialized successfully")

    @staticmethod
    def _has_column(conn: sqlite3.Connection, table: str, column: str) -> bool:
        rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
        return any(row["name"] == column for row in rows)

    @contextmanager
    def _transaction(self, conn: sqlite3.Connection):
        """Run the enclosed statements atomically, rolling back on any error."""
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException as e:
            if isinstance(e, sqlite3.OperationalError):
                logger.error(f"Database locked or operational error: {e}", exc_info=True)
            conn.execute("ROLLBACK")
            logger.debug("Transaction rolled back")
            raise
        else:
            conn.execute("COMMIT")

    async def _connection(self) -> sqlite3.Connection:
        if self.state is not ConnectionState.READY:
            await self.initialize()
        if self._conn is None:
            raise StorageError("Database connection not available")
        return self._conn

    async def run(self, fn: Callable[..., T], *args: Any) -> T:
        """
        Run ``fn(conn, *args)`` on the shared handle in a worker thread.

        Calls are queued on one lock; sqlite3 errors come back as StorageError.
        """
        conn = await self._connection()
        async with self._lock:
            try:
                return await asyncio.to_thread(fn, conn, *args)
            except sqlite3.Error as e:
                logger.error(f"Database error: {e}", exc_info=True)
                raise StorageError(f"Database operation failed: {e}") from e

    async def run_in_transaction(self, fn: Callable[..., T], *args: Any) -> T:
        """Like ``run`` but inside BEGIN IMMEDIATE ... COMMIT."""

        def transact(conn: sqlite3.Connection) -> T:
            with self._transaction(conn):
                return fn(conn, *args)

        return await self.run(transact)

    async def close(self):
        """Close the handle; the next call re-opens it."""
        async with self._lock:
            if self._conn is not None:
                conn = self._conn
                await asyncio.to_thread(conn.close)
                logger.info("Database connection closed")
            self._reset(ConnectionState.UNINITIALIZED)
