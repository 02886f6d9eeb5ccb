"""Central database manager for the statistics store.

Provides connection, query, transaction and schema management with specific
exception handling. Supports a local SQLite file (the default) and a
PostgreSQL server reached through a DSN.

All database access goes through this class so that managers see one
placeholder style (`?`), rows as plain dicts, and only `db.exceptions` errors.
"""

import contextlib
import enum
import logging
import os
import sqlite3
import traceback
from typing import (
    Dict,
    Iterable,
    Iterator,
    List,
    NoReturn,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Type,
    Union,
    cast,
)

import psycopg2

from .exceptions import (
    ConstraintError,
    DatabaseError,
    DatabaseTypeError,
    DBConnectionError,
    ForeignKeyError,
    IntegrityError,
    SchemaError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)


def debug_print(*args: object) -> None:
    """Print debug messages unless KATA_DEBUG_MODE is quiet."""
    debug_mode = os.environ.get("KATA_DEBUG_MODE", "quiet").lower()
    if debug_mode != "quiet":
        print(*args)
    else:
        logger.debug(" ".join(str(arg) for arg in args))


class CursorProtocol(Protocol):
    """Minimal DB-API cursor protocol used by DatabaseManager."""

    def execute(self, query: str, params: Tuple[object, ...] = ...) -> object:
        """Execute a single SQL statement with optional parameters."""
        ...

    def executemany(self, query: str, seq_of_params: Iterable[Tuple[object, ...]]) -> object:
        """Execute a SQL statement against all parameter tuples."""
        ...

    def fetchone(self) -> Optional[Union[sqlite3.Row, Tuple[object, ...]]]:
        """Fetch the next row of a query result."""
        ...

    def fetchall(self) -> List[Union[sqlite3.Row, Tuple[object, ...]]]:
        """Fetch all remaining rows of a query result."""
        ...

    def close(self) -> None:
        """Close the cursor."""
        ...

    @property
    def description(self) -> Optional[Sequence[Sequence[object]]]:
        """DB-API cursor description: column metadata or None before execution."""
        ...

    @property
    def rowcount(self) -> int:
        """Number of rows touched by the last statement."""
        ...


class ConnectionType(enum.Enum):
    """Connection type enum for database connections."""

    LOCAL = "local"
    POSTGRES = "postgres"


class DatabaseManager:
    """Centralized manager for database connections and operations.

    Handles connection management, query execution, transactions, schema
    initialization, and exception translation. Statements executed outside a
    `transaction()` block are committed immediately; statements inside one are
    committed together when the block exits and rolled back together on error.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        connection_type: ConnectionType = ConnectionType.LOCAL,
        debug_util: Optional[object] = None,
        dsn: Optional[str] = None,
    ) -> None:
        """Initialize a DatabaseManager with the specified connection type and parameters.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
                If None, an in-memory database is used. Only used for LOCAL.
            connection_type: Whether to use a local SQLite file or PostgreSQL.
            debug_util: Optional DebugUtil instance for handling debug output.
            dsn: libpq connection string. Required for POSTGRES.

        Raises:
            DBConnectionError: If the database connection cannot be established.
        """
        self.connection_type = connection_type
        self.db_path: str = db_path or ":memory:"
        self.is_postgres = connection_type == ConnectionType.POSTGRES
        self.debug_util = debug_util
        self._conn: Optional[Union[sqlite3.Connection, "psycopg2.extensions.connection"]] = None
        self._in_transaction = False

        if connection_type == ConnectionType.LOCAL:
            self._connect_sqlite()
        elif connection_type == ConnectionType.POSTGRES:
            self._connect_postgres(dsn)
        else:
            raise DBConnectionError(f"Unsupported connection type: {connection_type}")

    def _debug_message(self, *args: object) -> None:
        """Send debug message through DebugUtil if available, otherwise use debug_print."""
        if self.debug_util and hasattr(self.debug_util, "debugMessage"):
            self.debug_util.debugMessage(*args)
        else:
            debug_print(*args)

    def _connect_sqlite(self) -> None:
        """Open the SQLite database file and enable foreign keys."""
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            self._conn = conn
        except sqlite3.Error as e:
            logger.error("Failed to open SQLite database %s: %s", self.db_path, e)
            raise DBConnectionError(f"Failed to open SQLite database {self.db_path}: {e}") from e
        self._debug_message(f"Connected to SQLite database at {self.db_path}")

    def _connect_postgres(self, dsn: Optional[str]) -> None:
        """Connect to PostgreSQL using a libpq DSN."""
        if not dsn:
            raise DBConnectionError("A DSN is required for a PostgreSQL connection")
        try:
            self._conn = psycopg2.connect(dsn)
        except psycopg2.Error as e:
            logger.error("Failed to connect to PostgreSQL: %s", e)
            raise DBConnectionError(f"Failed to connect to PostgreSQL database: {e}") from e
        self._debug_message("Connected to PostgreSQL database")

    def close(self) -> None:
        """Close the database connection. Safe to call more than once."""
        if self._conn is None:
            return
        try:
            self._conn.close()
        except Exception as e:
            traceback.print_exc()
            logger.error("Error closing database connection: %s", e)
            raise
        finally:
            self._conn = None

    def _get_cursor(self) -> CursorProtocol:
        """Get a cursor from the database connection.

        Raises:
            DBConnectionError: If the database connection is not established.
        """
        if self._conn is None:
            raise DBConnectionError("Database connection is not established")
        return cast(CursorProtocol, self._conn.cursor())

    def _prepare_query(self, query: str) -> str:
        """Convert SQLite-style placeholders to psycopg2 style on PostgreSQL."""
        if self.is_postgres and "?" in query:
            query = query.replace("?", "%s")
        return query

    def _commit_if_needed(self, query: str) -> None:
        """Commit non-SELECT statements unless a transaction block is open."""
        if self._in_transaction:
            return
        if not query.strip().upper().startswith("SELECT"):
            assert self._conn is not None
            self._conn.commit()

    def _rollback_quietly(self) -> None:
        """Roll back the open transaction, logging instead of raising on failure."""
        if self._conn is None:
            return
        try:
            self._conn.rollback()
        except Exception as rollback_exc:
            self._debug_message(f"Rollback failed: {rollback_exc}")

    def _translate_and_raise(self, e: Exception) -> NoReturn:
        """Translate backend-specific exceptions to our custom exceptions and raise.

        Always raises; does not return.
        """
        if isinstance(e, DatabaseError):
            raise e

        error_msg = str(e).lower()

        # SQLite mapping
        if isinstance(e, sqlite3.IntegrityError):
            if "foreign key" in error_msg:
                raise ForeignKeyError(f"Foreign key constraint failed: {e}") from e
            if "not null" in error_msg or "unique" in error_msg or "check" in error_msg:
                raise ConstraintError(f"Constraint violation: {e}") from e
            raise IntegrityError(f"Integrity error: {e}") from e
        if isinstance(e, sqlite3.OperationalError):
            if "no such table" in error_msg:
                raise TableNotFoundError(f"Table not found: {e}") from e
            if "no such column" in error_msg or "has no column" in error_msg:
                raise SchemaError(f"Schema error: {e}") from e
            if "unable to open" in error_msg or "locked" in error_msg or "disk i/o" in error_msg:
                raise DBConnectionError(f"SQLite database unavailable: {e}") from e
            raise DatabaseError(f"Database operation failed: {e}") from e
        if isinstance(e, sqlite3.ProgrammingError):
            if "closed" in error_msg:
                raise DBConnectionError(f"Database connection is closed: {e}") from e
            if "binding" in error_msg or "type" in error_msg:
                raise DatabaseTypeError(f"Type error in query parameters: {e}") from e
            raise DatabaseError(f"Database operation failed: {e}") from e
        if isinstance(e, sqlite3.InterfaceError):
            raise DatabaseTypeError(f"Type error in query parameters: {e}") from e
        if isinstance(e, sqlite3.DatabaseError):
            raise DatabaseError(f"Database error: {e}") from e

        # PostgreSQL mapping
        if isinstance(e, (psycopg2.OperationalError, psycopg2.ProgrammingError)):
            if "connection" in error_msg:
                raise DBConnectionError(f"Failed to connect to PostgreSQL database: {e}") from e
            if "does not exist" in error_msg and "relation" in error_msg:
                raise TableNotFoundError(f"Table not found: {e}") from e
            if "column" in error_msg and "does not exist" in error_msg:
                raise SchemaError(f"Schema error: {e}") from e
            raise DatabaseError(f"Database operation failed: {e}") from e
        if isinstance(e, psycopg2.IntegrityError):
            if "foreign key" in error_msg:
                raise ForeignKeyError(f"Foreign key constraint failed: {e}") from e
            if (
                "not null" in error_msg
                or "not-null" in error_msg
                or "null value" in error_msg
                or "unique" in error_msg
                or "check constraint" in error_msg
            ):
                raise ConstraintError(f"Constraint violation: {e}") from e
            raise IntegrityError(f"Integrity error: {e}") from e
        if isinstance(e, psycopg2.DataError):
            raise DatabaseTypeError(f"Type error in query parameters: {e}") from e
        if isinstance(e, psycopg2.DatabaseError):
            raise DatabaseError(f"Database error: {e}") from e

        # Fallback
        raise DatabaseError(f"Unexpected database error: {e}") from e

    def execute(self, query: str, params: Tuple[object, ...] = ()) -> CursorProtocol:
        """Execute a SQL query with parameters.

        Outside a transaction block non-SELECT statements are committed
        immediately. On failure the current transaction is rolled back.

        Args:
            query: SQL query string using `?` placeholders
            params: Query parameters

        Returns:
            Database cursor object

        Raises:
            DBConnectionError, TableNotFoundError, SchemaError, DatabaseError,
            ForeignKeyError, ConstraintError, IntegrityError, DatabaseTypeError
        """
        try:
            cursor = self._get_cursor()
            query = self._prepare_query(query)
            self._debug_message(f"Executing SQL: {' '.join(query.split())}; params={params}")
            cursor.execute(query, params)
            self._commit_if_needed(query)
            return cursor
        except Exception as e:
            self._debug_message(f"Exception during query: {e}. Rolling back transaction.")
            self._rollback_quietly()
            self._translate_and_raise(e)

    def execute_many(self, query: str, params_seq: Iterable[Tuple[object, ...]]) -> CursorProtocol:
        """Execute a parameterized statement once per parameter tuple.

        Follows the same commit and rollback rules as `execute()`.
        """
        try:
            cursor = self._get_cursor()
            query = self._prepare_query(query)
            params_list: List[Tuple[object, ...]] = list(params_seq)
            self._debug_message(
                f"Executing SQL batch: {' '.join(query.split())}; rows={len(params_list)}"
            )
            cursor.executemany(query, params_list)
            self._commit_if_needed(query)
            return cursor
        except Exception as e:
            self._debug_message(f"Exception during execute_many: {e}. Rolling back transaction.")
            self._rollback_quietly()
            self._translate_and_raise(e)

    @contextlib.contextmanager
    def transaction(self) -> Iterator["DatabaseManager"]:
        """Group statements into one atomic unit.

        Every statement executed inside the block is committed when the block
        exits normally and rolled back if anything raises. Nested blocks join
        the outermost one.
        """
        if self._in_transaction:
            yield self
            return
        if self._conn is None:
            raise DBConnectionError("Database connection is not established")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._debug_message("Transaction failed; rolling back")
            self._rollback_quietly()
            raise
        else:
            try:
                self._conn.commit()
            except Exception as e:
                self._rollback_quietly()
                self._translate_and_raise(e)
        finally:
            self._in_transaction = False

    @property
    def in_transaction(self) -> bool:
        """Whether a `transaction()` block is currently open."""
        return self._in_transaction

    def _row_to_dict(
        self, cursor: CursorProtocol, row: Union[sqlite3.Row, Tuple[object, ...]]
    ) -> Dict[str, object]:
        """Normalize a backend row into a dict keyed by column name."""
        if isinstance(row, sqlite3.Row):
            return {key: row[key] for key in row.keys()}
        assert cursor.description is not None
        col_names = [cast(str, desc[0]) for desc in cursor.description]
        return {col_names[i]: row[i] for i in range(len(col_names))}

    def fetchone(self, query: str, params: Tuple[object, ...] = ()) -> Optional[Dict[str, object]]:
        """Execute a SQL query and fetch a single result.

        Returns:
            Dict representing the fetched row, or None if no results
        """
        cursor = self.execute(query, params)
        result = cursor.fetchone()
        if result is None:
            return None
        return self._row_to_dict(cursor, result)

    def fetchall(self, query: str, params: Tuple[object, ...] = ()) -> List[Dict[str, object]]:
        """Execute a query and return all rows as a list of dicts."""
        cursor = self.execute(query, params)
        return [self._row_to_dict(cursor, row) for row in cursor.fetchall()]

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the database (backend-agnostic)."""
        if self.is_postgres:
            query = (
                "SELECT 1 FROM information_schema.tables "
                "WHERE table_schema = current_schema() AND table_name = ?"
            )
        else:
            query = "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?"
        return self.fetchone(query, (table_name,)) is not None

    def list_tables(self) -> List[str]:
        """Return a sorted list of all user table names in the database."""
        if self.is_postgres:
            query = (
                "SELECT table_name AS name FROM information_schema.tables "
                "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE' "
                "ORDER BY table_name"
            )
        else:
            query = (
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
        return [cast(str, row["name"]) for row in self.fetchall(query)]

    def _execute_ddl(self, query: str) -> None:
        """Execute a DDL statement; committed like any other non-SELECT statement."""
        self.execute(query)

    def _create_practice_sessions_table(self) -> None:
        """Create the append-only practice_sessions table if it does not exist."""
        self._execute_ddl(
            """
            CREATE TABLE IF NOT EXISTS practice_sessions (
                session_id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                wpm DOUBLE PRECISION NOT NULL CHECK (wpm >= 0),
                accuracy DOUBLE PRECISION NOT NULL CHECK (accuracy >= 0 AND accuracy <= 100),
                duration DOUBLE PRECISION NOT NULL CHECK (duration >= 0),
                error_count INTEGER NOT NULL CHECK (error_count >= 0),
                timestamp TIMESTAMP(6) NOT NULL
            );
            """
        )
        self._execute_ddl(
            """
            CREATE INDEX IF NOT EXISTS idx_practice_sessions_timestamp
            ON practice_sessions(timestamp);
            """
        )

    def _create_key_stats_table(self) -> None:
        """Create the per-character key_stats ledger if it does not exist."""
        self._execute_ddl(
            """
            CREATE TABLE IF NOT EXISTS key_stats (
                key_char TEXT PRIMARY KEY,
                errors INTEGER NOT NULL DEFAULT 0 CHECK (errors >= 0),
                successes INTEGER NOT NULL DEFAULT 0 CHECK (successes >= 0),
                last_practiced TIMESTAMP(6) NOT NULL,
                interval_days INTEGER NOT NULL DEFAULT 0 CHECK (interval_days >= 0),
                repetitions INTEGER NOT NULL DEFAULT 0 CHECK (repetitions >= 0),
                ease_factor DOUBLE PRECISION NOT NULL DEFAULT 2.5 CHECK (ease_factor >= 1.3)
            );
            """
        )

    def init_tables(self) -> None:
        """Initialize all database tables by creating them if they do not exist."""
        self._create_practice_sessions_table()
        self._create_key_stats_table()

    def __enter__(self) -> "DatabaseManager":
        """Context manager protocol support.

        Returns:
            Self for using in with statements.
        """
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: object,
    ) -> None:
        """Context manager protocol support - close connection when exiting context."""
        self.close()
