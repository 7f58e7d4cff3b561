# ABOUTME: SQLite connection management for the loan ledger database.
# ABOUTME: Opens or creates the database, applies schema, and scopes explicit transactions.

import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from loanledger.db.schema import MIGRATIONS, SCHEMA_V1

DEFAULT_DB_PATH = Path.home() / ".loanledger" / "ledger.db"

# Milliseconds a writer waits on a locked database before SQLite gives up.
DEFAULT_BUSY_TIMEOUT_MS = 5000

ConnectionFactory = Callable[[], sqlite3.Connection]


def _schema_exists(conn: sqlite3.Connection) -> bool:
    """Check if the schema has already been applied."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    return cursor.fetchone() is not None


def _apply_schema(conn: sqlite3.Connection) -> None:
    """Execute the DDL to create all tables and indexes."""
    conn.executescript(SCHEMA_V1)


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the current schema version from the database."""
    cursor = conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    row = cursor.fetchone()
    return row[0] if row else 0


def _apply_migrations(conn: sqlite3.Connection) -> None:
    """Apply pending schema migrations sequentially.

    Reads the current schema version and applies any migrations with a higher
    version number. No-op if the database is already at the latest version.
    """
    current = _get_schema_version(conn)
    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)


def open_ledger(
    path: Path | None = None,
    *,
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
) -> sqlite3.Connection:
    """Open or create the loan ledger database.

    Creates the database file and parent directories if they don't exist.
    Applies the schema on first creation and any pending migrations. The
    connection runs in autocommit mode: callers group writes with
    transaction(), so every multi-row mutation is explicit.

    Args:
        path: Path to the database file. Defaults to ~/.loanledger/ledger.db.
        busy_timeout_ms: How long a writer waits on a locked database.

    Returns:
        A configured sqlite3.Connection.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        str(db_path),
        timeout=busy_timeout_ms / 1000,
        isolation_level=None,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    if not _schema_exists(conn):
        _apply_schema(conn)

    _apply_migrations(conn)

    return conn


def connection_factory(
    path: Path | None = None,
    *,
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
) -> ConnectionFactory:
    """Return a zero-argument callable that opens a fresh connection to path.

    sqlite3 connections are bound to the thread that created them, so
    background workers take a factory rather than a connection.
    """
    db_path = path or DEFAULT_DB_PATH

    def factory() -> sqlite3.Connection:
        return open_ledger(db_path, busy_timeout_ms=busy_timeout_ms)

    return factory


@contextmanager
def transaction(
    conn: sqlite3.Connection, *, immediate: bool = False
) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements as one SQLite transaction.

    Commits when the block exits normally and rolls back on any exception,
    which is re-raised. A deferred transaction (the default) takes the write
    lock only at its first write; immediate=True takes it up front, waiting
    at most the connection's busy timeout.
    """
    conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException:
        # SQLite may already have rolled back on its own (e.g. SQLITE_FULL).
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise


@contextmanager
def savepoint(conn: sqlite3.Connection, name: str = "item") -> Iterator[sqlite3.Connection]:
    """Nest a unit of work inside an open transaction.

    On exception only the work done since the savepoint is undone; the
    enclosing transaction stays open and the exception is re-raised.
    """
    conn.execute(f"SAVEPOINT {name}")
    try:
        yield conn
    except BaseException:
        if conn.in_transaction:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
        raise
    conn.execute(f"RELEASE SAVEPOINT {name}")
