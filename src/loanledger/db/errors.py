# ABOUTME: Storage-level exceptions raised by the ledger's SQLite gateways.
# ABOUTME: Separates retryable optimistic-lock misses from duplicate-key inserts.

import sqlite3


class DuplicateRecordError(Exception):
    """Raised when an insert collides with a unique key (accession number, employee id)."""


class StaleRecordError(Exception):
    """Raised when a version-guarded UPDATE matched no row.

    The row changed (or its guard condition stopped holding) between the
    read and the write; the whole transaction should be retried.
    """


def is_busy_error(exc: BaseException) -> bool:
    """Whether exc is SQLite reporting a lock it could not take in time."""
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    message = str(exc).lower()
    return "locked" in message or "busy" in message
