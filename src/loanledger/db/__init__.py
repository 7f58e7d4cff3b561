# ABOUTME: Public API for the loan ledger database layer.
# ABOUTME: Exports connection management, the catalog/directory/loan stores, and records.

from loanledger.db.catalog import BookCatalog
from loanledger.db.connection import (
    DEFAULT_DB_PATH,
    connection_factory,
    open_ledger,
    savepoint,
    transaction,
)
from loanledger.db.directory import UserDirectory
from loanledger.db.errors import DuplicateRecordError, StaleRecordError
from loanledger.db.loans import LoanStore
from loanledger.db.mapping import BookRecord, LoanRecord, UserRecord

__all__ = [
    "DEFAULT_DB_PATH",
    "BookCatalog",
    "BookRecord",
    "DuplicateRecordError",
    "LoanRecord",
    "LoanStore",
    "StaleRecordError",
    "UserDirectory",
    "UserRecord",
    "connection_factory",
    "open_ledger",
    "savepoint",
    "transaction",
]
