# ABOUTME: Shared pytest fixtures for loan ledger tests.
# ABOUTME: Provides a temporary ledger database, a fixed clock, and seeded books and users.

import sqlite3
from collections.abc import Callable, Iterator
from datetime import datetime
from pathlib import Path

import pytest

from loanledger.core.clock import FixedClock
from loanledger.core.ledger import LoanLedger
from loanledger.db.catalog import BookCatalog
from loanledger.db.connection import open_ledger
from loanledger.db.directory import UserDirectory
from loanledger.db.mapping import BookRecord, UserRecord

# 10:00 on 1 March 2024; default loans from this clock fall due on 15 March.
NOW = datetime(2024, 3, 1, 10, 0, 0)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path."""
    return tmp_path / "ledger.db"


@pytest.fixture()
def conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    """An open ledger connection, closed after the test."""
    connection = open_ledger(db_path)
    yield connection
    connection.close()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def add_book(conn: sqlite3.Connection) -> Callable[..., BookRecord]:
    """Factory that catalogs a book and returns it as stored."""
    catalog = BookCatalog(conn)

    def _add(book_id: str, copies: int = 1, **fields) -> BookRecord:
        fields.setdefault("accession_number", f"ACC-{book_id}")
        fields.setdefault("title", f"Title {book_id}")
        fields.setdefault("available_copies", copies)
        catalog.add_book(BookRecord(id=book_id, total_copies=copies, **fields))
        return catalog.get_by_id(book_id)

    return _add


@pytest.fixture()
def add_user(conn: sqlite3.Connection) -> Callable[..., UserRecord]:
    """Factory that registers a user and returns it as stored."""
    directory = UserDirectory(conn)

    def _add(user_id: str, full_name: str | None = None, **fields) -> UserRecord:
        fields.setdefault("employee_id", f"E-{user_id}")
        directory.add_user(
            UserRecord(id=user_id, full_name=full_name or f"User {user_id}", **fields)
        )
        return directory.get_by_id(user_id)

    return _add


@pytest.fixture()
def seeded(add_book, add_user) -> None:
    """One single-copy book b1, a two-copy book b2, borrowers u1 and u2, and staff."""
    add_book("b1", title="Dune", author="Frank Herbert")
    add_book("b2", copies=2, title="Emma", author="Jane Austen")
    add_user("u1", "Ada Lovelace")
    add_user("u2", "Alan Turing")
    add_user("staff", "Grace Hopper")


@pytest.fixture()
def ledger(conn: sqlite3.Connection, clock: FixedClock, seeded: None) -> LoanLedger:
    """A LoanLedger over the seeded database, driven by the fixed clock."""
    return LoanLedger(conn, clock=clock, retry_delay=0.001)
