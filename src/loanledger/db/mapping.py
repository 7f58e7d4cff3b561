# ABOUTME: Converts between ledger dataclasses and SQLite row dictionaries.
# ABOUTME: Handles ISO text encoding for timestamps and dates, and status enums.

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from loanledger.core.types import BookStatus, LoanStatus, UserStatus

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


def new_id() -> str:
    """Opaque identifier for a new book, user, or loan."""
    return uuid.uuid4().hex


@dataclass
class BookRecord:
    """A cataloged title with its physical copy counters."""

    id: str
    accession_number: str
    title: str
    author: str | None = None
    total_copies: int = 1
    available_copies: int = 1
    status: BookStatus = BookStatus.AVAILABLE
    reference_only: bool = False
    version: int = 0


@dataclass
class UserRecord:
    """A directory entry: a borrower or a member of staff."""

    id: str
    employee_id: str
    full_name: str
    status: UserStatus = UserStatus.ACTIVE
    issued_count: int = 0
    version: int = 0


@dataclass
class LoanRecord:
    """A loan as handed to callers: foreign keys plus the joined display fields.

    The ledger never owns the referenced book or user; book_title,
    employee_id and the *_name fields are read through the join at query
    time and are None only if the referenced row is missing.
    """

    id: str
    book_id: str
    user_id: str
    issuer_id: str
    issue_date: datetime
    due_date: date
    status: LoanStatus
    renewal_count: int = 0
    return_date: datetime | None = None
    returner_id: str | None = None
    notes: str | None = None
    book_title: str | None = None
    accession_number: str | None = None
    employee_id: str | None = None
    user_full_name: str | None = None
    issuer_name: str | None = None
    returner_name: str | None = None
    version: int = 0

    @property
    def is_open(self) -> bool:
        return self.status.is_open


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def format_date(value: date) -> str:
    return value.isoformat()


def parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def book_to_row(book: BookRecord) -> dict[str, Any]:
    """Convert a BookRecord to a dict suitable for INSERT."""
    return {
        "id": book.id,
        "accession_number": book.accession_number,
        "title": book.title,
        "author": book.author,
        "total_copies": book.total_copies,
        "available_copies": book.available_copies,
        "status": book.status.value,
        "reference_only": int(book.reference_only),
    }


def row_to_book(row: Any) -> BookRecord:
    return BookRecord(
        id=row["id"],
        accession_number=row["accession_number"],
        title=row["title"],
        author=row["author"],
        total_copies=row["total_copies"],
        available_copies=row["available_copies"],
        status=BookStatus(row["status"]),
        reference_only=bool(row["reference_only"]),
        version=row["version"],
    )


def user_to_row(user: UserRecord) -> dict[str, Any]:
    """Convert a UserRecord to a dict suitable for INSERT."""
    return {
        "id": user.id,
        "employee_id": user.employee_id,
        "full_name": user.full_name,
        "status": user.status.value,
        "issued_count": user.issued_count,
    }


def row_to_user(row: Any) -> UserRecord:
    return UserRecord(
        id=row["id"],
        employee_id=row["employee_id"],
        full_name=row["full_name"],
        status=UserStatus(row["status"]),
        issued_count=row["issued_count"],
        version=row["version"],
    )


def loan_to_row(loan: LoanRecord) -> dict[str, Any]:
    """Convert a LoanRecord to a dict of loans-table columns for INSERT.

    Joined display fields are not stored.
    """
    return {
        "id": loan.id,
        "book_id": loan.book_id,
        "user_id": loan.user_id,
        "issuer_id": loan.issuer_id,
        "returner_id": loan.returner_id,
        "issued_at": format_timestamp(loan.issue_date),
        "due_at": format_date(loan.due_date),
        "returned_at": format_timestamp(loan.return_date) if loan.return_date else None,
        "renewal_count": loan.renewal_count,
        "status": loan.status.value,
        "notes": loan.notes,
    }


def row_to_loan(row: Any) -> LoanRecord:
    """Convert a joined loans row (see loans.LOAN_SELECT) to a LoanRecord."""
    return LoanRecord(
        id=row["id"],
        book_id=row["book_id"],
        user_id=row["user_id"],
        issuer_id=row["issuer_id"],
        issue_date=datetime.fromisoformat(row["issued_at"]),
        due_date=date.fromisoformat(row["due_at"]),
        status=LoanStatus(row["status"]),
        renewal_count=row["renewal_count"],
        return_date=parse_timestamp(row["returned_at"]),
        returner_id=row["returner_id"],
        notes=row["notes"],
        book_title=row["book_title"],
        accession_number=row["accession_number"],
        employee_id=row["employee_id"],
        user_full_name=row["user_full_name"],
        issuer_name=row["issuer_name"],
        returner_name=row["returner_name"],
        version=row["version"],
    )
