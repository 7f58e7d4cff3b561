# ABOUTME: Loan table gateway: inserts, guarded status transitions, and joined queries.
# ABOUTME: Every read joins books and users so callers get the full loan view.

import sqlite3
from datetime import date, datetime
from typing import Any

from loanledger.core.types import LoanStatus, Page
from loanledger.db.errors import StaleRecordError
from loanledger.db.mapping import (
    LoanRecord,
    format_date,
    format_timestamp,
    loan_to_row,
    row_to_loan,
)

LOAN_SELECT = (
    "SELECT l.*, "
    "b.title AS book_title, b.accession_number AS accession_number, "
    "u.employee_id AS employee_id, u.full_name AS user_full_name, "
    "i.full_name AS issuer_name, r.full_name AS returner_name "
    "FROM loans l "
    "LEFT JOIN books b ON b.id = l.book_id "
    "LEFT JOIN users u ON u.id = l.user_id "
    "LEFT JOIN users i ON i.id = l.issuer_id "
    "LEFT JOIN users r ON r.id = l.returner_id"
)

# Newest issue first; id breaks ties so pages are stable.
_NEWEST_FIRST = "l.issued_at DESC, l.id DESC"

_OPEN_STATUSES = (LoanStatus.ACTIVE.value, LoanStatus.OVERDUE.value)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class LoanStore:
    """Wraps a sqlite3 connection and provides typed access to the loans table.

    Like the catalog and directory stores, writes never commit on their own.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # --- Writes ---

    def insert(self, loan: LoanRecord) -> None:
        """Insert a new loan row."""
        row = loan_to_row(loan)
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        self._conn.execute(
            f"INSERT INTO loans ({columns}) VALUES ({placeholders})",
            list(row.values()),
        )

    def mark_returned(
        self,
        loan: LoanRecord,
        *,
        returner_id: str,
        returned_at: datetime,
        notes: str | None = None,
    ) -> None:
        """Close an open loan. Notes are only overwritten when non-empty.

        Raises:
            StaleRecordError: If the loan changed or is no longer open.
        """
        cursor = self._conn.execute(
            "UPDATE loans SET status = ?, returned_at = ?, returner_id = ?, "
            "notes = COALESCE(NULLIF(?, ''), notes), version = version + 1 "
            "WHERE id = ? AND version = ? AND status IN (?, ?)",
            (
                LoanStatus.RETURNED.value,
                format_timestamp(returned_at),
                returner_id,
                notes,
                loan.id,
                loan.version,
                *_OPEN_STATUSES,
            ),
        )
        if cursor.rowcount == 0:
            raise StaleRecordError(f"Loan {loan.id} changed since version {loan.version}")

    def extend_due_date(
        self, loan: LoanRecord, *, due_date: date, notes: str | None = None
    ) -> None:
        """Move an active loan's due date and count the renewal.

        Raises:
            StaleRecordError: If the loan changed or is no longer ACTIVE.
        """
        cursor = self._conn.execute(
            "UPDATE loans SET due_at = ?, renewal_count = renewal_count + 1, "
            "notes = COALESCE(NULLIF(?, ''), notes), version = version + 1 "
            "WHERE id = ? AND version = ? AND status = ?",
            (format_date(due_date), notes, loan.id, loan.version, LoanStatus.ACTIVE.value),
        )
        if cursor.rowcount == 0:
            raise StaleRecordError(f"Loan {loan.id} changed since version {loan.version}")

    def mark_overdue(self, loan_id: str, cutoff: date) -> bool:
        """Move one ACTIVE loan due before cutoff to OVERDUE.

        Returns:
            True if the row transitioned; False if it no longer qualifies.
        """
        cursor = self._conn.execute(
            "UPDATE loans SET status = ?, version = version + 1 "
            "WHERE id = ? AND status = ? AND due_at < ?",
            (LoanStatus.OVERDUE.value, loan_id, LoanStatus.ACTIVE.value, format_date(cutoff)),
        )
        return cursor.rowcount > 0

    # --- Reads ---

    def get(self, loan_id: str) -> LoanRecord | None:
        """Retrieve a loan by id."""
        cursor = self._conn.execute(f"{LOAN_SELECT} WHERE l.id = ?", (loan_id,))
        row = cursor.fetchone()
        return row_to_loan(row) if row else None

    def overdue_candidate_ids(self, cutoff: date) -> list[str]:
        """Ids of ACTIVE loans due before cutoff, oldest due date first."""
        cursor = self._conn.execute(
            "SELECT id FROM loans WHERE status = ? AND due_at < ? ORDER BY due_at, id",
            (LoanStatus.ACTIVE.value, format_date(cutoff)),
        )
        return [row["id"] for row in cursor.fetchall()]

    def page(
        self,
        page: int,
        size: int,
        where: str = "",
        params: tuple[Any, ...] = (),
    ) -> Page[LoanRecord]:
        """Return one newest-first page of loans matching an optional WHERE clause."""
        clause = f" WHERE {where}" if where else ""
        total = self._conn.execute(
            f"SELECT COUNT(*) FROM ({LOAN_SELECT}{clause})", params
        ).fetchone()[0]
        cursor = self._conn.execute(
            f"{LOAN_SELECT}{clause} ORDER BY {_NEWEST_FIRST} LIMIT ? OFFSET ?",
            (*params, size, page * size),
        )
        items = [row_to_loan(row) for row in cursor.fetchall()]
        return Page(items=items, page=page, size=size, total=total)

    def page_by_book(self, book_id: str, page: int, size: int) -> Page[LoanRecord]:
        return self.page(page, size, "l.book_id = ?", (book_id,))

    def page_by_user(self, user_id: str, page: int, size: int) -> Page[LoanRecord]:
        return self.page(page, size, "l.user_id = ?", (user_id,))

    def page_by_status(
        self, status: LoanStatus, page: int, size: int, user_id: str | None = None
    ) -> Page[LoanRecord]:
        if user_id is None:
            return self.page(page, size, "l.status = ?", (status.value,))
        return self.page(page, size, "l.status = ? AND l.user_id = ?", (status.value, user_id))

    def page_overdue(self, cutoff: date, page: int, size: int) -> Page[LoanRecord]:
        """Open loans due before cutoff, whether or not a sweep has marked them yet."""
        return self.page(
            page,
            size,
            "l.status IN (?, ?) AND l.due_at < ?",
            (*_OPEN_STATUSES, format_date(cutoff)),
        )

    def search(self, query: str, page: int, size: int) -> Page[LoanRecord]:
        """Case-insensitive substring search over book title, accession number,
        borrower name, and borrower employee id."""
        needle = query.strip().lower()
        if not needle:
            return self.page(page, size)
        pattern = f"%{_escape_like(needle)}%"
        where = " OR ".join(
            f"LOWER({column}) LIKE ? ESCAPE '\\'"
            for column in ("b.title", "b.accession_number", "u.full_name", "u.employee_id")
        )
        return self.page(page, size, where, (pattern,) * 4)

    def history(self, user_id: str) -> list[LoanRecord]:
        """Every loan a user has held, newest issued first."""
        cursor = self._conn.execute(
            f"{LOAN_SELECT} WHERE l.user_id = ? ORDER BY {_NEWEST_FIRST}", (user_id,)
        )
        return [row_to_loan(row) for row in cursor.fetchall()]

    def exists_with_status(self, book_id: str, user_id: str, status: LoanStatus) -> bool:
        cursor = self._conn.execute(
            "SELECT 1 FROM loans WHERE book_id = ? AND user_id = ? AND status = ? LIMIT 1",
            (book_id, user_id, status.value),
        )
        return cursor.fetchone() is not None

    def count_by_user_and_status(self, user_id: str, status: LoanStatus) -> int:
        cursor = self._conn.execute(
            "SELECT COUNT(*) FROM loans WHERE user_id = ? AND status = ?",
            (user_id, status.value),
        )
        return cursor.fetchone()[0]
