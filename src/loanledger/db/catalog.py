# ABOUTME: Catalog store: book records and their physical copy counters.
# ABOUTME: Counter changes are version-guarded UPDATEs that join the caller's transaction.

import sqlite3

from loanledger.core.types import BookStatus
from loanledger.db.errors import DuplicateRecordError, StaleRecordError
from loanledger.db.mapping import BookRecord, book_to_row, row_to_book


class BookCatalog:
    """Wraps a sqlite3 connection and provides typed access to the books table.

    Mutating methods never commit. They run inside whatever transaction the
    caller opened, so the ledger can apply a counter change and a loan write
    as one unit.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def add_book(self, book: BookRecord) -> str:
        """Add a book to the catalog.

        Returns:
            The book's id.

        Raises:
            DuplicateRecordError: If the accession number is already cataloged.
            ValueError: If the copy counters are inconsistent.
        """
        if not 0 <= book.available_copies <= book.total_copies:
            raise ValueError(
                f"available_copies must be between 0 and {book.total_copies}, "
                f"got {book.available_copies}"
            )
        row = book_to_row(book)
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)

        try:
            self._conn.execute(
                f"INSERT INTO books ({columns}) VALUES ({placeholders})",
                list(row.values()),
            )
        except sqlite3.IntegrityError as exc:
            if "books.accession_number" in str(exc):
                raise DuplicateRecordError(
                    f"Book with accession number {book.accession_number} already exists"
                ) from exc
            raise

        return book.id

    def get_by_id(self, book_id: str) -> BookRecord | None:
        """Retrieve a book by its id."""
        cursor = self._conn.execute("SELECT * FROM books WHERE id = ?", (book_id,))
        row = cursor.fetchone()
        return row_to_book(row) if row else None

    def get_by_accession(self, accession_number: str) -> BookRecord | None:
        """Retrieve a book by its accession number."""
        cursor = self._conn.execute(
            "SELECT * FROM books WHERE accession_number = ?", (accession_number,)
        )
        row = cursor.fetchone()
        return row_to_book(row) if row else None

    def list_all(self) -> list[BookRecord]:
        """Return all books in the catalog, ordered by title."""
        cursor = self._conn.execute("SELECT * FROM books ORDER BY title, accession_number")
        return [row_to_book(row) for row in cursor.fetchall()]

    def decrement_available(self, book: BookRecord) -> None:
        """Take one copy of book out of circulation.

        The update only applies if the row still carries book.version and has
        a copy left. A book whose last copy goes out moves from AVAILABLE to
        ISSUED in the same statement.

        Raises:
            StaleRecordError: If the guard did not match.
        """
        cursor = self._conn.execute(
            "UPDATE books SET "
            "available_copies = available_copies - 1, "
            "status = CASE WHEN available_copies = 1 AND status = ? THEN ? ELSE status END, "
            "version = version + 1 "
            "WHERE id = ? AND version = ? AND available_copies > 0",
            (BookStatus.AVAILABLE.value, BookStatus.ISSUED.value, book.id, book.version),
        )
        if cursor.rowcount == 0:
            raise StaleRecordError(f"Book {book.id} changed since version {book.version}")

    def increment_available(self, book: BookRecord) -> None:
        """Put one copy of book back into circulation.

        A fully-issued book reverts to AVAILABLE. The counter never exceeds
        total_copies.

        Raises:
            StaleRecordError: If the guard did not match.
        """
        cursor = self._conn.execute(
            "UPDATE books SET "
            "available_copies = available_copies + 1, "
            "status = CASE WHEN status = ? THEN ? ELSE status END, "
            "version = version + 1 "
            "WHERE id = ? AND version = ? AND available_copies < total_copies",
            (BookStatus.ISSUED.value, BookStatus.AVAILABLE.value, book.id, book.version),
        )
        if cursor.rowcount == 0:
            raise StaleRecordError(f"Book {book.id} changed since version {book.version}")

    def set_status(self, book_id: str, status: BookStatus) -> None:
        """Set a book's circulation status.

        Raises:
            ValueError: If the book_id does not exist.
        """
        cursor = self._conn.execute(
            "UPDATE books SET status = ?, version = version + 1 WHERE id = ?",
            (status.value, book_id),
        )
        if cursor.rowcount == 0:
            raise ValueError(f"Book with id {book_id} not found")
