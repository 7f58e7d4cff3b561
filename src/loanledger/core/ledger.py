# ABOUTME: The loan ledger: issue, return, renew, and query loans of physical copies.
# ABOUTME: Keeps copy counters, loan status, and due dates consistent under concurrent callers.

from __future__ import annotations

import logging
import random
import sqlite3
import time
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from functools import partial
from typing import TYPE_CHECKING, TypeVar

from loanledger.core import errors, rules
from loanledger.core.clock import Clock, SystemClock, today
from loanledger.core.errors import ConflictError, NotFoundError
from loanledger.core.types import IssueRequest, LoanStatus, Page
from loanledger.db.catalog import BookCatalog
from loanledger.db.connection import transaction
from loanledger.db.directory import UserDirectory
from loanledger.db.errors import StaleRecordError, is_busy_error
from loanledger.db.loans import LoanStore
from loanledger.db.mapping import BookRecord, LoanRecord, UserRecord, new_id

if TYPE_CHECKING:
    from loanledger.core.types import BatchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LOAN_DAYS = 14
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_DELAY = 0.01
DEFAULT_PAGE_SIZE = 20


def _clean_notes(notes: str | None) -> str | None:
    if notes is None or not notes.strip():
        return None
    return notes.strip()


class LoanLedger:
    """Issues, returns, and renews loans against one SQLite connection.

    Each write operation is one transaction spanning the book's copy
    counter, the borrower's issued-count, and the loan row, opened with
    BEGIN IMMEDIATE so writers queue on the busy timeout rather than fail a
    read-to-write lock upgrade. Contended rows are updated with version
    guards; a lost race is retried up to max_retries times before surfacing
    as ConflictError(concurrent_update).

    A LoanLedger is bound to its connection's thread. Concurrent callers
    each open their own connection (see db.connection.connection_factory).
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        clock: Clock | None = None,
        loan_days: int = DEFAULT_LOAN_DAYS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        catalog: BookCatalog | None = None,
        directory: UserDirectory | None = None,
    ) -> None:
        self._conn = conn
        self._clock = clock or SystemClock()
        self._loan_days = loan_days
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self.catalog = catalog or BookCatalog(conn)
        self.directory = directory or UserDirectory(conn)
        self.loans = LoanStore(conn)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @property
    def clock(self) -> Clock:
        return self._clock

    # --- Retry plumbing ---

    def run_with_retries(self, action: str, fn: Callable[[], T]) -> T:
        """Call fn, retrying on lost optimistic-lock races and busy locks.

        fn must open and finish its own transaction so that each attempt
        starts from fresh reads.

        Raises:
            ConflictError: With reason concurrent_update once retries run out.
        """
        attempts = 1 + self._max_retries
        for attempt in range(attempts):
            try:
                return fn()
            except (StaleRecordError, sqlite3.OperationalError) as exc:
                if isinstance(exc, sqlite3.OperationalError) and not is_busy_error(exc):
                    raise
                if attempt == attempts - 1:
                    raise ConflictError(
                        errors.CONCURRENT_UPDATE,
                        f"{action} lost to a concurrent update after {attempts} attempts",
                    ) from exc
                delay = self._retry_delay * (2**attempt) * random.uniform(0.5, 1.5)
                logger.warning(
                    "%s hit a concurrent update (%s), retrying in %.3fs (attempt %d/%d)",
                    action,
                    exc,
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                time.sleep(delay)
        raise AssertionError("unreachable")

    # --- Lookups that raise ---

    def _require_book(self, book_id: str) -> BookRecord:
        book = self.catalog.get_by_id(book_id)
        if book is None:
            raise NotFoundError(errors.BOOK, f"Book not found with ID: {book_id}")
        return book

    def _require_user(self, user_id: str) -> UserRecord:
        user = self.directory.get_by_id(user_id)
        if user is None:
            raise NotFoundError(errors.USER, f"User not found with ID: {user_id}")
        return user

    def _require_loan(self, loan_id: str) -> LoanRecord:
        loan = self.loans.get(loan_id)
        if loan is None:
            raise NotFoundError(errors.LOAN, f"Loan not found with ID: {loan_id}")
        return loan

    # --- Issue ---

    def issue(
        self,
        book_id: str,
        user_id: str,
        issuer_id: str,
        issue_date: date | None = None,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> LoanRecord:
        """Lend one copy of book_id to user_id.

        Without an issue_date the clock's current date is used; without a
        due_date the loan runs loan_days from the issue date.

        Raises:
            NotFoundError: book, then user (borrower or issuer), missing.
            RejectedError: reference-only book, or due date before issue date.
            ConflictError: no copies left, book not AVAILABLE, or a lost race.
        """
        request = IssueRequest(
            book_id=book_id,
            user_id=user_id,
            issuer_id=issuer_id,
            issue_date=issue_date,
            due_date=due_date,
            notes=notes,
        )
        logger.info("Attempting to issue book ID: %s to user ID: %s", book_id, user_id)

        loan_id = self.run_with_retries("issue", partial(self._issue_once, request))
        loan = self._require_loan(loan_id)

        logger.info(
            "Successfully issued book ID: %s to user ID: %s. Loan ID: %s",
            book_id,
            user_id,
            loan.id,
        )
        return loan

    def _issue_once(self, request: IssueRequest) -> str:
        with transaction(self._conn, immediate=True):
            return self.apply_issue(request, relaxed=False)

    def apply_issue(self, request: IssueRequest, *, relaxed: bool = False) -> str:
        """Apply one issue inside the caller's open transaction.

        With relaxed=True the reference-only, copy-count, book-status and
        due-date checks are skipped, as for imported historical loans. The
        copy counter still never goes below zero.

        Returns:
            The new loan's id.
        """
        book = self._require_book(request.book_id)
        user = self._require_user(request.user_id)
        self._require_user(request.issuer_id)

        issue_day = request.issue_date or today(self._clock)
        due_day = request.due_date or issue_day + timedelta(days=self._loan_days)

        if not relaxed:
            rules.check_issuable(book)
            rules.check_due_date(issue_day, due_day)

        if book.available_copies > 0:
            self.catalog.decrement_available(book)
        else:
            logger.warning(
                "Book %s has no available copies on record; importing loan without "
                "decrementing the counter",
                book.id,
            )
        self.directory.increment_issued_count(user.id)

        loan = LoanRecord(
            id=new_id(),
            book_id=book.id,
            user_id=user.id,
            issuer_id=request.issuer_id,
            issue_date=datetime.combine(issue_day, datetime.min.time()),
            due_date=due_day,
            status=LoanStatus.ACTIVE,
            notes=_clean_notes(request.notes),
        )
        self.loans.insert(loan)
        return loan.id

    # --- Return ---

    def return_loan(
        self, loan_id: str, returner_id: str, notes: str | None = None
    ) -> LoanRecord:
        """Close an ACTIVE or OVERDUE loan and put the copy back.

        Raises:
            NotFoundError: loan or returning user missing.
            ConflictError: loan already RETURNED, or a lost race.
        """
        logger.info("Attempting to return book for loan ID: %s", loan_id)

        self.run_with_retries(
            "return", partial(self._return_once, loan_id, returner_id, notes)
        )
        loan = self._require_loan(loan_id)

        logger.info("Successfully returned book for loan ID: %s", loan_id)
        return loan

    def _return_once(self, loan_id: str, returner_id: str, notes: str | None) -> None:
        with transaction(self._conn, immediate=True):
            loan = self._require_loan(loan_id)
            rules.check_returnable(loan)
            self._require_user(returner_id)

            book = self._require_book(loan.book_id)
            if book.available_copies < book.total_copies:
                self.catalog.increment_available(book)
            else:
                logger.warning(
                    "Book %s already has all %d copies on the shelf; not incrementing",
                    book.id,
                    book.total_copies,
                )
            self.directory.decrement_issued_count(loan.user_id)

            self.loans.mark_returned(
                loan,
                returner_id=returner_id,
                returned_at=self._clock.now(),
                notes=_clean_notes(notes),
            )

    # --- Renew ---

    def renew(
        self, loan_id: str, new_due_date: date, notes: str | None = None
    ) -> LoanRecord:
        """Extend an ACTIVE loan's due date and count the renewal.

        Raises:
            NotFoundError: loan missing.
            ConflictError: loan OVERDUE or RETURNED, or a lost race.
            RejectedError: new due date earlier than the current one.
        """
        logger.info("Attempting to renew book for loan ID: %s", loan_id)

        self.run_with_retries(
            "renew", partial(self._renew_once, loan_id, new_due_date, notes)
        )
        loan = self._require_loan(loan_id)

        logger.info(
            "Successfully renewed loan ID: %s until %s (renewal %d)",
            loan_id,
            loan.due_date,
            loan.renewal_count,
        )
        return loan

    def _renew_once(self, loan_id: str, new_due_date: date, notes: str | None) -> None:
        with transaction(self._conn, immediate=True):
            loan = self._require_loan(loan_id)
            rules.check_renewable(loan, new_due_date)
            self.loans.extend_due_date(loan, due_date=new_due_date, notes=_clean_notes(notes))

    # --- Overdue sweep primitive ---

    def sweep_overdue(self, now: datetime | None = None) -> int:
        """Mark every ACTIVE loan due before now's date as OVERDUE.

        Each loan is transitioned by its own guarded single-row UPDATE, so
        the sweep never holds a lock across loans and never overrides a
        concurrent return. Running it again immediately marks nothing.

        Returns:
            The number of loans transitioned.
        """
        cutoff = (now or self._clock.now()).date()
        logger.info("Starting overdue loan check (due before %s)...", cutoff)

        candidates = self.loans.overdue_candidate_ids(cutoff)
        if not candidates:
            logger.info("No overdue loans found.")
            return 0

        logger.info("Found %d overdue loans. Marking them as OVERDUE...", len(candidates))
        marked = 0
        for loan_id in candidates:
            try:
                changed = self.run_with_retries(
                    "sweep", partial(self.loans.mark_overdue, loan_id, cutoff)
                )
            except ConflictError:
                logger.warning("Could not mark loan %s as OVERDUE; will retry next sweep", loan_id)
                continue
            if changed:
                marked += 1
                logger.debug("Marked loan ID %s as OVERDUE", loan_id)

        logger.info("Successfully marked %d loans as OVERDUE.", marked)
        return marked

    # --- Bulk ---

    def issue_batch(
        self, requests: Iterable[IssueRequest], relaxed: bool = True
    ) -> BatchResult:
        """Issue many loans, collecting per-request failures. See core.bulk."""
        from loanledger.core.bulk import issue_batch

        return issue_batch(self, requests, relaxed=relaxed)

    # --- Queries ---

    def get(self, loan_id: str) -> LoanRecord:
        """Fetch one loan.

        Raises:
            NotFoundError: If no loan has this id.
        """
        return self._require_loan(loan_id)

    def list_all(self, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> Page[LoanRecord]:
        rules.check_page(page, size)
        return self.loans.page(page, size)

    def search(
        self, query: str, page: int = 0, size: int = DEFAULT_PAGE_SIZE
    ) -> Page[LoanRecord]:
        """Match query against book title, accession number, borrower name and employee id."""
        rules.check_page(page, size)
        return self.loans.search(query, page, size)

    def list_by_book(
        self, book_id: str, page: int = 0, size: int = DEFAULT_PAGE_SIZE
    ) -> Page[LoanRecord]:
        rules.check_page(page, size)
        return self.loans.page_by_book(book_id, page, size)

    def list_by_user(
        self, user_id: str, page: int = 0, size: int = DEFAULT_PAGE_SIZE
    ) -> Page[LoanRecord]:
        rules.check_page(page, size)
        return self.loans.page_by_user(user_id, page, size)

    def list_overdue(
        self, page: int = 0, size: int = DEFAULT_PAGE_SIZE
    ) -> Page[LoanRecord]:
        """Open loans past their due date, including ones the sweep hasn't reached yet."""
        rules.check_page(page, size)
        return self.loans.page_overdue(today(self._clock), page, size)

    def list_active(
        self, page: int = 0, size: int = DEFAULT_PAGE_SIZE
    ) -> Page[LoanRecord]:
        rules.check_page(page, size)
        return self.loans.page_by_status(LoanStatus.ACTIVE, page, size)

    def list_active_by_user(
        self, user_id: str, page: int = 0, size: int = DEFAULT_PAGE_SIZE
    ) -> Page[LoanRecord]:
        rules.check_page(page, size)
        return self.loans.page_by_status(LoanStatus.ACTIVE, page, size, user_id=user_id)

    def history(self, user_id: str) -> list[LoanRecord]:
        """All of a user's loans, newest issued first."""
        return self.loans.history(user_id)

    def is_issued_to(self, book_id: str, user_id: str) -> bool:
        """Whether user_id holds an ACTIVE loan of book_id."""
        return self.loans.exists_with_status(book_id, user_id, LoanStatus.ACTIVE)

    def active_count(self, user_id: str) -> int:
        """Number of ACTIVE loans held by user_id.

        Raises:
            NotFoundError: If the user does not exist.
        """
        self._require_user(user_id)
        return self.loans.count_by_user_and_status(user_id, LoanStatus.ACTIVE)
