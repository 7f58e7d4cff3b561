# ABOUTME: Precondition and invariant checks for loan ledger transitions.
# ABOUTME: Each check raises the LedgerError subclass a caller should see.

from datetime import date

from loanledger.core import errors
from loanledger.core.errors import ConflictError, RejectedError
from loanledger.core.types import BookStatus, LoanStatus
from loanledger.db.mapping import BookRecord, LoanRecord


def check_issuable(book: BookRecord) -> None:
    """Refuse to issue a book that is reference-only, out of copies, or not AVAILABLE.

    Checked in that order, so a reference-only book is always reported as such.
    """
    if book.reference_only:
        raise RejectedError(
            errors.REFERENCE_ONLY,
            f"Book with accession number {book.accession_number} is for reference "
            "only and cannot be issued.",
        )
    if book.available_copies <= 0:
        raise ConflictError(
            errors.NO_COPIES_AVAILABLE, f"No available copies for book: {book.title}"
        )
    match book.status:
        case BookStatus.AVAILABLE:
            return
        case BookStatus.ISSUED | BookStatus.LOST | BookStatus.DAMAGED | BookStatus.UNDER_REPAIR:
            raise ConflictError(
                errors.BOOK_NOT_AVAILABLE,
                f"Book is not in an available state. Current state: {book.status.value}",
            )


def check_due_date(issue_date: date, due_date: date) -> None:
    if due_date < issue_date:
        raise RejectedError(
            errors.INVALID_DUE_DATE,
            f"Due date {due_date} is before issue date {issue_date}",
        )


def check_returnable(loan: LoanRecord) -> None:
    """Open loans (ACTIVE or OVERDUE) can be returned; RETURNED is terminal."""
    match loan.status:
        case LoanStatus.ACTIVE | LoanStatus.OVERDUE:
            return
        case LoanStatus.RETURNED:
            raise ConflictError(
                errors.NOT_ACTIVE,
                f"Loan {loan.id} is not active and cannot be returned. "
                f"Current status: {loan.status.value}",
            )


def check_renewable(loan: LoanRecord, new_due_date: date) -> None:
    """Only ACTIVE loans renew, and never to an earlier due date.

    An OVERDUE loan has to be returned (and re-issued) instead.
    """
    match loan.status:
        case LoanStatus.ACTIVE:
            pass
        case LoanStatus.OVERDUE | LoanStatus.RETURNED:
            raise ConflictError(
                errors.NOT_ACTIVE,
                f"Loan {loan.id} is not active and cannot be renewed. "
                f"Current status: {loan.status.value}",
            )
    if new_due_date < loan.due_date:
        raise RejectedError(
            errors.INVALID_DUE_DATE,
            f"New due date {new_due_date} is before the current due date {loan.due_date}",
        )


def check_page(page: int, size: int) -> None:
    if page < 0 or size <= 0:
        raise RejectedError(
            errors.INVALID_PAGE, f"Invalid page request: page={page}, size={size}"
        )
