# ABOUTME: Domain error hierarchy for loan ledger operations.
# ABOUTME: NotFound, Rejected, and Conflict errors carry a machine-readable reason.

# Reasons carried on LedgerError.reason
BOOK = "book"
USER = "user"
LOAN = "loan"
REFERENCE_ONLY = "reference_only"
INVALID_DUE_DATE = "invalid_due_date"
NO_COPIES_AVAILABLE = "no_copies_available"
BOOK_NOT_AVAILABLE = "book_not_available"
NOT_ACTIVE = "not_active"
CONCURRENT_UPDATE = "concurrent_update"
INVALID_PAGE = "invalid_page"


class LedgerError(Exception):
    """Base class for errors a ledger caller is expected to handle.

    Attributes:
        reason: Short machine-readable cause, one of the module constants.
        kind: Error family, mirrored by http_status for an HTTP layer.
    """

    kind = "error"
    http_status = 500

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason


class NotFoundError(LedgerError):
    """A referenced book, user, or loan does not exist."""

    kind = "not_found"
    http_status = 404


class RejectedError(LedgerError):
    """A business rule refuses the request (e.g. reference-only book)."""

    kind = "rejected"
    http_status = 400


class ConflictError(LedgerError):
    """Current state is incompatible with the requested transition."""

    kind = "conflict"
    http_status = 409
