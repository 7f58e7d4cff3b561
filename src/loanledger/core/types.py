# ABOUTME: Core value types shared by the ledger, sweep, and bulk issuance.
# ABOUTME: Closed status enums, issue requests, batch results, and result pages.

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class LoanStatus(str, Enum):
    """Lifecycle of a loan. RETURNED is terminal."""

    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    RETURNED = "RETURNED"

    @property
    def is_open(self) -> bool:
        """Whether the copy is still out (loan not yet returned)."""
        match self:
            case LoanStatus.ACTIVE | LoanStatus.OVERDUE:
                return True
            case LoanStatus.RETURNED:
                return False


class BookStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    ISSUED = "ISSUED"
    LOST = "LOST"
    DAMAGED = "DAMAGED"
    UNDER_REPAIR = "UNDER_REPAIR"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


@dataclass
class IssueRequest:
    """One issue request, as given to LoanLedger.issue or a bulk batch.

    ref is an optional caller-side identifier (e.g. an import row number)
    reported back in BatchResult.failed_ids; the book id is used otherwise.
    """

    book_id: str
    user_id: str
    issuer_id: str
    issue_date: date | None = None
    due_date: date | None = None
    notes: str | None = None
    ref: str | None = None

    @property
    def identifier(self) -> str:
        return self.ref or self.book_id


@dataclass
class BatchResult:
    """Summary of a bulk issuance run."""

    succeeded: int = 0
    failed_ids: list[str] = field(default_factory=list)
    loan_ids: list[str] = field(default_factory=list)
    error_details: list[tuple[str, str]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_ids)


@dataclass
class Page(Generic[T]):
    """One page of a paginated query. page is zero-based."""

    items: list[T]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return math.ceil(self.total / self.size)

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages
