# ABOUTME: Bulk issuance of loans for data import, with optional relaxed checks.
# ABOUTME: Collects per-request failures and commits successes in chunked batch writes.

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Iterable, Iterator
from datetime import date
from functools import partial
from itertools import islice
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loanledger.core.errors import LedgerError
from loanledger.core.types import BatchResult, IssueRequest
from loanledger.db.connection import savepoint, transaction

if TYPE_CHECKING:
    from loanledger.core.ledger import LoanLedger

logger = logging.getLogger(__name__)

# Requests committed per write transaction.
DEFAULT_BATCH_SIZE = 100

REQUEST_FIELDS = ("book_id", "user_id", "issuer_id", "issue_date", "due_date", "notes", "ref")


def _chunks(items: Iterable[IssueRequest], size: int) -> Iterator[list[IssueRequest]]:
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


def _issue_chunk(
    ledger: LoanLedger, chunk: list[IssueRequest], relaxed: bool
) -> BatchResult:
    """Issue every request in chunk inside one write transaction.

    Each request gets its own savepoint, so a failure undoes only that
    request's writes before moving on.
    """
    result = BatchResult()
    with transaction(ledger.connection, immediate=True):
        for request in chunk:
            try:
                with savepoint(ledger.connection, "bulk_issue"):
                    loan_id = ledger.apply_issue(request, relaxed=relaxed)
            except Exception as exc:
                logger.error(
                    "Failed to issue book ID: %s to user ID: %s. Reason: %s",
                    request.book_id,
                    request.user_id,
                    exc,
                )
                result.failed_ids.append(request.identifier)
                result.error_details.append((request.identifier, str(exc)))
                continue
            result.succeeded += 1
            result.loan_ids.append(loan_id)
    return result


def issue_batch(
    ledger: LoanLedger,
    requests: Iterable[IssueRequest],
    *,
    relaxed: bool = True,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> BatchResult:
    """Issue loans for many requests, continuing past individual failures.

    With relaxed=True (the import default) the reference-only, copy-count,
    book-status and due-date checks are skipped and the imported rows are
    trusted as ground truth. Missing books or users still fail their request.

    Successful requests are written together, batch_size at a time. A chunk
    that cannot get the write lock after retries is reported as failed in
    full rather than aborting the remaining chunks.

    Args:
        ledger: The ledger to issue against.
        requests: Issue requests, processed in order.
        relaxed: Skip availability pre-checks.
        batch_size: Requests per write transaction.

    Returns:
        BatchResult with the success count and failed request identifiers.
    """
    result = BatchResult()

    for chunk in _chunks(requests, batch_size):
        try:
            chunk_result = ledger.run_with_retries(
                "bulk issue", partial(_issue_chunk, ledger, chunk, relaxed)
            )
        except LedgerError as exc:
            logger.error("Failed to write a batch of %d loans: %s", len(chunk), exc)
            for request in chunk:
                result.failed_ids.append(request.identifier)
                result.error_details.append((request.identifier, str(exc)))
            continue

        result.succeeded += chunk_result.succeeded
        result.failed_ids.extend(chunk_result.failed_ids)
        result.loan_ids.extend(chunk_result.loan_ids)
        result.error_details.extend(chunk_result.error_details)

    logger.info(
        "Loan import completed: %d issued, %d failed", result.succeeded, result.failed
    )
    return result


# --- Loading requests from import files ---


def _parse_date(value: Any) -> date | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return date.fromisoformat(str(value).strip())


def _optional(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def request_from_mapping(data: dict[str, Any], line: int) -> IssueRequest:
    """Build an IssueRequest from one import record.

    Raises:
        ValueError: If a required id is missing or a date is malformed.
    """
    missing = [key for key in ("book_id", "user_id", "issuer_id") if not _optional(data.get(key))]
    if missing:
        raise ValueError(f"Record {line}: missing {', '.join(missing)}")
    try:
        issue_date = _parse_date(data.get("issue_date"))
        due_date = _parse_date(data.get("due_date"))
    except ValueError as exc:
        raise ValueError(f"Record {line}: {exc}") from exc

    return IssueRequest(
        book_id=str(data["book_id"]).strip(),
        user_id=str(data["user_id"]).strip(),
        issuer_id=str(data["issuer_id"]).strip(),
        issue_date=issue_date,
        due_date=due_date,
        notes=_optional(data.get("notes")),
        ref=_optional(data.get("ref")),
    )


def load_issue_requests(path: Path) -> list[IssueRequest]:
    """Read issue requests from a .json (array of objects) or .csv file.

    CSV files need a header row naming the REQUEST_FIELDS columns they use.

    Raises:
        ValueError: On an unsupported extension or a malformed record.
    """
    suffix = path.suffix.lower()
    if suffix == ".json":
        with open(path, encoding="utf-8") as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise ValueError(f"{path.name}: expected a JSON array of loan records")
        return [request_from_mapping(record, i) for i, record in enumerate(records, start=1)]

    if suffix == ".csv":
        with open(path, encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            # Header is line 1; records start on line 2.
            return [request_from_mapping(row, i) for i, row in enumerate(reader, start=2)]

    raise ValueError(f"Unsupported import format: {path.suffix or path.name}")
