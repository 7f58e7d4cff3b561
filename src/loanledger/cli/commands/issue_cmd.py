# ABOUTME: The `loanledger issue` command for lending a copy to a user.
# ABOUTME: Runs LoanLedger.issue and reports the new loan or the refusal.

from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from loanledger.cli.options import DATE, db_option
from loanledger.core.errors import LedgerError
from loanledger.core.ledger import LoanLedger
from loanledger.db.connection import DEFAULT_DB_PATH, open_ledger

console = Console()


@click.command("issue")
@click.argument("book_id")
@click.argument("user_id")
@click.option("--by", "issuer_id", required=True, help="Id of the staff user issuing the book.")
@click.option("--issue-date", type=DATE, default=None, help="Issue date (default: today).")
@click.option("--due", "due_date", type=DATE, default=None, help="Due date (default: +14 days).")
@click.option("--notes", default=None, help="Free-text notes for the loan.")
@db_option
def issue(
    book_id: str,
    user_id: str,
    issuer_id: str,
    issue_date: datetime | None,
    due_date: datetime | None,
    notes: str | None,
    db_path: Path | None,
) -> None:
    """Issue a copy of BOOK_ID to USER_ID."""
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        loan = LoanLedger(conn).issue(
            book_id,
            user_id,
            issuer_id,
            issue_date=issue_date.date() if issue_date else None,
            due_date=due_date.date() if due_date else None,
            notes=notes,
        )
    except LedgerError as exc:
        console.print(f"[red]Cannot issue:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    console.print(
        f"Issued [bold]{escape(loan.book_title or loan.book_id)}[/bold] to "
        f"{escape(loan.user_full_name or loan.user_id)}, due {loan.due_date.isoformat()}"
    )
    console.print(f"Loan ID: {loan.id}")
