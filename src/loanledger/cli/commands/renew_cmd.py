# ABOUTME: The `loanledger renew` command for extending an active loan.
# ABOUTME: Runs LoanLedger.renew with the new due date.

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


@click.command("renew")
@click.argument("loan_id")
@click.option("--due", "due_date", type=DATE, required=True, help="New due date (YYYY-MM-DD).")
@click.option("--notes", default=None, help="Replaces the loan's notes when given.")
@db_option
def renew(loan_id: str, due_date: datetime, notes: str | None, db_path: Path | None) -> None:
    """Renew LOAN_ID until a new due date."""
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        loan = LoanLedger(conn).renew(loan_id, due_date.date(), notes=notes)
    except LedgerError as exc:
        console.print(f"[red]Cannot renew:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    console.print(
        f"Renewed [bold]{escape(loan.book_title or loan.book_id)}[/bold] until "
        f"{loan.due_date.isoformat()} (renewal {loan.renewal_count})"
    )
