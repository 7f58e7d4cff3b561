# ABOUTME: The `loanledger return` command for checking a copy back in.
# ABOUTME: Runs LoanLedger.return_loan for an active or overdue loan.

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from loanledger.cli.options import db_option
from loanledger.core.errors import LedgerError
from loanledger.core.ledger import LoanLedger
from loanledger.db.connection import DEFAULT_DB_PATH, open_ledger

console = Console()


@click.command("return")
@click.argument("loan_id")
@click.option("--by", "returner_id", required=True, help="Id of the staff user receiving the book.")
@click.option("--notes", default=None, help="Replaces the loan's notes when given.")
@db_option
def return_command(
    loan_id: str, returner_id: str, notes: str | None, db_path: Path | None
) -> None:
    """Return the book lent under LOAN_ID."""
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        loan = LoanLedger(conn).return_loan(loan_id, returner_id, notes=notes)
    except LedgerError as exc:
        console.print(f"[red]Cannot return:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    console.print(
        f"Returned [bold]{escape(loan.book_title or loan.book_id)}[/bold] "
        f"from {escape(loan.user_full_name or loan.user_id)}"
    )
