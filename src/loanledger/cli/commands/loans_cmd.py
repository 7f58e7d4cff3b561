# ABOUTME: The `loanledger loans` command group for querying the ledger.
# ABOUTME: Provides ls (with book/user/status filters), show, search, and history.

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from loanledger.cli.options import db_option, page_option, size_option
from loanledger.cli.tables import loan_detail, loan_table, page_footer
from loanledger.core.errors import LedgerError
from loanledger.core.ledger import LoanLedger
from loanledger.core.types import Page
from loanledger.db.connection import DEFAULT_DB_PATH, open_ledger
from loanledger.db.mapping import LoanRecord

console = Console()


def _print_page(result: Page[LoanRecord], empty_message: str) -> None:
    if not result.items:
        console.print(f"[yellow]{empty_message}[/yellow]")
        return
    console.print(loan_table(result.items))
    console.print(page_footer(result))


@click.group("loans")
def loans() -> None:
    """Query loans."""


@loans.command("ls")
@click.option("--book", "book_id", default=None, help="Only loans of this book id.")
@click.option("--user", "user_id", default=None, help="Only loans to this user id.")
@click.option("--overdue", is_flag=True, default=False, help="Only open loans past their due date.")
@click.option("--active", is_flag=True, default=False, help="Only ACTIVE loans.")
@page_option
@size_option
@db_option
def loans_ls(
    book_id: str | None,
    user_id: str | None,
    overdue: bool,
    active: bool,
    page: int,
    size: int,
    db_path: Path | None,
) -> None:
    """List loans, newest issued first."""
    selectors = [flag for flag in (book_id, overdue, active) if flag]
    if len(selectors) > 1 or (user_id and (book_id or overdue)):
        raise click.UsageError(
            "Use at most one of --book, --overdue, --active; --user combines only with --active."
        )

    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        ledger = LoanLedger(conn)
        index = page - 1
        if overdue:
            result = ledger.list_overdue(index, size)
        elif active and user_id:
            result = ledger.list_active_by_user(user_id, index, size)
        elif active:
            result = ledger.list_active(index, size)
        elif book_id:
            result = ledger.list_by_book(book_id, index, size)
        elif user_id:
            result = ledger.list_by_user(user_id, index, size)
        else:
            result = ledger.list_all(index, size)
    finally:
        conn.close()

    _print_page(result, "No loans found.")


@loans.command("show")
@click.argument("loan_id")
@db_option
def loans_show(loan_id: str, db_path: Path | None) -> None:
    """Show every field of one loan."""
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        loan = LoanLedger(conn).get(loan_id)
    except LedgerError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    console.print(loan_detail(loan))


@loans.command("search")
@click.argument("query")
@page_option
@size_option
@db_option
def loans_search(query: str, page: int, size: int, db_path: Path | None) -> None:
    """Search loans by book title, accession number, borrower name or employee id."""
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        result = LoanLedger(conn).search(query, page - 1, size)
    finally:
        conn.close()

    _print_page(result, f"No loans match '{escape(query)}'.")


@loans.command("history")
@click.argument("user_id")
@db_option
def loans_history(user_id: str, db_path: Path | None) -> None:
    """Show a user's full borrowing history, newest first."""
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        ledger = LoanLedger(conn)
        records = ledger.history(user_id)
        active = ledger.active_count(user_id) if records else 0
    except LedgerError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    if not records:
        console.print("[yellow]No loans for this user.[/yellow]")
        return

    console.print(loan_table(records))
    console.print(f"\n[dim]{len(records)} loan(s), {active} active[/dim]")
