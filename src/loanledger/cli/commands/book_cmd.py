# ABOUTME: The `loanledger book` command group for seeding and inspecting the catalog.
# ABOUTME: Provides add and ls subcommands over the books table.

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from loanledger.cli.options import db_option
from loanledger.db.catalog import BookCatalog
from loanledger.db.connection import DEFAULT_DB_PATH, open_ledger
from loanledger.db.errors import DuplicateRecordError
from loanledger.db.mapping import BookRecord, new_id

console = Console()


@click.group("book")
def book() -> None:
    """Manage the book catalog."""


@book.command("add")
@click.argument("accession_number")
@click.argument("title")
@click.option("--author", default=None, help="Primary author.")
@click.option(
    "--copies",
    type=click.IntRange(min=0),
    default=1,
    help="Number of physical copies (default 1).",
)
@click.option("--reference-only", is_flag=True, default=False, help="Mark as non-circulating.")
@click.option("--id", "book_id", default=None, help="Explicit book id (default: generated).")
@db_option
def book_add(
    accession_number: str,
    title: str,
    author: str | None,
    copies: int,
    reference_only: bool,
    book_id: str | None,
    db_path: Path | None,
) -> None:
    """Add a book to the catalog."""
    record = BookRecord(
        id=book_id or new_id(),
        accession_number=accession_number,
        title=title,
        author=author,
        total_copies=copies,
        available_copies=copies,
        reference_only=reference_only,
    )
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        BookCatalog(conn).add_book(record)
    except DuplicateRecordError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    console.print(f"Added [bold]{escape(title)}[/bold] as {record.id}")


@book.command("ls")
@db_option
def book_ls(db_path: Path | None) -> None:
    """List all books with their copy counts."""
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        records = BookCatalog(conn).list_all()
    finally:
        conn.close()

    if not records:
        console.print("[yellow]No books in the catalog.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Acc. No.")
    table.add_column("Title", style="bold")
    table.add_column("Copies", justify="right")
    table.add_column("Status")

    for record in records:
        status = record.status.value
        if record.reference_only:
            status += " (ref)"
        table.add_row(
            record.id,
            escape(record.accession_number),
            escape(record.title),
            f"{record.available_copies}/{record.total_copies}",
            status,
        )

    console.print(table)
    console.print(f"\n[dim]{len(records)} book(s)[/dim]")
