# ABOUTME: The `loanledger import` command for bulk-issuing loans from a file.
# ABOUTME: Reads JSON or CSV issue records and reports issued and failed counts.

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from loanledger.cli.options import db_option
from loanledger.core.bulk import DEFAULT_BATCH_SIZE, issue_batch, load_issue_requests
from loanledger.core.ledger import LoanLedger
from loanledger.db.connection import DEFAULT_DB_PATH, open_ledger

console = Console()


@click.command("import")
@click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--relaxed/--strict",
    default=True,
    help="Relaxed (default) trusts the file and skips availability checks.",
)
@click.option(
    "--batch-size",
    type=click.IntRange(min=1),
    default=DEFAULT_BATCH_SIZE,
    help=f"Loans written per transaction (default {DEFAULT_BATCH_SIZE}).",
)
@db_option
def import_command(file: Path, relaxed: bool, batch_size: int, db_path: Path | None) -> None:
    """Issue loans for every record in FILE (.json or .csv)."""
    try:
        requests = load_issue_requests(file)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Cannot read {escape(file.name)}:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc

    if not requests:
        console.print(f"[yellow]No loan records found in {escape(file.name)}[/yellow]")
        return

    console.print(f"Found [bold]{len(requests)}[/bold] loan record(s)\n")

    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        result = issue_batch(
            LoanLedger(conn), requests, relaxed=relaxed, batch_size=batch_size
        )
    finally:
        conn.close()

    parts = [f"[green]{result.succeeded} issued[/green]"]
    if result.failed:
        parts.append(f"[red]{result.failed} failed[/red]")
    console.print(", ".join(parts))

    if result.error_details:
        console.print(f"\n[yellow]{result.failed} record(s) could not be issued:[/yellow]")
        for identifier, message in result.error_details:
            console.print(f"  [dim]{escape(identifier)}:[/dim] {escape(message)}")
