# ABOUTME: The `loanledger user` command group for seeding and inspecting the directory.
# ABOUTME: Provides add and ls subcommands over the users table.

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from loanledger.cli.options import db_option
from loanledger.db.connection import DEFAULT_DB_PATH, open_ledger
from loanledger.db.directory import UserDirectory
from loanledger.db.errors import DuplicateRecordError
from loanledger.db.mapping import UserRecord, new_id

console = Console()


@click.group("user")
def user() -> None:
    """Manage the user directory."""


@user.command("add")
@click.argument("employee_id")
@click.argument("full_name")
@click.option("--id", "user_id", default=None, help="Explicit user id (default: generated).")
@db_option
def user_add(employee_id: str, full_name: str, user_id: str | None, db_path: Path | None) -> None:
    """Register a user."""
    record = UserRecord(id=user_id or new_id(), employee_id=employee_id, full_name=full_name)
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        UserDirectory(conn).add_user(record)
    except DuplicateRecordError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    console.print(f"Added [bold]{escape(full_name)}[/bold] as {record.id}")


@user.command("ls")
@db_option
def user_ls(db_path: Path | None) -> None:
    """List all users with their issued-book counts."""
    conn = open_ledger(db_path or DEFAULT_DB_PATH)
    try:
        records = UserDirectory(conn).list_all()
    finally:
        conn.close()

    if not records:
        console.print("[yellow]No users in the directory.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Employee ID")
    table.add_column("Name", style="bold")
    table.add_column("Issued", justify="right")
    table.add_column("Status")

    for record in records:
        table.add_row(
            record.id,
            escape(record.employee_id),
            escape(record.full_name),
            str(record.issued_count),
            record.status.value,
        )

    console.print(table)
    console.print(f"\n[dim]{len(records)} user(s)[/dim]")
