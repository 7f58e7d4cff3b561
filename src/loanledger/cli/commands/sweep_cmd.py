# ABOUTME: The `loanledger sweep` command for marking past-due loans OVERDUE.
# ABOUTME: Runs one sweep, or with --watch keeps sweeping on an interval until interrupted.

import logging
from pathlib import Path

import click
from rich.console import Console

from loanledger.cli.options import db_option
from loanledger.core.ledger import LoanLedger
from loanledger.core.sweep import DEFAULT_SWEEP_INTERVAL, OverdueSweeper
from loanledger.db.connection import DEFAULT_DB_PATH, connection_factory, open_ledger

logger = logging.getLogger(__name__)

console = Console()


@click.command("sweep")
@click.option(
    "--watch",
    is_flag=True,
    default=False,
    help="Keep running: sweep now, then every --interval seconds.",
)
@click.option(
    "--interval",
    type=click.FloatRange(min=1.0),
    default=DEFAULT_SWEEP_INTERVAL,
    envvar="LOANLEDGER_SWEEP_INTERVAL",
    show_envvar=True,
    help=f"Seconds between sweeps with --watch (default {DEFAULT_SWEEP_INTERVAL:g}).",
)
@db_option
def sweep(watch: bool, interval: float, db_path: Path | None) -> None:
    """Mark ACTIVE loans past their due date as OVERDUE."""
    path = db_path or DEFAULT_DB_PATH

    if watch:
        sweeper = OverdueSweeper(
            connection_factory(path),
            interval=interval,
            on_sweep=lambda count: console.print(f"Marked {count} loan(s) as OVERDUE."),
        )
        console.print(f"Sweeping every {interval:g}s. Press Ctrl+C to stop.")
        try:
            sweeper.serve()
        except KeyboardInterrupt:
            logger.info("Interrupted; stopping overdue sweeper")
        return

    conn = open_ledger(path)
    try:
        count = LoanLedger(conn).sweep_overdue()
    finally:
        conn.close()

    console.print(f"Marked {count} loan(s) as OVERDUE.")
