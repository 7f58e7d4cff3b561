# ABOUTME: Shared Click options for loan ledger CLI commands.
# ABOUTME: Provides reusable decorators for --db, paging flags, and date arguments.

from pathlib import Path

import click

from loanledger.core.ledger import DEFAULT_PAGE_SIZE
from loanledger.db.connection import DEFAULT_DB_PATH

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    envvar="LOANLEDGER_DB",
    show_envvar=True,
    help=f"Path to ledger database (default: {DEFAULT_DB_PATH})",
)

page_option = click.option(
    "--page",
    type=click.IntRange(min=1),
    default=1,
    help="Page number, starting at 1.",
)

size_option = click.option(
    "--size",
    type=click.IntRange(min=1),
    default=DEFAULT_PAGE_SIZE,
    help=f"Loans per page (default {DEFAULT_PAGE_SIZE}).",
)

DATE = click.DateTime(formats=["%Y-%m-%d"])
