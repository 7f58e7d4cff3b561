# ABOUTME: CLI package for the loan ledger, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.logging import RichHandler

from loanledger.cli.commands import (
    book_cmd,
    import_cmd,
    issue_cmd,
    loans_cmd,
    renew_cmd,
    return_cmd,
    sweep_cmd,
    user_cmd,
)


def configure_logging(verbosity: int) -> None:
    """Send loanledger logs to a Rich handler. -v shows INFO, -vv DEBUG."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    package_logger = logging.getLogger("loanledger")
    package_logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(RichHandler(show_path=False, rich_tracebacks=True))


@click.group()
@click.version_option(package_name="loanledger")
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug).")
def cli(verbose: int) -> None:
    """Loan ledger - issue, return, and renew library books."""
    configure_logging(verbose)


cli.add_command(book_cmd.book)
cli.add_command(user_cmd.user)
cli.add_command(issue_cmd.issue)
cli.add_command(return_cmd.return_command)
cli.add_command(renew_cmd.renew)
cli.add_command(loans_cmd.loans)
cli.add_command(sweep_cmd.sweep)
cli.add_command(import_cmd.import_command)
