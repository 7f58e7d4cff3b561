# ABOUTME: Rich renderables for loans, shared by the loan-listing commands.
# ABOUTME: Builds list tables, a single-loan detail view, and page footers.

from rich.markup import escape
from rich.table import Table

from loanledger.core.types import LoanStatus, Page
from loanledger.db.mapping import LoanRecord

_STATUS_STYLE = {
    LoanStatus.ACTIVE: "green",
    LoanStatus.OVERDUE: "red",
    LoanStatus.RETURNED: "dim",
}


def status_text(status: LoanStatus) -> str:
    style = _STATUS_STYLE[status]
    return f"[{style}]{status.value}[/{style}]"


def loan_table(loans: list[LoanRecord]) -> Table:
    table = Table()
    table.add_column("Loan", style="dim", no_wrap=True)
    table.add_column("Book", style="bold")
    table.add_column("Acc. No.")
    table.add_column("Borrower")
    table.add_column("Issued")
    table.add_column("Due")
    table.add_column("Status")

    for loan in loans:
        table.add_row(
            loan.id[:8],
            escape(loan.book_title) if loan.book_title else "[dim]unknown[/dim]",
            escape(loan.accession_number or ""),
            escape(loan.user_full_name or loan.user_id),
            loan.issue_date.date().isoformat(),
            loan.due_date.isoformat(),
            status_text(loan.status),
        )
    return table


def loan_detail(loan: LoanRecord) -> Table:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    table.add_row("ID", loan.id)
    table.add_row("Book", escape(f"{loan.book_title or 'unknown'} ({loan.book_id})"))
    if loan.accession_number:
        table.add_row("Acc. No.", escape(loan.accession_number))
    borrower = loan.user_full_name or "unknown"
    if loan.employee_id:
        borrower += f" [{loan.employee_id}]"
    table.add_row("Borrower", escape(borrower))
    table.add_row("Status", status_text(loan.status))
    table.add_row("Issued", loan.issue_date.isoformat(sep=" "))
    table.add_row("Due", loan.due_date.isoformat())
    if loan.return_date:
        table.add_row("Returned", loan.return_date.isoformat(sep=" "))
    table.add_row("Renewals", str(loan.renewal_count))
    table.add_row("Issued by", escape(loan.issuer_name or loan.issuer_id))
    if loan.returner_id:
        table.add_row("Returned to", escape(loan.returner_name or loan.returner_id))
    if loan.notes:
        table.add_row("Notes", escape(loan.notes))
    return table


def page_footer(page: Page[LoanRecord]) -> str:
    return (
        f"[dim]Page {page.page + 1} of {max(page.total_pages, 1)} "
        f"({page.total} loan(s))[/dim]"
    )
