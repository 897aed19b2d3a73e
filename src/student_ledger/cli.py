"""
Command-line interface for the student ledger engine.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import LedgerConfig, generate_default_config, load_config
from .ledger.service import StudentLedgerService
from .models.ledger import LedgerEntry, ReconciliationResult, VerificationResult
from .parsers.csv_parser import InvoiceCsvParser, TransactionCsvParser
from .repositories.sql import (
    SqlAuditLog,
    SqlDatabase,
    SqlInvoiceRepository,
    SqlSnapshotRepository,
    SqlSubjectRepository,
    SqlTransactionRepository,
)
from .utils.exceptions import LedgerError, TransactionParseError
from .utils.logging_config import parse_level, setup_logging

console = Console()

DATE_TYPE = click.DateTime(formats=["%Y-%m-%d"])


class Context:
    """Per-invocation settings shared by subcommands."""

    def __init__(self, config: LedgerConfig, db_url: str, verbose: bool):
        self.config = config
        self.db_url = db_url
        self.verbose = verbose

    def database(self) -> SqlDatabase:
        return SqlDatabase(self.db_url, echo=self.config.database.echo)

    def service(self, database: SqlDatabase) -> StudentLedgerService:
        return StudentLedgerService(
            transactions=SqlTransactionRepository(database),
            invoices=SqlInvoiceRepository(database),
            snapshots=SqlSnapshotRepository(database),
            audit_log=SqlAuditLog(database),
            subjects=SqlSubjectRepository(database),
            config=self.config,
        )


pass_context = click.make_pass_decorator(Context)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("--db", "db_url", default=None, help="Database URL (overrides database.url)")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], db_url: Optional[str], verbose: bool):
    """Student financial ledger engine."""
    try:
        config = load_config(config_path)
    except LedgerError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    log_level = logging.DEBUG if verbose else parse_level(config.logging.level)
    log_file = Path(config.logging.file) if config.logging.file else None
    setup_logging(log_level, log_file=log_file, log_format=config.logging.format)

    ctx.obj = Context(config, db_url or config.database.url, verbose)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


@main.command("init-db")
@pass_context
def init_db(obj: Context):
    """Create the ledger tables in the configured database."""
    _run(obj, _init_db)


def _init_db(database: SqlDatabase) -> None:
    database.create_tables()
    console.print(f"[green]Database ready: {database.url}[/green]")


@main.command("import-transactions")
@click.argument("csv_file", type=click.Path(exists=True, path_type=Path))
@pass_context
def import_transactions(obj: Context, csv_file: Path):
    """
    Import ledger transactions from a CSV export.

    CSV_FILE: Path to the transaction export
    """

    def action(database: SqlDatabase) -> None:
        transactions = TransactionCsvParser(obj.config).parse_file(csv_file)
        database.create_tables()
        with database.session_scope() as session:
            SqlSubjectRepository(database).ensure(
                (t.subject_id for t in transactions), session=session
            )
            count = SqlTransactionRepository(database).add_many(transactions, session=session)
        console.print(f"[green]Imported {count} transactions from {csv_file.name}[/green]")

    _run(obj, action)


@main.command("import-invoices")
@click.argument("csv_file", type=click.Path(exists=True, path_type=Path))
@pass_context
def import_invoices(obj: Context, csv_file: Path):
    """
    Import fee invoices from a CSV export.

    CSV_FILE: Path to the invoice export
    """

    def action(database: SqlDatabase) -> None:
        invoices = InvoiceCsvParser(obj.config).parse_file(csv_file)
        database.create_tables()
        with database.session_scope() as session:
            SqlSubjectRepository(database).ensure(
                (inv.subject_id for inv in invoices), session=session
            )
            count = SqlInvoiceRepository(database).add_many(invoices, session=session)
        console.print(f"[green]Imported {count} invoices from {csv_file.name}[/green]")

    _run(obj, action)


@main.command()
@click.argument("student_id", type=int)
@click.argument("start", type=DATE_TYPE)
@click.argument("end", type=DATE_TYPE)
@pass_context
def ledger(obj: Context, student_id: int, start: datetime, end: datetime):
    """
    Show a student's ledger for a period.

    START and END are inclusive dates (YYYY-MM-DD).
    """

    def action(database: SqlDatabase) -> None:
        entries = obj.service(database).generate_ledger(student_id, start.date(), end.date())
        _display_ledger(student_id, start.date(), end.date(), entries)

    _run(obj, action)


@main.command("opening-balance")
@click.argument("student_id", type=int)
@click.argument("cutoff", type=DATE_TYPE)
@pass_context
def opening_balance(obj: Context, student_id: int, cutoff: datetime):
    """Show a student's opening balance before CUTOFF."""

    def action(database: SqlDatabase) -> None:
        balance = obj.service(database).calculate_opening_balance(student_id, cutoff.date())
        console.print(
            f"Opening balance for student {student_id} before {cutoff.date()}: "
            f"[bold]{_money(balance)}[/bold]"
        )

    _run(obj, action)


@main.command()
@click.argument("student_id", type=int)
@click.argument("start", type=DATE_TYPE)
@click.argument("end", type=DATE_TYPE)
@pass_context
def reconcile(obj: Context, student_id: int, start: datetime, end: datetime):
    """Reconcile a student's ledger against invoices for a period."""

    def action(database: SqlDatabase) -> None:
        result = obj.service(database).reconcile(student_id, start.date(), end.date())
        _display_reconciliation(result)

    _run(obj, action)


@main.command()
@click.argument("student_id", type=int)
@click.argument("period_start", type=DATE_TYPE)
@pass_context
def verify(obj: Context, student_id: int, period_start: datetime):
    """Verify (or establish) a student's opening balance snapshot."""

    def action(database: SqlDatabase) -> None:
        result = obj.service(database).verify_opening_balance(student_id, period_start.date())
        _display_verification(result)

    _run(obj, action)


@main.command()
@click.argument("student_id", type=int)
@click.argument("start", type=DATE_TYPE)
@click.argument("end", type=DATE_TYPE)
@pass_context
def audit(obj: Context, student_id: int, start: datetime, end: datetime):
    """Run the period-end audit: ledger, reconciliation and verification."""

    def action(database: SqlDatabase) -> None:
        report = obj.service(database).audit_report(student_id, start.date(), end.date())
        _display_ledger(student_id, report.period_start, report.period_end, report.entries)
        _display_reconciliation(report.reconciliation)
        _display_verification(report.verification)
        colour = "green" if report.audit_status.value == "PASSED" else "red"
        console.print(f"\nAudit status: [{colour}]{report.audit_status.value}[/{colour}]")

    _run(obj, action)


def _run(obj: Context, action) -> None:
    """Open the database, run a command body and map failures to exit code 1."""
    database = obj.database()
    try:
        action(database)
    except TransactionParseError as e:
        console.print(f"[red]Error: {e}[/red]")
        for message in e.row_errors[:20]:
            console.print(f"  [yellow]{message}[/yellow]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if obj.verbose:
            console.print_exception()
        sys.exit(1)
    finally:
        database.dispose()


def _money(amount: int) -> str:
    """Format minor units as major units with two decimals."""
    return f"{amount / 100:,.2f}"


def _display_ledger(
    student_id: int, start: date, end: date, entries: list[LedgerEntry]
) -> None:
    table = Table(title=f"Ledger: student {student_id} ({start} to {end})")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Description")
    table.add_column("Debit", justify="right")
    table.add_column("Credit", justify="right")
    table.add_column("Balance", justify="right")

    for entry in entries:
        table.add_row(
            entry.date.isoformat(),
            entry.type,
            (
                entry.description[:40] + "..."
                if len(entry.description) > 40
                else entry.description
            ),
            _money(entry.debit) if entry.debit else "-",
            _money(entry.credit) if entry.credit else "-",
            _money(entry.running_balance),
        )

    console.print(table)
    console.print(f"\nTotal entries: {len(entries)}")


def _display_reconciliation(result: ReconciliationResult) -> None:
    table = Table(title="Reconciliation")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Ledger Balance", _money(result.ledger_balance))
    table.add_row("Invoice Balance", _money(result.invoice_balance))
    table.add_row("Difference", _money(result.difference))
    table.add_row("Status", result.status.value)
    table.add_row("Discrepancies", str(len(result.discrepancies)))

    console.print(table)


def _display_verification(result: VerificationResult) -> None:
    table = Table(title="Opening Balance Verification")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Calculated", _money(result.opening_balance))
    table.add_row(
        "Recorded",
        _money(result.recorded_balance) if result.recorded_balance is not None else "-",
    )
    table.add_row("Status", result.status.value)
    table.add_row("Baseline Established", "yes" if result.baseline_established else "no")

    console.print(table)


if __name__ == "__main__":
    main()
