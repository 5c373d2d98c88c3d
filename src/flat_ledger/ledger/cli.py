"""CLI commands for household balances, settle-up plans and reliability scores."""

import logging
import sys
from datetime import date, datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from ..config import Settings, load_settings
from ..exceptions import ConfigurationError, FlatLedgerError
from ..household import load_household
from .service import LedgerService
from .ui import (
    balances_table,
    print_issues,
    reliability_table,
    settle_up_table,
    trend_table,
    upcoming_bills_table,
)

app = typer.Typer(
    name="ledger",
    help="Balances, settle-up plans and payment reliability for a shared flat",
)

console = Console()

HOUSEHOLD_FILE = typer.Argument(
    None, help="Household JSON snapshot (defaults to FLAT_LEDGER_HOUSEHOLD_FILE)"
)
FLAT_OPTION = typer.Option(None, "--flat", "-f", help="Flat id to report on")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose output")


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _build_service(
    household_file: Path | None, flat: str | None, verbose: bool = False
) -> tuple[Settings, LedgerService]:
    """Load settings and the household snapshot, scoped to one flat."""
    settings = load_settings()
    if not verbose:
        logging.getLogger().setLevel(settings.log_level)
    if flat:
        settings = settings.model_copy(update={"default_flat_id": flat})

    path = household_file or settings.household_file
    if path is None:
        raise ConfigurationError(
            "No household file given. Pass a path or set FLAT_LEDGER_HOUSEHOLD_FILE."
        )

    return settings, LedgerService(settings, load_household(path))


def _fail(e: Exception, verbose: bool):
    console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
    if verbose:
        raise e
    sys.exit(1)


@app.command()
def balances(
    household_file: Path | None = HOUSEHOLD_FILE,
    flat: str | None = FLAT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show what every member owes and is owed."""
    setup_logging(verbose)

    try:
        _, service = _build_service(household_file, flat, verbose)
        member_balances = service.member_balances()

        if not member_balances:
            console.print("[yellow]No members found.[/yellow]")
            return

        console.print(balances_table(member_balances))
    except FlatLedgerError as e:
        _fail(e, verbose)


@app.command("settle-up")
def settle_up(
    household_file: Path | None = HOUSEHOLD_FILE,
    flat: str | None = FLAT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show the fewest payments that settle every balance."""
    setup_logging(verbose)

    try:
        _, service = _build_service(household_file, flat, verbose)
        debts = service.simplified_debts()

        if not debts:
            console.print("[green]✓ Everyone is settled up.[/green]")
            return

        console.print(settle_up_table(debts, service.household))
        console.print(f"\n[bold]{len(debts)} payments settle the flat.[/bold]")
    except FlatLedgerError as e:
        _fail(e, verbose)


@app.command()
def reliability(
    household_file: Path | None = HOUSEHOLD_FILE,
    flat: str | None = FLAT_OPTION,
    as_of: str | None = typer.Option(
        None, "--as-of", help="Reference date (YYYY-MM-DD), defaults to today"
    ),
    trend: bool = typer.Option(False, "--trend", "-t", help="Show monthly trend"),
    verbose: bool = VERBOSE_OPTION,
):
    """Show payment reliability scores."""
    setup_logging(verbose)

    try:
        reference = datetime.strptime(as_of, "%Y-%m-%d").date() if as_of else date.today()
    except ValueError:
        console.print(f"[bold red]Error:[/bold red] Invalid date '{as_of}', use YYYY-MM-DD")
        sys.exit(1)

    try:
        _, service = _build_service(household_file, flat, verbose)
        scores = service.reliability_scores(as_of=reference)

        if not scores:
            console.print("[yellow]No active members found.[/yellow]")
            return

        console.print(reliability_table(scores))
        print_issues(console, scores)

        if trend:
            for score in scores:
                console.print()
                console.print(trend_table(score))
    except FlatLedgerError as e:
        _fail(e, verbose)


@app.command()
def bills(
    household_file: Path | None = HOUSEHOLD_FILE,
    flat: str | None = FLAT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show active bills by next due date."""
    setup_logging(verbose)

    try:
        _, service = _build_service(household_file, flat, verbose)
        upcoming = service.upcoming_bills()

        if not upcoming:
            console.print("[yellow]No active bills.[/yellow]")
            return

        console.print(upcoming_bills_table(upcoming))
    except FlatLedgerError as e:
        _fail(e, verbose)
