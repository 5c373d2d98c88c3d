"""CLI for flat-ledger."""

import typer

from .ledger.cli import app as ledger_app
from .mcp_server import run_server

app = typer.Typer(
    name="flat-ledger",
    help="Shared-household balances, settle-up plans and payment reliability",
)

app.add_typer(ledger_app, name="ledger", help="Household ledger reports")


@app.command()
def mcp():
    """Start the MCP server."""
    run_server()


if __name__ == "__main__":
    app()
