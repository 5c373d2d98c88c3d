"""MCP server for flat-ledger: household balances and reliability scores as tools."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .exceptions import FlatLedgerError
from .household import load_household
from .ledger.service import LedgerService

logger = logging.getLogger(__name__)

mcp_app = FastMCP("flat-ledger")

# ---------------------------------------------------------------------------
# Session state: one MCP server process = one conversation
# ---------------------------------------------------------------------------

WORKFLOW_INSTRUCTIONS = """\
You are helping a shared flat understand its finances. Follow this workflow:

1. LOAD: Call load_household_file with the path to the household JSON file
   (and a flat id if the file holds more than one flat).

2. BALANCES: Call show_balances to see what every member owes and is owed.

3. SETTLE UP: Call suggest_settlements for the fewest payments that clear
   every balance. Present them as "X pays Y <amount>".

4. RELIABILITY: Call reliability_report to see who pays on time. Be tactful:
   report scores and issues as facts, without judging anyone.

5. BILLS: Call upcoming_bills to see what is due next and what is unpaid.

Positive net balance = the flat owes this member; negative = they owe the flat.\
"""


@dataclass
class SessionState:
    """Holds state between MCP tool calls within a single conversation."""

    service: LedgerService | None = None


_state = SessionState()


def _ensure_service() -> LedgerService:
    """Return the loaded service, loading the configured household file if needed."""
    if _state.service is None:
        settings = load_settings()
        if settings.household_file is None:
            raise FlatLedgerError("No household loaded. Call load_household_file first.")
        _state.service = LedgerService(settings, load_household(settings.household_file))
    return _state.service


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------


@mcp_app.tool()
def load_household_file(path: str, flat_id: str | None = None) -> str:
    """Load a household JSON snapshot for the rest of the conversation.

    Args:
        path: Path to the household JSON file.
        flat_id: Optional flat to scope to when the file holds several flats.
    """
    try:
        settings = load_settings()
        if flat_id:
            settings = settings.model_copy(update={"default_flat_id": flat_id})
        _state.service = LedgerService(settings, load_household(Path(path)))
        household = _state.service.household

        return (
            f"Loaded flat {_state.service.flat_id or '(unknown)'}: "
            f"{len(household.members)} members, {len(household.expenses)} expenses, "
            f"{len(household.bills)} bills, {len(household.bill_payments)} bill payments, "
            f"{len(household.settlements)} settlements."
        )
    except FlatLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def show_balances() -> str:
    """Show every member's owed, receivable and net balance."""
    try:
        service = _ensure_service()
        balances = service.member_balances()
        if not balances:
            return "No members in this household."

        lines = ["Balances (largest debtor first):"]
        for b in balances:
            lines.append(
                f"- {b.member_name}: owes {b.owes:,.2f}, receives {b.receives:,.2f}, "
                f"net {b.net_balance:+,.2f}"
            )
        return "\n".join(lines)
    except FlatLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def suggest_settlements() -> str:
    """Suggest the fewest payments that settle every balance."""
    try:
        service = _ensure_service()
        debts = service.simplified_debts()
        if not debts:
            return "Everyone is settled up."

        name = service.household.member_name
        lines = [f"Settle-up plan ({len(debts)} payments):"]
        for d in debts:
            lines.append(f"- {name(d.from_member_id)} pays {name(d.to_member_id)} {d.amount:,.2f}")
        return "\n".join(lines)
    except FlatLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def reliability_report(as_of: str | None = None) -> str:
    """Report each member's payment reliability score.

    Args:
        as_of: Optional reference date (YYYY-MM-DD); defaults to today.
    """
    try:
        reference = datetime.strptime(as_of, "%Y-%m-%d").date() if as_of else None
    except ValueError:
        return f"Error: Invalid date '{as_of}', use YYYY-MM-DD."

    try:
        service = _ensure_service()
        scores = service.reliability_scores(as_of=reference)
        if not scores:
            return "No active members in this household."

        lines = ["Reliability scores:"]
        for s in scores:
            lines.append(
                f"- {s.member_name}: {s.score}/100 {s.status.label} "
                f"({s.health_indicator.label}); on time {s.on_time_payments}, "
                f"late {s.late_payments}, missed {s.missed_payments}, "
                f"longest streak {s.longest_on_time_streak}"
            )
            for issue in s.issues:
                lines.append(f"    * {issue}")
        return "\n".join(lines)
    except FlatLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def upcoming_bills() -> str:
    """List active bills by next due date with their unpaid remainder."""
    try:
        service = _ensure_service()
        upcoming = service.upcoming_bills(date.today())
        if not upcoming:
            return "No active bills."

        lines = ["Upcoming bills:"]
        for item in upcoming:
            lines.append(
                f"- {item.bill.name} ({item.bill.category.label}): due "
                f"{item.next_due_date.isoformat()} in {item.days_until_due} days, "
                f"{item.remaining:,.2f} unpaid"
            )
        return "\n".join(lines)
    except FlatLedgerError as e:
        return f"Error: {e}"


# ---------------------------------------------------------------------------
# MCP Prompt
# ---------------------------------------------------------------------------


@mcp_app.prompt()
def household_review() -> str:
    """Instructions for reviewing a flat's finances."""
    return WORKFLOW_INSTRUCTIONS


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_server():
    """Start the MCP server (stdio transport)."""
    mcp_app.run(transport="stdio")
