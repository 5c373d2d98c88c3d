"""Rich rendering for balances, settle-up plans and reliability scores."""

from decimal import Decimal

from rich.console import Console
from rich.table import Table

from ..household import HouseholdSnapshot
from ..models import MemberBalance, MemberReliabilityScore, ReliabilityStatus, SimplifiedDebt
from ..money import is_negligible
from .service import UpcomingBill

STATUS_STYLES: dict[ReliabilityStatus, str] = {
    ReliabilityStatus.EXCELLENT: "green",
    ReliabilityStatus.GOOD: "blue",
    ReliabilityStatus.FAIR: "yellow",
    ReliabilityStatus.POOR: "red",
}


def format_money(amount: Decimal, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (850.20)
    Positive amounts have spaces:      850.20
    """
    abs_amount = abs(amount)
    if amount < 0 and not is_negligible(amount):
        if use_color:
            return f"([red]{abs_amount:,.2f}[/red])"
        return f"({abs_amount:,.2f})"
    if use_color:
        return f" [green]{abs_amount:,.2f}[/green] "
    return f" {abs_amount:,.2f} "


def balances_table(balances: list[MemberBalance]) -> Table:
    """Table of member balances."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Owes", justify="right")
    table.add_column("Receives", justify="right")
    table.add_column("Net", justify="right")

    for balance in balances:
        table.add_row(
            balance.member_name,
            format_money(balance.owes, use_color=False),
            format_money(balance.receives, use_color=False),
            format_money(balance.net_balance),
        )
    return table


def settle_up_table(debts: list[SimplifiedDebt], household: HouseholdSnapshot) -> Table:
    """Table of payments in a settle-up plan."""
    table = Table(title="Settle Up", show_header=True, header_style="bold magenta")
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right")

    for debt in debts:
        table.add_row(
            household.member_name(debt.from_member_id),
            household.member_name(debt.to_member_id),
            format_money(debt.amount, use_color=False),
        )
    return table


def reliability_table(scores: list[MemberReliabilityScore]) -> Table:
    """Table of reliability scores."""
    table = Table(title="Payment Reliability", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    table.add_column("On time", justify="right")
    table.add_column("Late", justify="right")
    table.add_column("Missed", justify="right")
    table.add_column("Avg delay", justify="right", style="dim")
    table.add_column("Streak", justify="right", style="dim")

    for score in scores:
        style = STATUS_STYLES[score.status]
        table.add_row(
            score.member_name,
            f"[{style}]{score.score}[/{style}]",
            f"[{style}]{score.status.label}[/{style}] [dim]{score.health_indicator.label}[/dim]",
            str(score.on_time_payments),
            str(score.late_payments),
            str(score.missed_payments),
            f"{score.average_delay_days:.1f}d",
            str(score.longest_on_time_streak),
        )
    return table


def trend_table(score: MemberReliabilityScore) -> Table:
    """Month-by-month punctuality for one member."""
    table = Table(title=f"{score.member_name}: last {len(score.monthly_behavior)} months")
    table.add_column("Month", style="dim")
    table.add_column("On time", justify="right", style="green")
    table.add_column("Late", justify="right", style="yellow")
    table.add_column("Missed", justify="right", style="red")

    for month in score.monthly_behavior:
        table.add_row(month.month, str(month.on_time), str(month.late), str(month.missed))
    return table


def upcoming_bills_table(upcoming: list[UpcomingBill]) -> Table:
    """Table of active bills by next due date."""
    table = Table(title="Upcoming Bills", show_header=True, header_style="bold magenta")
    table.add_column("Bill", style="cyan")
    table.add_column("Category", style="dim")
    table.add_column("Due", justify="right")
    table.add_column("In", justify="right")
    table.add_column("Remaining", justify="right")

    for item in upcoming:
        table.add_row(
            item.bill.name,
            item.bill.category.label,
            item.next_due_date.strftime("%d %b %Y"),
            f"{item.days_until_due}d",
            format_money(item.remaining, use_color=False),
        )
    return table


def print_issues(console: Console, scores: list[MemberReliabilityScore]) -> None:
    """Print per-member reliability findings."""
    for score in scores:
        if not score.issues:
            continue
        console.print(f"\n[bold]{score.member_name}[/bold]")
        for issue in score.issues:
            console.print(f"  • {issue}")
