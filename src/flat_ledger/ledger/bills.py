"""Due-date and split helpers for recurring bills.

Both the balance engine and the reliability scorer go through these helpers,
so a bill's due date and per-member shares are computed the same way in both.
"""

import calendar
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from ..models import Bill, BillPayment, Member, SplitType
from ..money import ZERO


def clamp_due_day(due_day: int) -> int:
    """Clamp a bill's due day to the range 1-31 (0/None fall back to 1)."""
    return max(1, min(31, due_day or 1))


def due_date_in_month(due_day: int, year: int, month: int) -> date:
    """
    Get the due date for a given calendar month.

    Days past the end of a short month are pulled back to its last day,
    so a bill due on the 31st is due on Feb 28 (or 29).
    """
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(clamp_due_day(due_day), last_day))


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def get_next_due_date(bill: Bill, today: date) -> date:
    """
    Calculate the next due date for a bill.

    If the due day has already passed this month, the due date rolls over
    to next month.
    """
    this_month = due_date_in_month(bill.due_day, today.year, today.month)
    if today > this_month:
        year, month = _shift_month(today.year, today.month, 1)
        return due_date_in_month(bill.due_day, year, month)
    return this_month


def get_last_due_date(bill: Bill, today: date) -> date:
    """Get the most recent due date on or before today."""
    this_month = due_date_in_month(bill.due_day, today.year, today.month)
    if today >= this_month:
        return this_month
    year, month = _shift_month(today.year, today.month, -1)
    return due_date_in_month(bill.due_day, year, month)


def get_days_until_due(bill: Bill, today: date) -> int:
    """Days from today until the bill's next due date (0 when due today)."""
    return (get_next_due_date(bill, today) - today).days


def payments_for_bill(bill: Bill, payments: Iterable[BillPayment]) -> list[BillPayment]:
    """Get every payment made against a bill."""
    return [p for p in payments if p.bill_id == bill.id]


def total_paid_for_bill(bill: Bill, payments: Iterable[BillPayment]) -> Decimal:
    """Sum of all payments made against a bill."""
    return sum((p.amount for p in payments_for_bill(bill, payments)), ZERO)


def get_bill_remaining(bill: Bill, payments: Iterable[BillPayment]) -> Decimal:
    """Unpaid portion of a bill: max(0, amount - sum of payments)."""
    return max(ZERO, bill.amount - total_paid_for_bill(bill, payments))


def split_amount(
    amount: Decimal, members: Iterable[Member], split_type: SplitType
) -> dict[str, Decimal]:
    """
    Divide an amount across the active members.

    Args:
        amount: Amount to divide
        members: Household members (inactive members are skipped)
        split_type: EQUAL, or WEIGHTED by member weight

    Returns:
        Mapping of member id to share. Empty when nobody is active.
        A weighted split with zero total weight falls back to equal shares.
    """
    active = [m for m in members if m.is_active]
    if not active:
        return {}

    if split_type == SplitType.WEIGHTED:
        total_weight = sum((m.weight for m in active), ZERO)
        if total_weight > 0:
            return {m.id: amount * m.weight / total_weight for m in active}

    share = amount / len(active)
    return {m.id: share for m in active}
