"""Net balance aggregation across expenses, bills and settlements."""

import logging
from dataclasses import dataclass
from decimal import Decimal

from ..models import Bill, BillPayment, Expense, Member, MemberBalance, Settlement
from ..money import ZERO
from .bills import get_bill_remaining, split_amount

logger = logging.getLogger(__name__)


@dataclass
class _Ledger:
    """Mutable working totals for one member during a single computation."""

    name: str
    owes: Decimal = ZERO
    receives: Decimal = ZERO


def calculate_member_balances(
    expenses: list[Expense],
    bills: list[Bill],
    settlements: list[Settlement],
    bill_payments: list[BillPayment],
    members: list[Member],
) -> list[MemberBalance]:
    """
    Calculate the net balance of every member of one household.

    Steps:
    1. Start every member at owes = receives = 0
    2. Expenses: each non-paying participant owes an equal share to the payer
    3. Active bills: the unpaid remainder is charged to active members
       (equal or weighted split)
    4. Settlements: move the paid amount from the payee's position to the payer's
    5. net_balance = receives - owes

    References to unknown members are ignored. Never raises.

    Args:
        expenses: Expenses of the household
        bills: Bills of the household
        settlements: Settlements of the household
        bill_payments: Payments made against the household's bills
        members: Members of the household (active and inactive)

    Returns:
        Balances sorted ascending by net balance (largest debtor first)
    """
    ledgers: dict[str, _Ledger] = {m.id: _Ledger(name=m.name) for m in members}

    for expense in expenses:
        _apply_expense(ledgers, expense)

    for bill in bills:
        if not bill.is_active:
            continue
        remaining = get_bill_remaining(bill, bill_payments)
        if remaining <= 0:
            continue
        for member_id, share in split_amount(remaining, members, bill.split_type).items():
            ledgers[member_id].owes += share

    for settlement in settlements:
        _apply_settlement(ledgers, settlement)

    balances = [
        MemberBalance(
            member_id=member_id,
            member_name=ledger.name,
            owes=ledger.owes,
            receives=ledger.receives,
            net_balance=ledger.receives - ledger.owes,
        )
        for member_id, ledger in ledgers.items()
    ]

    logger.debug(
        f"Computed balances for {len(balances)} members from {len(expenses)} expenses, "
        f"{len(bills)} bills and {len(settlements)} settlements"
    )

    return sorted(balances, key=lambda b: b.net_balance)


def _apply_expense(ledgers: dict[str, _Ledger], expense: Expense) -> None:
    participant_count = len(expense.participant_member_ids)
    payer = ledgers.get(expense.paid_by_member_id)
    if participant_count == 0 or payer is None:
        return

    share = expense.amount / participant_count
    for participant_id in expense.participant_member_ids:
        if participant_id == expense.paid_by_member_id:
            continue
        participant = ledgers.get(participant_id)
        if participant is None:
            continue
        participant.owes += share
        payer.receives += share


def _apply_settlement(ledgers: dict[str, _Ledger], settlement: Settlement) -> None:
    """
    Apply a settlement so that the payer's net rises and the payee's falls.

    The payee's receives goes down rather than up: adding to it would count
    the same debt twice and a settle-up plan would never clear the balances.

    Neither owes nor receives may go negative: whatever a settlement cannot
    absorb on one side spills over to the other side of the same member.
    """
    payer = ledgers.get(settlement.from_member_id)
    payee = ledgers.get(settlement.to_member_id)
    if payer is None or payee is None:
        return

    amount = settlement.amount

    reduction = min(payer.owes, amount)
    payer.owes -= reduction
    payer.receives += amount - reduction

    reduction = min(payee.receives, amount)
    payee.receives -= reduction
    payee.owes += amount - reduction


def get_member_balance(
    balances: list[MemberBalance], member_id: str
) -> MemberBalance | None:
    """Look up one member's balance, or None if the member is unknown."""
    for balance in balances:
        if balance.member_id == member_id:
            return balance
    return None
