"""Debt simplification: turn net balances into a short settle-up plan."""

import logging
from decimal import Decimal

from ..models import MemberBalance, SimplifiedDebt
from ..money import SETTLEMENT_TOLERANCE, is_negligible

logger = logging.getLogger(__name__)


def simplify_debts(
    balances: list[MemberBalance],
    tolerance: Decimal = SETTLEMENT_TOLERANCE,
) -> list[SimplifiedDebt]:
    """
    Compute a near-minimal list of payments that zeroes every balance.

    Greedy two-pointer matching: the largest remaining debtor pays the
    largest remaining creditor as much as either can absorb, and whichever
    side is then settled is dropped. Equal magnitudes keep their input order.

    Args:
        balances: Net balances of one household
        tolerance: Balances within this distance of zero are treated as settled

    Returns:
        Payments to make, each with a positive amount
    """
    creditors = [
        [b.member_id, b.net_balance]
        for b in balances
        if not is_negligible(b.net_balance, tolerance) and b.net_balance > 0
    ]
    debtors = [
        [b.member_id, -b.net_balance]
        for b in balances
        if not is_negligible(b.net_balance, tolerance) and b.net_balance < 0
    ]
    creditors.sort(key=lambda c: c[1], reverse=True)
    debtors.sort(key=lambda d: d[1], reverse=True)

    debts: list[SimplifiedDebt] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        amount = min(creditor[1], debtor[1])

        if amount > 0:
            debts.append(
                SimplifiedDebt(
                    from_member_id=debtor[0], to_member_id=creditor[0], amount=amount
                )
            )

        creditor[1] -= amount
        debtor[1] -= amount

        if is_negligible(creditor[1], tolerance):
            i += 1
        if is_negligible(debtor[1], tolerance):
            j += 1

    logger.debug(
        f"Simplified {len(creditors)} creditors and {len(debtors)} debtors "
        f"into {len(debts)} payments"
    )

    return debts
