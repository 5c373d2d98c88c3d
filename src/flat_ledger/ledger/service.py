"""Service layer that runs the ledger computations over one household.

Every call recomputes from the snapshot; nothing is cached between calls.
"""

import logging
from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from ..config import Settings
from ..exceptions import MemberNotFoundError
from ..household import HouseholdSnapshot
from ..models import Bill, MemberBalance, MemberReliabilityScore, SimplifiedDebt
from .balances import calculate_member_balances, get_member_balance
from .bills import get_bill_remaining, get_days_until_due, get_next_due_date
from .debts import simplify_debts
from .reliability import calculate_reliability_scores

logger = logging.getLogger(__name__)


class UpcomingBill(BaseModel):
    """A bill with its next due date and unpaid remainder."""

    bill: Bill
    next_due_date: date
    days_until_due: int
    remaining: Decimal


class HouseholdSummary(BaseModel):
    """All three derived views of a household at one point in time."""

    flat_id: str
    as_of: date
    balances: list[MemberBalance]
    settle_up: list[SimplifiedDebt]
    reliability: list[MemberReliabilityScore]


class LedgerService:
    """Service for computing balances, settle-up plans and reliability scores."""

    def __init__(self, settings: Settings, household: HouseholdSnapshot):
        """
        Initialize the ledger service for a single flat.

        The flat is the configured default, else the snapshot's first flat.
        The snapshot is scoped to it, so no computation mixes households.
        """
        self.settings = settings
        flat_ids = household.flat_ids
        self.flat_id = settings.default_flat_id or (flat_ids[0] if flat_ids else "")
        self.household = household.for_flat(self.flat_id) if self.flat_id else household

    def member_balances(self) -> list[MemberBalance]:
        """Net balance of every member, largest debtor first."""
        h = self.household
        balances = calculate_member_balances(
            expenses=h.expenses,
            bills=h.bills,
            settlements=h.settlements,
            bill_payments=h.bill_payments,
            members=h.members,
        )
        logger.info(f"Computed balances for {len(balances)} members")
        return balances

    def member_balance(self, member_id: str) -> MemberBalance:
        """
        Balance of a single member.

        Raises:
            MemberNotFoundError: If the member is not in the household
        """
        balance = get_member_balance(self.member_balances(), member_id)
        if balance is None:
            raise MemberNotFoundError(member_id)
        return balance

    def simplified_debts(self) -> list[SimplifiedDebt]:
        """Minimal list of payments that settles every balance."""
        debts = simplify_debts(self.member_balances())
        logger.info(
            f"Settle-up plan has {len(debts)} payments "
            f"totalling {sum(d.amount for d in debts):,.2f}"
        )
        return debts

    def reliability_scores(
        self, as_of: date | None = None
    ) -> list[MemberReliabilityScore]:
        """Reliability score of every active member, best first."""
        h = self.household
        scores = calculate_reliability_scores(
            members=h.members,
            expenses=h.expenses,
            bill_payments=h.bill_payments,
            settlements=h.settlements,
            bills=h.bills,
            flat_id=self.flat_id,
            as_of=as_of,
            policy=self.settings.reliability_policy(),
        )
        logger.info(f"Computed reliability scores for {len(scores)} members")
        return scores

    def upcoming_bills(self, today: date | None = None) -> list[UpcomingBill]:
        """Active bills ordered by next due date."""
        today = today or date.today()
        upcoming = [
            UpcomingBill(
                bill=bill,
                next_due_date=get_next_due_date(bill, today),
                days_until_due=get_days_until_due(bill, today),
                remaining=get_bill_remaining(bill, self.household.bill_payments),
            )
            for bill in self.household.bills
            if bill.is_active
        ]
        return sorted(upcoming, key=lambda u: u.next_due_date)

    def household_summary(self, as_of: date | None = None) -> HouseholdSummary:
        """Balances, settle-up plan and reliability scores in one result."""
        as_of = as_of or date.today()
        balances = self.member_balances()
        return HouseholdSummary(
            flat_id=self.flat_id,
            as_of=as_of,
            balances=balances,
            settle_up=simplify_debts(balances),
            reliability=self.reliability_scores(as_of),
        )
