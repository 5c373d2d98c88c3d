"""flat-ledger - Balances, settle-up plans and payment reliability for shared flats."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .household import HouseholdSnapshot, load_household
from .ledger.balances import calculate_member_balances
from .ledger.debts import simplify_debts
from .ledger.reliability import ReliabilityPolicy, calculate_reliability_scores
from .ledger.service import LedgerService
from .models import (
    Bill,
    BillPayment,
    Expense,
    Member,
    MemberBalance,
    MemberReliabilityScore,
    Settlement,
    SimplifiedDebt,
)
from .money import SETTLEMENT_TOLERANCE, is_negligible

__all__ = [
    "Settings",
    "load_settings",
    "HouseholdSnapshot",
    "load_household",
    "calculate_member_balances",
    "simplify_debts",
    "ReliabilityPolicy",
    "calculate_reliability_scores",
    "LedgerService",
    "Bill",
    "BillPayment",
    "Expense",
    "Member",
    "MemberBalance",
    "MemberReliabilityScore",
    "Settlement",
    "SimplifiedDebt",
    "SETTLEMENT_TOLERANCE",
    "is_negligible",
]
