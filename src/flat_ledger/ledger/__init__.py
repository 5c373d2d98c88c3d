"""Balance, settle-up and reliability computations for one household."""

from .balances import calculate_member_balances, get_member_balance
from .debts import simplify_debts
from .reliability import ReliabilityPolicy, calculate_reliability_scores

__all__ = [
    "calculate_member_balances",
    "get_member_balance",
    "simplify_debts",
    "ReliabilityPolicy",
    "calculate_reliability_scores",
]
