"""Money helpers shared by every ledger computation."""

from decimal import Decimal

# Balances within this many currency units of zero are considered settled.
SETTLEMENT_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0")


def is_negligible(amount: Decimal, tolerance: Decimal = SETTLEMENT_TOLERANCE) -> bool:
    """
    Check whether an amount is indistinguishable from zero.

    Args:
        amount: Amount to test (sign is ignored)
        tolerance: Largest magnitude still treated as zero

    Returns:
        True if |amount| <= tolerance
    """
    return abs(amount) <= tolerance
