"""Pydantic domain models for flat-ledger."""

from datetime import date
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ============================================================================
# Enumerations
# ============================================================================


class SplitType(StrEnum):
    """How a shared cost is divided among active members."""

    EQUAL = "EQUAL"
    WEIGHTED = "WEIGHTED"


class BillCategory(StrEnum):
    """Category of a recurring bill."""

    RENT = "RENT"
    UTILITY = "UTILITY"
    MAID = "MAID"
    FOOD = "FOOD"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return BILL_CATEGORY_LABELS[self]


class ExpenseCategory(StrEnum):
    """Category of a one-off expense."""

    RENT = "RENT"
    UTILITY = "UTILITY"
    FOOD = "FOOD"
    TRAVEL = "TRAVEL"
    GROCERY = "GROCERY"
    SWIGGY = "SWIGGY"
    OLA_UBER = "OLA_UBER"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return EXPENSE_CATEGORY_LABELS[self]


class ReliabilityStatus(StrEnum):
    """Categorical band of a reliability score."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"

    @property
    def label(self) -> str:
        return RELIABILITY_STATUS_LABELS[self]


class HealthIndicator(StrEnum):
    """Secondary classification derived from status and late rate."""

    ALWAYS_ON_TIME = "ALWAYS_ON_TIME"
    MOSTLY_ON_TIME = "MOSTLY_ON_TIME"
    OFTEN_LATE = "OFTEN_LATE"
    FREQUENTLY_LATE = "FREQUENTLY_LATE"
    NO_HISTORY = "NO_HISTORY"

    @property
    def label(self) -> str:
        return HEALTH_INDICATOR_LABELS[self]


class PaymentKind(StrEnum):
    """Source event of a payment timeline record."""

    EXPENSE = "EXPENSE"
    BILL = "BILL"
    SETTLEMENT = "SETTLEMENT"


class PaymentStatus(StrEnum):
    """Punctuality classification of a payment timeline record."""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    MISSED = "MISSED"


BILL_CATEGORY_LABELS: dict[BillCategory, str] = {
    BillCategory.RENT: "Rent",
    BillCategory.UTILITY: "Utility",
    BillCategory.MAID: "Maid",
    BillCategory.FOOD: "Food",
    BillCategory.OTHER: "Other",
}

EXPENSE_CATEGORY_LABELS: dict[ExpenseCategory, str] = {
    ExpenseCategory.RENT: "Rent",
    ExpenseCategory.UTILITY: "Utility",
    ExpenseCategory.FOOD: "Food",
    ExpenseCategory.TRAVEL: "Travel",
    ExpenseCategory.GROCERY: "Grocery",
    ExpenseCategory.SWIGGY: "Swiggy",
    ExpenseCategory.OLA_UBER: "Ola / Uber",
    ExpenseCategory.OTHER: "Other",
}

RELIABILITY_STATUS_LABELS: dict[ReliabilityStatus, str] = {
    ReliabilityStatus.EXCELLENT: "Excellent",
    ReliabilityStatus.GOOD: "Good",
    ReliabilityStatus.FAIR: "Fair",
    ReliabilityStatus.POOR: "Poor",
}

HEALTH_INDICATOR_LABELS: dict[HealthIndicator, str] = {
    HealthIndicator.ALWAYS_ON_TIME: "Always on time",
    HealthIndicator.MOSTLY_ON_TIME: "Mostly on time",
    HealthIndicator.OFTEN_LATE: "Often late",
    HealthIndicator.FREQUENTLY_LATE: "Frequently late",
    HealthIndicator.NO_HISTORY: "No payment history yet",
}


class LedgerModel(BaseModel):
    """Immutable record that accepts camelCase or snake_case keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# Household entities
# ============================================================================


class Flat(LedgerModel):
    """A household: the tenancy boundary scoping every other entity."""

    id: str
    name: str
    city: str | None = None
    billing_cycle_start_day: int = Field(default=1, ge=1, le=28)
    currency: str = "INR"


class Member(LedgerModel):
    """A member of a flat."""

    id: str
    flat_id: str
    name: str
    emoji: str | None = None
    weight: Decimal = Field(default=Decimal("1"), gt=0)  # used by WEIGHTED splits
    is_active: bool = True


class Expense(LedgerModel):
    """A one-off expense paid by one member and shared equally."""

    id: str
    flat_id: str
    bill_id: str | None = None
    description: str = ""
    amount: Decimal
    date: date
    category: ExpenseCategory = ExpenseCategory.OTHER
    paid_by_member_id: str
    split_type: SplitType = SplitType.EQUAL
    participant_member_ids: list[str] = Field(default_factory=list)


class Bill(LedgerModel):
    """A recurring monthly obligation."""

    id: str
    flat_id: str
    name: str
    amount: Decimal
    due_day: int = 1  # 1-31, clamped when computing due dates
    category: BillCategory = BillCategory.OTHER
    split_type: SplitType = SplitType.EQUAL
    payer_member_id: str | None = None
    is_active: bool = True


class BillPayment(LedgerModel):
    """A partial or full payment against one bill."""

    id: str
    bill_id: str
    flat_id: str
    paid_by_member_id: str
    amount: Decimal
    paid_date: date
    note: str | None = None


class Settlement(LedgerModel):
    """A direct peer-to-peer payment not tied to a bill or expense."""

    id: str
    flat_id: str
    from_member_id: str
    to_member_id: str
    amount: Decimal
    date: date
    note: str | None = None


# ============================================================================
# Derived views
# ============================================================================


class MemberBalance(LedgerModel):
    """Net position of one member.

    net_balance = receives - owes (positive = others owe this member).
    """

    member_id: str
    member_name: str
    owes: Decimal = Decimal("0")
    receives: Decimal = Decimal("0")
    net_balance: Decimal = Decimal("0")


class SimplifiedDebt(LedgerModel):
    """One payment in a settle-up plan."""

    from_member_id: str
    to_member_id: str
    amount: Decimal = Field(gt=0)


class PaymentRecord(LedgerModel):
    """One entry of a member's derived payment timeline."""

    date: date
    kind: PaymentKind
    status: PaymentStatus
    amount: Decimal
    delay_days: int = 0
    reference_id: str
    description: str = ""


class MonthlyBehavior(LedgerModel):
    """Punctuality counts for one calendar month (YYYY-MM)."""

    month: str
    on_time: int = 0
    late: int = 0
    missed: int = 0


class MemberReliabilityScore(LedgerModel):
    """Payment-reliability report for one member."""

    member_id: str
    member_name: str
    score: int = Field(ge=0, le=100)
    status: ReliabilityStatus
    health_indicator: HealthIndicator
    total_paid: Decimal = Decimal("0")
    total_owed: Decimal = Decimal("0")
    on_time_payments: int = 0
    late_payments: int = 0
    missed_payments: int = 0
    average_delay_days: float = 0.0
    longest_on_time_streak: int = 0
    payment_history: list[PaymentRecord] = Field(default_factory=list)
    monthly_behavior: list[MonthlyBehavior] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)
