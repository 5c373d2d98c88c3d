"""Payment-reliability scoring for household members.

A member's score is derived from a payment timeline rebuilt on every call:

- Expenses the member paid are on-time payments.
- Bill payments are on time within the grace period after the due date in the
  month they were made, and late otherwise.
- Settlements the member sent are late, and cancel one earlier on-time credit.
- Unpaid bill remainders more than ``missed_after_days`` past their last due
  date become one missed payment per active member, for that member's share.

Points (clamped to 0-100, rounded half up):

    baseline + on_time / total * 70
    - late / total * min(20, average_delay_days * 0.5)
    - min(10, missed * 2)
    + min(10, longest_streak - 5)            if longest_streak >= 6
    + min(10, (paid / owed - 1) * 10)        if paid >= owed
    - (1 - paid / owed) * 10                 otherwise

The baseline (``history_baseline_points``, 30 by default) lets a perfect
record reach EXCELLENT. It lifts every banded score by the same amount, so a
member who is on time half the time is FAIR rather than POOR. A policy with
``history_baseline_points=0`` scores with the unshifted formula.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from ..models import (
    Bill,
    BillPayment,
    Expense,
    HealthIndicator,
    Member,
    MemberReliabilityScore,
    MonthlyBehavior,
    PaymentKind,
    PaymentRecord,
    PaymentStatus,
    ReliabilityStatus,
    Settlement,
)
from ..money import ZERO
from .bills import due_date_in_month, get_bill_remaining, get_last_due_date, split_amount

logger = logging.getLogger(__name__)

ON_TIME_POINTS = 70.0
MAX_DELAY_PENALTY = 20.0
DELAY_PENALTY_PER_DAY = 0.5
MISSED_PENALTY_PER_PAYMENT = 2.0
MAX_MISSED_PENALTY = 10.0
STREAK_BONUS_THRESHOLD = 6
MAX_STREAK_BONUS = 10.0
MAX_RATIO_ADJUSTMENT = 10.0

# Late rate up to which a GOOD member still reads as "always on time"
ALWAYS_ON_TIME_LATE_RATE = 0.10


class ReliabilityPolicy(BaseModel):
    """Tunable thresholds for reliability scoring."""

    model_config = ConfigDict(frozen=True)

    grace_period_days: int = 3
    missed_after_days: int = 7
    neutral_score: int = 75
    history_baseline_points: float = 30.0
    trailing_months: int = 6


@dataclass
class _MemberActivity:
    """Working state for one member while the timeline is built."""

    member: Member
    records: list[PaymentRecord] = field(default_factory=list)
    on_time: int = 0
    late: int = 0
    missed: int = 0
    settlements: int = 0
    total_paid: Decimal = ZERO
    total_owed: Decimal = ZERO

    def add(self, record: PaymentRecord) -> None:
        self.records.append(record)
        if record.status == PaymentStatus.ON_TIME:
            self.on_time += 1
        elif record.status == PaymentStatus.LATE:
            self.late += 1
        else:
            self.missed += 1

    @property
    def total(self) -> int:
        return self.on_time + self.late + self.missed


def calculate_reliability_scores(
    members: list[Member],
    expenses: list[Expense],
    bill_payments: list[BillPayment],
    settlements: list[Settlement],
    bills: list[Bill],
    flat_id: str,
    as_of: date | None = None,
    policy: ReliabilityPolicy | None = None,
) -> list[MemberReliabilityScore]:
    """
    Score every active member of a flat on payment punctuality.

    Args:
        members: Members (only active members of ``flat_id`` are scored)
        expenses: Expenses of the flat
        bill_payments: Payments made against the flat's bills
        settlements: Settlements of the flat
        bills: The flat's bill catalogue
        flat_id: Flat being scored
        as_of: Reference date for missed-payment detection and monthly
            buckets (defaults to today)
        policy: Scoring thresholds (defaults to ReliabilityPolicy())

    Returns:
        Scores sorted descending by score
    """
    as_of = as_of or date.today()
    policy = policy or ReliabilityPolicy()

    household = [m for m in members if m.flat_id == flat_id and m.is_active]
    activity = {m.id: _MemberActivity(member=m) for m in household}
    bills_by_id = {b.id: b for b in bills}

    _record_expenses(activity, expenses)
    _record_bill_payments(activity, bill_payments, bills_by_id, policy)
    _record_settlements(activity, settlements)
    _record_missed_bills(activity, household, bills, bill_payments, as_of, policy)

    scores = [_build_score(a, as_of, policy) for a in activity.values()]

    logger.debug(f"Scored {len(scores)} members of flat {flat_id} as of {as_of}")

    return sorted(scores, key=lambda s: s.score, reverse=True)


# ============================================================================
# Timeline construction
# ============================================================================


def _record_expenses(
    activity: dict[str, _MemberActivity], expenses: list[Expense]
) -> None:
    for expense in expenses:
        payer = activity.get(expense.paid_by_member_id)
        if payer:
            payer.total_paid += expense.amount
            # Expenses are recorded when paid, so they are always on time
            payer.add(
                PaymentRecord(
                    date=expense.date,
                    kind=PaymentKind.EXPENSE,
                    status=PaymentStatus.ON_TIME,
                    amount=expense.amount,
                    reference_id=expense.id,
                    description=expense.description,
                )
            )

        participant_count = len(expense.participant_member_ids)
        if participant_count == 0:
            continue
        share = expense.amount / participant_count
        for participant_id in expense.participant_member_ids:
            if participant_id == expense.paid_by_member_id:
                continue
            participant = activity.get(participant_id)
            if participant:
                participant.total_owed += share


def _record_bill_payments(
    activity: dict[str, _MemberActivity],
    bill_payments: list[BillPayment],
    bills_by_id: dict[str, Bill],
    policy: ReliabilityPolicy,
) -> None:
    for payment in bill_payments:
        payer = activity.get(payment.paid_by_member_id)
        bill = bills_by_id.get(payment.bill_id)
        if payer is None or bill is None:
            continue

        due_date = due_date_in_month(
            bill.due_day, payment.paid_date.year, payment.paid_date.month
        )
        delay_days = max(0, (payment.paid_date - due_date).days)
        status = (
            PaymentStatus.ON_TIME
            if delay_days <= policy.grace_period_days
            else PaymentStatus.LATE
        )

        payer.total_paid += payment.amount
        payer.add(
            PaymentRecord(
                date=payment.paid_date,
                kind=PaymentKind.BILL,
                status=status,
                amount=payment.amount,
                delay_days=delay_days,
                reference_id=payment.id,
                description=bill.name,
            )
        )


def _record_settlements(
    activity: dict[str, _MemberActivity], settlements: list[Settlement]
) -> None:
    for settlement in settlements:
        payer = activity.get(settlement.from_member_id)
        if payer is None:
            continue

        payer.total_paid += settlement.amount
        payer.settlements += 1
        payer.add(
            PaymentRecord(
                date=settlement.date,
                kind=PaymentKind.SETTLEMENT,
                status=PaymentStatus.LATE,
                amount=settlement.amount,
                reference_id=settlement.id,
                description=settlement.note or "Settlement",
            )
        )
        # A settlement pays off a share that was not paid when due.
        # No-op when there is no on-time credit left to take back.
        payer.on_time = max(0, payer.on_time - 1)


def _record_missed_bills(
    activity: dict[str, _MemberActivity],
    household: list[Member],
    bills: list[Bill],
    bill_payments: list[BillPayment],
    as_of: date,
    policy: ReliabilityPolicy,
) -> None:
    for bill in bills:
        if not bill.is_active:
            continue
        remaining = get_bill_remaining(bill, bill_payments)
        if remaining <= 0:
            continue

        last_due = get_last_due_date(bill, as_of)
        days_overdue = (as_of - last_due).days
        if days_overdue <= policy.missed_after_days:
            continue

        for member_id, share in split_amount(remaining, household, bill.split_type).items():
            member = activity[member_id]
            member.total_owed += share
            member.add(
                PaymentRecord(
                    date=last_due,
                    kind=PaymentKind.BILL,
                    status=PaymentStatus.MISSED,
                    amount=share,
                    delay_days=days_overdue,
                    reference_id=bill.id,
                    description=bill.name,
                )
            )


# ============================================================================
# Scoring
# ============================================================================


def longest_on_time_streak(records: list[PaymentRecord]) -> int:
    """Longest run of consecutive on-time records in date order."""
    longest = current = 0
    for record in sorted(records, key=lambda r: r.date):
        if record.status == PaymentStatus.ON_TIME:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def status_for_score(score: int) -> ReliabilityStatus:
    """Map a 0-100 score to its status band."""
    if score >= 90:
        return ReliabilityStatus.EXCELLENT
    elif score >= 75:
        return ReliabilityStatus.GOOD
    elif score >= 60:
        return ReliabilityStatus.FAIR
    else:
        return ReliabilityStatus.POOR


def health_indicator_for(status: ReliabilityStatus, late_rate: float) -> HealthIndicator:
    """Derive the health indicator from status and the share of late payments."""
    if status == ReliabilityStatus.EXCELLENT:
        return HealthIndicator.ALWAYS_ON_TIME
    elif status == ReliabilityStatus.GOOD:
        if late_rate <= ALWAYS_ON_TIME_LATE_RATE:
            return HealthIndicator.ALWAYS_ON_TIME
        return HealthIndicator.MOSTLY_ON_TIME
    elif status == ReliabilityStatus.FAIR:
        return HealthIndicator.OFTEN_LATE
    else:
        return HealthIndicator.FREQUENTLY_LATE


def monthly_behavior(
    records: list[PaymentRecord], as_of: date, months: int = 6
) -> list[MonthlyBehavior]:
    """
    Bucket records into the trailing calendar months ending at as_of.

    Returns:
        One entry per month, oldest first, including empty months
    """
    keys = []
    for offset in range(months - 1, -1, -1):
        index = as_of.year * 12 + (as_of.month - 1) - offset
        keys.append(f"{index // 12:04d}-{index % 12 + 1:02d}")

    counts = {key: {"on_time": 0, "late": 0, "missed": 0} for key in keys}
    for record in records:
        bucket = counts.get(record.date.strftime("%Y-%m"))
        if bucket is None:
            continue
        if record.status == PaymentStatus.ON_TIME:
            bucket["on_time"] += 1
        elif record.status == PaymentStatus.LATE:
            bucket["late"] += 1
        else:
            bucket["missed"] += 1

    return [MonthlyBehavior(month=key, **counts[key]) for key in keys]


def _payment_ratio(activity: _MemberActivity) -> float:
    if activity.total_owed <= 0:
        return 1.0
    return float(activity.total_paid / activity.total_owed)


def _average_delay(records: list[PaymentRecord]) -> float:
    delays = [r.delay_days for r in records if r.status == PaymentStatus.LATE]
    return sum(delays) / len(delays) if delays else 0.0


def _score_points(
    activity: _MemberActivity,
    average_delay: float,
    streak: int,
    ratio: float,
    policy: ReliabilityPolicy,
) -> int:
    total = activity.total

    points = policy.history_baseline_points + activity.on_time / total * ON_TIME_POINTS
    points -= (activity.late / total) * min(
        MAX_DELAY_PENALTY, average_delay * DELAY_PENALTY_PER_DAY
    )
    points -= min(MAX_MISSED_PENALTY, activity.missed * MISSED_PENALTY_PER_PAYMENT)

    if streak >= STREAK_BONUS_THRESHOLD:
        points += min(MAX_STREAK_BONUS, streak - (STREAK_BONUS_THRESHOLD - 1))

    if ratio >= 1:
        points += min(MAX_RATIO_ADJUSTMENT, (ratio - 1) * 10)
    else:
        points -= (1 - ratio) * 10

    return math.floor(max(0.0, min(100.0, points)) + 0.5)


def _describe_issues(
    activity: _MemberActivity, average_delay: float, ratio: float
) -> list[str]:
    issues = []
    if activity.late:
        plural = "s" if activity.late != 1 else ""
        if average_delay > 0:
            issues.append(
                f"{activity.late} late payment{plural} "
                f"(average {average_delay:.1f} days late)"
            )
        else:
            issues.append(f"{activity.late} late payment{plural}")
    if activity.missed:
        outstanding = sum(
            (r.amount for r in activity.records if r.status == PaymentStatus.MISSED),
            ZERO,
        )
        plural = "s" if activity.missed != 1 else ""
        issues.append(
            f"{activity.missed} missed bill share{plural} "
            f"({outstanding:,.2f} outstanding)"
        )
    if activity.settlements:
        times = "time" if activity.settlements == 1 else "times"
        issues.append(f"Settled up {activity.settlements} {times} after falling behind")
    if ratio < 1:
        issues.append(f"Paid {ratio:.0%} of the amount owed")
    return issues


def _build_score(
    activity: _MemberActivity, as_of: date, policy: ReliabilityPolicy
) -> MemberReliabilityScore:
    history = sorted(activity.records, key=lambda r: r.date)
    trend = monthly_behavior(history, as_of, policy.trailing_months)

    if activity.total == 0:
        # New members get the neutral score rather than 0
        return MemberReliabilityScore(
            member_id=activity.member.id,
            member_name=activity.member.name,
            score=policy.neutral_score,
            status=ReliabilityStatus.FAIR,
            health_indicator=HealthIndicator.NO_HISTORY,
            total_paid=activity.total_paid,
            total_owed=activity.total_owed,
            payment_history=history,
            monthly_behavior=trend,
        )

    average_delay = _average_delay(history)
    streak = longest_on_time_streak(history)
    ratio = _payment_ratio(activity)

    score = _score_points(activity, average_delay, streak, ratio, policy)
    status = status_for_score(score)
    late_rate = activity.late / activity.total

    return MemberReliabilityScore(
        member_id=activity.member.id,
        member_name=activity.member.name,
        score=score,
        status=status,
        health_indicator=health_indicator_for(status, late_rate),
        total_paid=activity.total_paid,
        total_owed=activity.total_owed,
        on_time_payments=activity.on_time,
        late_payments=activity.late,
        missed_payments=activity.missed,
        average_delay_days=average_delay,
        longest_on_time_streak=streak,
        payment_history=history,
        monthly_behavior=trend,
        issues=_describe_issues(activity, average_delay, ratio),
    )
