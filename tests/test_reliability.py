"""Tests for payment-reliability scoring."""

from datetime import date
from decimal import Decimal

import pytest

from flat_ledger.ledger.reliability import (
    ReliabilityPolicy,
    calculate_reliability_scores,
    health_indicator_for,
    longest_on_time_streak,
    monthly_behavior,
    status_for_score,
)
from flat_ledger.models import (
    Bill,
    BillPayment,
    Expense,
    HealthIndicator,
    Member,
    MemberReliabilityScore,
    PaymentKind,
    PaymentRecord,
    PaymentStatus,
    ReliabilityStatus,
    Settlement,
    SplitType,
)

AS_OF = date(2025, 6, 20)


def make_member(
    id: str, flat_id: str = "flat-1", weight: str = "1", is_active: bool = True
) -> Member:
    return Member(
        id=id, flat_id=flat_id, name=id.upper(), weight=Decimal(weight), is_active=is_active
    )


def make_bill(
    id: str, amount: str, due_day: int, split_type: SplitType = SplitType.EQUAL
) -> Bill:
    return Bill(
        id=id,
        flat_id="flat-1",
        name=f"Bill {id}",
        amount=Decimal(amount),
        due_day=due_day,
        split_type=split_type,
    )


def make_payment(id: str, bill_id: str, paid_by: str, amount: str, paid: date) -> BillPayment:
    return BillPayment(
        id=id,
        bill_id=bill_id,
        flat_id="flat-1",
        paid_by_member_id=paid_by,
        amount=Decimal(amount),
        paid_date=paid,
    )


def make_expense(
    id: str, amount: str, paid_by: str, participants: list[str], on: date
) -> Expense:
    return Expense(
        id=id,
        flat_id="flat-1",
        description=f"Expense {id}",
        amount=Decimal(amount),
        date=on,
        paid_by_member_id=paid_by,
        participant_member_ids=participants,
    )


def make_settlement(id: str, from_id: str, to_id: str, amount: str, on: date) -> Settlement:
    return Settlement(
        id=id,
        flat_id="flat-1",
        from_member_id=from_id,
        to_member_id=to_id,
        amount=Decimal(amount),
        date=on,
    )


def make_record(on: date, status: PaymentStatus) -> PaymentRecord:
    return PaymentRecord(
        date=on,
        kind=PaymentKind.BILL,
        status=status,
        amount=Decimal("10"),
        reference_id=f"r-{on.isoformat()}",
    )


def score_for(
    members: list[Member],
    expenses: list[Expense] | None = None,
    bill_payments: list[BillPayment] | None = None,
    settlements: list[Settlement] | None = None,
    bills: list[Bill] | None = None,
    as_of: date = AS_OF,
    policy: ReliabilityPolicy | None = None,
) -> dict[str, MemberReliabilityScore]:
    scores = calculate_reliability_scores(
        members=members,
        expenses=expenses or [],
        bill_payments=bill_payments or [],
        settlements=settlements or [],
        bills=bills or [],
        flat_id="flat-1",
        as_of=as_of,
        policy=policy,
    )
    return {s.member_id: s for s in scores}


class TestPerfectHistory:
    """A member who always pays on the due date."""

    @pytest.fixture
    def scores(self):
        members = [make_member("m1"), make_member("m2")]
        bills = [make_bill("rent", "1000", due_day=5)]
        payments = [
            make_payment(f"p{i}", "rent", "m1", "1000", date(2024 + (7 + i) // 12, (7 + i) % 12 + 1, 5))
            for i in range(10)
        ]
        return score_for(members, bill_payments=payments, bills=bills)

    def test_excellent(self, scores):
        m1 = scores["m1"]
        assert m1.status == ReliabilityStatus.EXCELLENT
        assert m1.score >= 90
        assert m1.health_indicator == HealthIndicator.ALWAYS_ON_TIME

    def test_counts(self, scores):
        m1 = scores["m1"]
        assert m1.on_time_payments == 10
        assert m1.late_payments == 0
        assert m1.missed_payments == 0
        assert m1.average_delay_days == 0
        assert m1.longest_on_time_streak == 10
        assert m1.issues == []

    def test_history_sorted_by_date(self, scores):
        dates = [r.date for r in scores["m1"].payment_history]
        assert dates == sorted(dates)
        assert dates[0] == date(2024, 8, 5)
        assert dates[-1] == date(2025, 5, 5)

    def test_sorted_descending(self):
        members = [make_member("new"), make_member("payer")]
        bills = [make_bill("rent", "100", due_day=1)]
        payments = [make_payment("p1", "rent", "payer", "100", date(2025, 6, 1))]

        scores = calculate_reliability_scores(
            members, [], payments, [], bills, "flat-1", as_of=AS_OF
        )

        assert [s.member_id for s in scores] == ["payer", "new"]


class TestGracePeriod:
    """Bill payments within three days of the due date are on time."""

    @pytest.mark.parametrize(
        "paid_day, expected_status, expected_delay",
        [
            (10, PaymentStatus.ON_TIME, 0),
            (13, PaymentStatus.ON_TIME, 3),
            (14, PaymentStatus.LATE, 4),
        ],
    )
    def test_boundary(self, paid_day, expected_status, expected_delay):
        members = [make_member("m1")]
        bills = [make_bill("wifi", "50", due_day=10)]
        payments = [make_payment("p1", "wifi", "m1", "50", date(2025, 5, paid_day))]

        record = score_for(members, bill_payments=payments, bills=bills)["m1"].payment_history[0]

        assert record.status == expected_status
        assert record.delay_days == expected_delay

    def test_early_payment_has_no_delay(self):
        members = [make_member("m1")]
        bills = [make_bill("wifi", "50", due_day=25)]
        payments = [make_payment("p1", "wifi", "m1", "50", date(2025, 5, 2))]

        record = score_for(members, bill_payments=payments, bills=bills)["m1"].payment_history[0]

        assert record.status == PaymentStatus.ON_TIME
        assert record.delay_days == 0

    def test_custom_grace_period(self):
        members = [make_member("m1")]
        bills = [make_bill("wifi", "50", due_day=10)]
        payments = [make_payment("p1", "wifi", "m1", "50", date(2025, 5, 11))]
        policy = ReliabilityPolicy(grace_period_days=0)

        score = score_for(members, bill_payments=payments, bills=bills, policy=policy)["m1"]

        assert score.late_payments == 1


class TestNoHistory:
    """Members with no activity get a neutral score."""

    def test_neutral_score(self):
        score = score_for([make_member("m1")])["m1"]

        assert score.score == 75
        assert score.status == ReliabilityStatus.FAIR
        assert score.health_indicator == HealthIndicator.NO_HISTORY
        assert score.payment_history == []

    def test_owing_without_paying_is_still_no_history(self):
        members = [make_member("m1"), make_member("m2")]
        expenses = [make_expense("e1", "200", "m1", ["m1", "m2"], date(2025, 6, 1))]

        score = score_for(members, expenses=expenses)["m2"]

        assert score.score == 75
        assert score.total_owed == Decimal("100")

    def test_monthly_buckets_zero_filled(self):
        score = score_for([make_member("m1")])["m1"]

        assert [m.month for m in score.monthly_behavior] == [
            "2025-01",
            "2025-02",
            "2025-03",
            "2025-04",
            "2025-05",
            "2025-06",
        ]
        assert all(m.on_time == m.late == m.missed == 0 for m in score.monthly_behavior)


class TestSettlements:
    """Settlements count as late and cancel an earlier on-time credit."""

    def test_settlement_takes_back_on_time_credit(self):
        members = [make_member("m1"), make_member("m2")]
        expenses = [
            make_expense("e1", "40", "m1", ["m1", "m2"], date(2025, 5, 1)),
            make_expense("e2", "60", "m1", ["m1", "m2"], date(2025, 5, 8)),
        ]
        settlements = [make_settlement("s1", "m1", "m2", "10", date(2025, 5, 20))]

        score = score_for(members, expenses=expenses, settlements=settlements)["m1"]

        assert score.on_time_payments == 1
        assert score.late_payments == 1
        # 30 + 1/2 * 70, no delay, no streak bonus, nothing owed
        assert score.score == 65
        assert score.status == ReliabilityStatus.FAIR
        assert score.health_indicator == HealthIndicator.OFTEN_LATE
        assert "Settled up 1 time after falling behind" in score.issues
        assert score.total_paid == Decimal("110")

    def test_settlement_without_prior_credit(self):
        """With no on-time credit to take back, the count stays at zero."""
        members = [make_member("m1"), make_member("m2")]
        settlements = [make_settlement("s1", "m1", "m2", "10", date(2025, 5, 20))]

        score = score_for(members, settlements=settlements)["m1"]

        assert score.on_time_payments == 0
        assert score.late_payments == 1
        assert score.score == 30
        assert score.status == ReliabilityStatus.POOR


class TestMissedPayments:
    """Unpaid bill remainders past their due date."""

    def test_missed_share_per_member(self):
        members = [make_member("m1"), make_member("m2")]
        bills = [make_bill("rent", "600", due_day=1)]

        scores = score_for(members, bills=bills)

        for score in scores.values():
            assert score.missed_payments == 1
            missed = score.payment_history[0]
            assert missed.status == PaymentStatus.MISSED
            assert missed.amount == Decimal("300")
            assert missed.date == date(2025, 6, 1)
            assert missed.delay_days == 19
            # 30 + 0 - 2 (missed) - 10 (paid nothing of 300 owed)
            assert score.score == 18
            assert score.status == ReliabilityStatus.POOR
            assert score.health_indicator == HealthIndicator.FREQUENTLY_LATE
            assert any("missed bill share" in issue for issue in score.issues)

    def test_weighted_missed_shares(self):
        members = [make_member("m1", weight="1"), make_member("m2", weight="3")]
        bills = [make_bill("rent", "400", due_day=1, split_type=SplitType.WEIGHTED)]

        scores = score_for(members, bills=bills)

        assert scores["m1"].payment_history[0].amount == Decimal("100")
        assert scores["m2"].payment_history[0].amount == Decimal("300")

    @pytest.mark.parametrize("as_of, missed", [(date(2025, 6, 8), 0), (date(2025, 6, 9), 1)])
    def test_seven_day_threshold(self, as_of, missed):
        members = [make_member("m1")]
        bills = [make_bill("rent", "600", due_day=1)]

        score = score_for(members, bills=bills, as_of=as_of)["m1"]

        assert score.missed_payments == missed

    def test_paid_bill_not_missed(self):
        members = [make_member("m1"), make_member("m2")]
        bills = [make_bill("rent", "600", due_day=1)]
        payments = [make_payment("p1", "rent", "m1", "600", date(2025, 6, 2))]

        scores = score_for(members, bill_payments=payments, bills=bills)

        assert scores["m1"].missed_payments == 0
        assert scores["m2"].missed_payments == 0
        assert scores["m2"].score == 75


class TestScoringFormula:
    """Point adjustments."""

    def test_late_penalty(self):
        members = [make_member("m1")]
        bills = [make_bill("wifi", "100", due_day=1)]
        payments = [
            make_payment("p1", "wifi", "m1", "100", date(2025, 1, 1)),
            make_payment("p2", "wifi", "m1", "100", date(2025, 2, 1)),
            make_payment("p3", "wifi", "m1", "100", date(2025, 3, 1)),
            make_payment("p4", "wifi", "m1", "100", date(2025, 4, 14)),
        ]

        score = score_for(members, bill_payments=payments, bills=bills)["m1"]

        # 30 + 3/4 * 70 - 1/4 * min(20, 13 * 0.5) = 80.875
        assert score.average_delay_days == 13
        assert score.score == 81
        assert score.status == ReliabilityStatus.GOOD
        assert score.health_indicator == HealthIndicator.MOSTLY_ON_TIME
        assert score.longest_on_time_streak == 3
        assert "1 late payment (average 13.0 days late)" in score.issues

    def test_payment_ratio_below_one(self):
        members = [make_member("m1"), make_member("m2")]
        expenses = [make_expense("e1", "200", "m1", ["m1", "m2"], date(2025, 5, 1))]
        bills = [make_bill("wifi", "50", due_day=5)]
        payments = [make_payment("p1", "wifi", "m2", "50", date(2025, 5, 5))]

        score = score_for(members, expenses=expenses, bill_payments=payments, bills=bills)["m2"]

        # 30 + 70 - (1 - 50/100) * 10
        assert score.score == 95
        assert "Paid 50% of the amount owed" in score.issues

    def test_score_clamped_to_100(self):
        members = [make_member("m1"), make_member("m2")]
        expenses = [
            make_expense(f"e{i}", "100", "m1", ["m1", "m2"], date(2025, 1, i + 1))
            for i in range(20)
        ]

        score = score_for(members, expenses=expenses)["m1"]

        assert score.score == 100

    def test_baseline_can_be_disabled(self):
        members = [make_member("m1")]
        expenses = [make_expense("e1", "100", "m1", ["m1"], date(2025, 5, 1))]
        policy = ReliabilityPolicy(history_baseline_points=0)

        score = score_for(members, expenses=expenses, policy=policy)["m1"]

        assert score.score == 70

    @pytest.mark.parametrize(
        "baseline, expected_score, expected_status",
        [
            # 1/2 * 70 - 1/2 * min(20, 10 * 0.5) = 32.5
            (0, 33, ReliabilityStatus.POOR),
            (30, 63, ReliabilityStatus.FAIR),
        ],
    )
    def test_baseline_shifts_mixed_history(self, baseline, expected_score, expected_status):
        members = [make_member("m1")]
        expenses = [make_expense("e1", "100", "m1", ["m1"], date(2025, 5, 1))]
        bills = [make_bill("rent", "100", due_day=1)]
        payments = [make_payment("p1", "rent", "m1", "100", date(2025, 6, 11))]
        policy = ReliabilityPolicy(history_baseline_points=baseline)

        score = score_for(
            members, expenses=expenses, bill_payments=payments, bills=bills, policy=policy
        )["m1"]

        assert score.on_time_payments == 1
        assert score.late_payments == 1
        assert score.score == expected_score
        assert score.status == expected_status


class TestScoping:
    """Only active members of the requested flat are scored."""

    def test_other_flat_and_inactive_excluded(self):
        members = [
            make_member("m1"),
            make_member("gone", is_active=False),
            make_member("elsewhere", flat_id="flat-2"),
        ]

        scores = score_for(members)

        assert set(scores) == {"m1"}

    def test_payment_for_unknown_bill_ignored(self):
        members = [make_member("m1")]
        payments = [make_payment("p1", "deleted", "m1", "50", date(2025, 5, 1))]

        score = score_for(members, bill_payments=payments)["m1"]

        assert score.payment_history == []
        assert score.score == 75


class TestHelpers:
    """Streak, status, health and monthly bucketing helpers."""

    def test_longest_streak_resets_on_late_and_missed(self):
        records = [
            make_record(date(2025, 1, 1), PaymentStatus.ON_TIME),
            make_record(date(2025, 1, 2), PaymentStatus.ON_TIME),
            make_record(date(2025, 1, 3), PaymentStatus.LATE),
            make_record(date(2025, 1, 4), PaymentStatus.ON_TIME),
            make_record(date(2025, 1, 5), PaymentStatus.ON_TIME),
            make_record(date(2025, 1, 6), PaymentStatus.ON_TIME),
            make_record(date(2025, 1, 7), PaymentStatus.MISSED),
        ]

        assert longest_on_time_streak(list(reversed(records))) == 3

    def test_longest_streak_empty(self):
        assert longest_on_time_streak([]) == 0

    @pytest.mark.parametrize(
        "score, status",
        [
            (100, ReliabilityStatus.EXCELLENT),
            (90, ReliabilityStatus.EXCELLENT),
            (89, ReliabilityStatus.GOOD),
            (75, ReliabilityStatus.GOOD),
            (74, ReliabilityStatus.FAIR),
            (60, ReliabilityStatus.FAIR),
            (59, ReliabilityStatus.POOR),
            (0, ReliabilityStatus.POOR),
        ],
    )
    def test_status_thresholds(self, score, status):
        assert status_for_score(score) == status

    def test_good_with_few_late_reads_always_on_time(self):
        assert (
            health_indicator_for(ReliabilityStatus.GOOD, 0.10)
            == HealthIndicator.ALWAYS_ON_TIME
        )
        assert (
            health_indicator_for(ReliabilityStatus.GOOD, 0.11)
            == HealthIndicator.MOSTLY_ON_TIME
        )

    def test_monthly_behavior_counts(self):
        records = [
            make_record(date(2024, 12, 15), PaymentStatus.ON_TIME),
            make_record(date(2025, 3, 1), PaymentStatus.ON_TIME),
            make_record(date(2025, 3, 9), PaymentStatus.ON_TIME),
            make_record(date(2025, 6, 2), PaymentStatus.LATE),
            make_record(date(2025, 6, 3), PaymentStatus.MISSED),
        ]

        buckets = {m.month: m for m in monthly_behavior(records, AS_OF)}

        assert "2024-12" not in buckets
        assert buckets["2025-03"].on_time == 2
        assert buckets["2025-06"].late == 1
        assert buckets["2025-06"].missed == 1

    def test_monthly_behavior_wraps_year(self):
        months = [m.month for m in monthly_behavior([], date(2025, 2, 10))]

        assert months == ["2024-09", "2024-10", "2024-11", "2024-12", "2025-01", "2025-02"]
