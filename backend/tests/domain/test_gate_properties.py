"""Property-based tests for the approval gate, thresholds and rates."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from app.domain.aging import AgingBucket, OverdueSeverity, bucket_for_days, get_overdue_severity
from app.domain.complexity import check_engineering_required
from app.domain.engineering import (
    WAIVER_ROLES,
    AssessmentSnapshot,
    EngineeringStatus,
    calculate_engineering_status,
    can_approve_pjo,
    can_waive_engineering_review,
)
from app.domain.metrics import calculate_profit, calculate_profit_margin

pytestmark = pytest.mark.unit

roles = st.one_of(st.none(), st.text(max_size=20), st.sampled_from(sorted(WAIVER_ROLES)))
engineering_statuses = st.one_of(st.none(), st.text(max_size=15), st.sampled_from([s.value for s in EngineeringStatus]))
assessment_statuses = st.lists(st.sampled_from(["pending", "in_progress", "completed", "cancelled"]), max_size=8)
amounts = st.floats(min_value=-1e12, max_value=1e12, allow_nan=False, allow_infinity=False)


@given(roles)
def test_waiver_is_exact_role_membership(role):
    assert can_waive_engineering_review(role) == (role in ("manager", "super_admin", "admin", "owner"))


@given(st.one_of(st.none(), st.integers(min_value=-1000, max_value=1000)))
def test_engineering_required_iff_score_at_least_twenty(score):
    assert check_engineering_required(score) == (score is not None and score >= 20)


@given(assessment_statuses)
def test_engineering_status_roll_up(statuses):
    result = calculate_engineering_status([AssessmentSnapshot(status=s) for s in statuses])
    live = [s for s in statuses if s != "cancelled"]

    if "in_progress" in live:
        assert result == EngineeringStatus.IN_PROGRESS
    elif live and all(s == "completed" for s in live):
        assert result == EngineeringStatus.COMPLETED
    else:
        assert result == EngineeringStatus.PENDING


@given(engineering_statuses)
def test_no_engineering_required_always_approvable(status):
    assert can_approve_pjo(False, status).can_approve is True


@given(engineering_statuses)
def test_required_engineering_approvable_only_when_closed(status):
    result = can_approve_pjo(True, status)

    assert result.can_approve == (status in ("completed", "waived"))
    if not result.can_approve:
        assert isinstance(result.reason, str) and result.reason


@given(amounts, amounts)
def test_profit_is_exact(revenue, cost):
    assert calculate_profit(revenue, cost) == revenue - cost


@given(amounts)
def test_margin_of_zero_revenue_is_zero(cost):
    assert calculate_profit_margin(0, cost) == 0


@given(st.integers(min_value=0, max_value=10_000))
def test_aging_bands(days):
    bucket = bucket_for_days(days)
    severity = get_overdue_severity(days)

    if days <= 30:
        assert (bucket, severity) == (AgingBucket.CURRENT, OverdueSeverity.WARNING)
    elif days <= 60:
        assert (bucket, severity) == (AgingBucket.DAYS_31_TO_60, OverdueSeverity.ORANGE)
    else:
        assert bucket in (AgingBucket.DAYS_61_TO_90, AgingBucket.OVER_90)
        assert severity == OverdueSeverity.CRITICAL
