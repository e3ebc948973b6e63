"""Tests for PJO submission, approval and budget rules.

Pure functions, no DB access.
"""

from datetime import date
from types import SimpleNamespace

import pytest

from app.domain.approval import (
    BudgetWarningLevel,
    CostStatus,
    calculate_cost_status,
    calculate_cost_total,
    calculate_revenue_total,
    calculate_variance,
    can_submit_pjo,
    evaluate_approval,
    generate_pjo_number,
    get_budget_warning_level,
    pjo_number_suffix,
    to_roman_month,
    validate_line_items,
    validate_positive_margin,
    validate_rejection,
)

pytestmark = pytest.mark.unit


def test_revenue_total_prefers_subtotal():
    items = [
        SimpleNamespace(subtotal=1_500_000, quantity=1, unit_price=0),
        SimpleNamespace(subtotal=None, quantity=2, unit_price=250_000),
    ]
    assert calculate_revenue_total(items) == 2_000_000


def test_cost_total_by_kind_treats_missing_as_zero():
    items = [
        SimpleNamespace(estimated_amount=400_000, actual_amount=420_000),
        SimpleNamespace(estimated_amount=100_000, actual_amount=None),
    ]
    assert calculate_cost_total(items) == 500_000
    assert calculate_cost_total(items, "actual") == 420_000


def test_line_items_required():
    assert validate_line_items(0, 3).error == "Cannot submit: at least one revenue item is required"
    assert validate_line_items(2, 0).error == "Cannot submit: at least one cost item is required"
    assert validate_line_items(1, 1).valid is True


def test_margin_must_be_positive():
    result = validate_positive_margin(1_000_000, 1_200_000)

    assert result.valid is False
    assert result.error == (
        "Cannot submit: Estimated cost (Rp 1.200.000) exceeds or equals revenue (Rp 1.000.000). "
        "Current margin: -20.00%"
    )


def test_break_even_is_rejected():
    assert validate_positive_margin(500_000, 500_000).valid is False


def test_zero_revenue_margin_message_does_not_divide():
    result = validate_positive_margin(0, 0)
    assert result.valid is False
    assert result.error.endswith("Current margin: 0.00%")


def test_submit_requires_draft():
    result = can_submit_pjo("approved", 1, 1, 2_000_000, 1_000_000)
    assert result.valid is False
    assert "Only draft PJOs" in result.error


def test_submit_checks_items_before_margin():
    assert "revenue item" in can_submit_pjo("draft", 0, 0, 0, 0).error


def test_submit_valid_draft():
    assert can_submit_pjo("draft", 2, 3, 2_000_000, 1_500_000).valid is True


def test_approval_requires_pending_status():
    result = evaluate_approval("draft", False, "not_required")
    assert result.can_approve is False
    assert "pending approval" in result.reason


def test_approval_delegates_to_engineering_gate():
    assert evaluate_approval("pending_approval", True, "in_progress").can_approve is False
    assert evaluate_approval("pending_approval", True, "waived").can_approve is True
    assert evaluate_approval("pending_approval", False, "pending").can_approve is True


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_rejection_requires_reason(reason):
    assert validate_rejection("pending_approval", reason).error == "Rejection reason is required"


def test_rejection_requires_pending_status():
    assert validate_rejection("approved", "Too expensive").valid is False
    assert validate_rejection("pending_approval", "Too expensive").valid is True


def test_variance():
    assert calculate_variance(1_000_000, 1_100_000) == (100_000, 10.0)
    assert calculate_variance(0, 500) == (500, 0.0)


@pytest.mark.parametrize(
    "estimated, actual, status",
    [
        (1_000_000, 800_000, CostStatus.CONFIRMED),
        (1_000_000, 900_000, CostStatus.CONFIRMED),
        (1_000_000, 900_001, CostStatus.AT_RISK),
        (1_000_000, 1_000_000, CostStatus.AT_RISK),
        (1_000_000, 1_000_001, CostStatus.EXCEEDED),
    ],
)
def test_cost_status_bands(estimated, actual, status):
    assert calculate_cost_status(estimated, actual).status == status


def test_cost_status_variance_pct_two_decimals():
    result = calculate_cost_status(300_000, 310_000)
    assert result.variance == 10_000
    assert result.variance_pct == 3.33


@pytest.mark.parametrize(
    "actual, level",
    [(850_000, BudgetWarningLevel.SAFE), (900_000, BudgetWarningLevel.WARNING), (1_000_001, BudgetWarningLevel.EXCEEDED)],
)
def test_budget_warning_level(actual, level):
    assert get_budget_warning_level(1_000_000, actual) == level


def test_roman_months():
    assert [to_roman_month(m) for m in (1, 4, 9, 12)] == ["I", "IV", "IX", "XII"]
    with pytest.raises(ValueError):
        to_roman_month(13)


def test_pjo_number_format():
    assert generate_pjo_number(7, date(2026, 3, 14)) == "0007/CARGO/III/2026"
    assert generate_pjo_number(7, date(2026, 3, 14)).endswith(pjo_number_suffix(date(2026, 3, 1)))
