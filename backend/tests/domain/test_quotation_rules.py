"""Tests for quotation lifecycle and pricing rules.

Pure functions, no DB access.
"""

from datetime import date
from types import SimpleNamespace

import pytest

from app.domain.complexity import MarketClassification, MarketType
from app.domain.quotations import (
    LostReasonCategory,
    QuotationStatus,
    calculate_pipeline_value,
    calculate_pursuit_cost_per_shipment,
    calculate_quotation_totals,
    can_mark_ready,
    can_submit_quotation,
    can_transition_status,
    determine_initial_status,
    format_outcome_reason,
    generate_quotation_number,
    get_valid_next_statuses,
    parse_outcome_reason,
    split_amount,
)

pytestmark = pytest.mark.unit


def test_quotation_number_format():
    assert generate_quotation_number(0, date(2026, 1, 5)) == "QUO-2026-0001"
    assert generate_quotation_number(41, date(2026, 7, 1)) == "QUO-2026-0042"


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        ("draft", "ready", True),
        ("draft", "submitted", False),
        ("engineering_review", "ready", True),
        ("ready", "submitted", True),
        ("submitted", "won", True),
        ("submitted", "lost", True),
        ("won", "cancelled", False),
        ("cancelled", "draft", False),
        ("unknown", "ready", False),
    ],
)
def test_status_transitions(current, target, allowed):
    assert can_transition_status(current, target) is allowed


def test_draft_requiring_engineering_must_enter_review():
    assert get_valid_next_statuses("draft", True, "pending") == [
        QuotationStatus.ENGINEERING_REVIEW,
        QuotationStatus.CANCELLED,
    ]


def test_draft_without_engineering_skips_review():
    assert get_valid_next_statuses("draft", False, "not_required") == [
        QuotationStatus.READY,
        QuotationStatus.CANCELLED,
    ]


def test_open_review_only_allows_cancel():
    assert get_valid_next_statuses("engineering_review", True, "in_progress") == [QuotationStatus.CANCELLED]


def test_closed_review_unlocks_ready():
    assert QuotationStatus.READY in get_valid_next_statuses("engineering_review", True, "waived")


def test_mark_ready_blocked_by_engineering():
    result = can_mark_ready("engineering_review", True, "pending")
    assert result.can_submit is False
    assert result.reason == "Engineering review must be completed or waived first. Current status: pending"


def test_mark_ready_from_terminal_status():
    result = can_mark_ready("lost", False, "not_required")
    assert result.can_submit is False
    assert "lost" in result.reason


def test_submit_requires_ready_status():
    result = can_submit_quotation("draft", False, None)
    assert result.reason == "Quotation must be in 'ready' status to submit. Current status: draft"


def test_submit_rechecks_engineering():
    assert can_submit_quotation("ready", True, "in_progress").can_submit is False
    assert can_submit_quotation("ready", True, "completed").can_submit is True
    assert can_submit_quotation("ready", False, None).can_submit is True


def test_initial_status_follows_classification():
    complex_cargo = MarketClassification(MarketType.COMPLEX, 35, [], True)
    simple_cargo = MarketClassification(MarketType.SIMPLE, 10, [], False)

    assert determine_initial_status(complex_cargo) == QuotationStatus.ENGINEERING_REVIEW
    assert determine_initial_status(simple_cargo) == QuotationStatus.DRAFT


def test_pursuit_cost_per_shipment():
    assert calculate_pursuit_cost_per_shipment(1_000_000, 3) == 333_333.33
    assert calculate_pursuit_cost_per_shipment(1_000_000, 0) == 1_000_000


def test_quotation_totals():
    totals = calculate_quotation_totals([10_000_000, None, 2_500_000], [8_000_000], [600_000, 300_000], 3)

    assert totals.total_revenue == 12_500_000
    assert totals.total_cost == 8_000_000
    assert totals.total_pursuit_cost == 900_000
    assert totals.gross_profit == 4_500_000
    assert totals.profit_margin == 36.0
    assert totals.pursuit_cost_per_shipment == 300_000


def test_quotation_totals_without_revenue():
    totals = calculate_quotation_totals([], [1_000], [])
    assert totals.profit_margin == 0
    assert totals.gross_profit == -1_000


def test_pipeline_value_excludes_closed_quotations():
    quotations = [
        SimpleNamespace(status="draft", total_revenue=1_000),
        SimpleNamespace(status="submitted", total_revenue=2_000),
        SimpleNamespace(status="won", total_revenue=4_000),
        SimpleNamespace(status="lost", total_revenue=8_000),
        SimpleNamespace(status="ready", total_revenue=None),
    ]
    assert calculate_pipeline_value(quotations) == 3_000


@pytest.mark.parametrize(
    "stored, expected",
    [
        (None, (LostReasonCategory.LAINNYA, "")),
        ("harga_tinggi|Competitor 15% cheaper", (LostReasonCategory.HARGA_TINGGI, "Competitor 15% cheaper")),
        ("kalah_kompetitor", (LostReasonCategory.KALAH_KOMPETITOR, "")),
        ("Customer went silent", (LostReasonCategory.LAINNYA, "Customer went silent")),
        ("not_a_category|detail", (LostReasonCategory.LAINNYA, "not_a_category|detail")),
    ],
)
def test_parse_outcome_reason(stored, expected):
    assert parse_outcome_reason(stored) == expected


def test_format_outcome_reason():
    assert format_outcome_reason("harga_tinggi", "  too high ") == "harga_tinggi|too high"
    assert format_outcome_reason("customer_cancel", None) == "customer_cancel"


def test_split_amount():
    assert split_amount(900_000, 3) == 300_000
    assert split_amount(900_000, 1) == 900_000
    assert split_amount(900_000, 0) == 900_000
