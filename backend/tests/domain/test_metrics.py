"""Tests for dashboard rates, thresholds and money helpers.

Pure functions, no DB access.
"""

import pytest

from app.domain.metrics import (
    HealthColor,
    UtilizationCategory,
    calculate_collection_rate,
    calculate_job_completion_rate,
    calculate_profit,
    calculate_profit_margin,
    calculate_revenue_change_percent,
    calculate_utilization_rate,
    calculate_win_rate,
    get_collection_color,
    get_margin_color,
    get_utilization_category,
)
from app.domain.money import format_idr, round_half_up, safe_percentage

pytestmark = pytest.mark.unit


def test_profit_is_exact_difference():
    assert calculate_profit(1_000_000, 600_000) == 400_000
    assert calculate_profit(0.3, 0.1) == 0.3 - 0.1


def test_profit_margin():
    assert calculate_profit_margin(1_000_000, 600_000) == 40
    assert calculate_profit_margin(1_000_000, 666_666) == 33.3
    assert calculate_profit_margin(0, 500) == 0
    assert calculate_profit_margin(1_000_000, 1_500_000) == -50


def test_revenue_change_percent():
    assert calculate_revenue_change_percent(1_200_000, 1_000_000) == 20
    assert calculate_revenue_change_percent(800_000, 1_000_000) == -20
    assert calculate_revenue_change_percent(500_000, 0) == 0


def test_job_completion_rate():
    assert calculate_job_completion_rate(3, 4) == 75
    assert calculate_job_completion_rate(0, 0) == 0


def test_win_rate():
    assert calculate_win_rate(2, 1) == 66.7
    assert calculate_win_rate(0, 0) == 0
    assert calculate_win_rate(5, 0) == 100


def test_collection_rate():
    assert calculate_collection_rate(850, 1000) == 85
    assert calculate_collection_rate(100, 0) == 0


def test_utilization_rate_guards_non_positive_total():
    assert calculate_utilization_rate(3, 4) == 75
    assert calculate_utilization_rate(3, 0) == 0
    assert calculate_utilization_rate(3, -2) == 0


@pytest.mark.parametrize(
    "rate, category",
    [
        (100, UtilizationCategory.HIGH),
        (75, UtilizationCategory.HIGH),
        (74.9, UtilizationCategory.NORMAL),
        (50, UtilizationCategory.NORMAL),
        (49.9, UtilizationCategory.LOW),
        (25, UtilizationCategory.LOW),
        (24.9, UtilizationCategory.VERY_LOW),
        (0, UtilizationCategory.VERY_LOW),
    ],
)
def test_utilization_category_inclusive_lower_bounds(rate, category):
    assert get_utilization_category(rate) == category


@pytest.mark.parametrize(
    "margin, color",
    [(25, HealthColor.GREEN), (24.9, HealthColor.YELLOW), (15, HealthColor.YELLOW), (14.9, HealthColor.RED), (-5, HealthColor.RED)],
)
def test_margin_color(margin, color):
    assert get_margin_color(margin) == color


@pytest.mark.parametrize(
    "rate, color",
    [(85, HealthColor.GREEN), (84.9, HealthColor.YELLOW), (70, HealthColor.YELLOW), (69.9, HealthColor.RED)],
)
def test_collection_color(rate, color):
    assert get_collection_color(rate) == color


@pytest.mark.parametrize(
    "value, places, expected",
    [(0.25, 1, 0.3), (-0.25, 1, -0.3), (0.35, 1, 0.4), (2.675, 2, 2.68), (66.666, 1, 66.7), (10, 1, 10.0)],
)
def test_round_half_up(value, places, expected):
    assert round_half_up(value, places) == expected


def test_safe_percentage_zero_denominator():
    assert safe_percentage(5, 0) == 0
    assert safe_percentage(1, 3, places=2) == 33.33


@pytest.mark.parametrize(
    "amount, text",
    [(1_500_000, "Rp 1.500.000"), (0, "Rp 0"), (999.5, "Rp 1.000"), (-250_000, "-Rp 250.000")],
)
def test_format_idr(amount, text):
    assert format_idr(amount) == text
