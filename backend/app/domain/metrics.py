"""Dashboard rate and threshold functions.

Pure functions with no external dependencies.

Every rate guards its denominator (zero yields 0, never an error) and is rounded
to one decimal, halves away from zero. Threshold bands use inclusive lower
bounds: a value sitting exactly on a cutoff belongs to the higher band.
"""

from enum import StrEnum

from app.domain.money import safe_percentage


class UtilizationCategory(StrEnum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"
    VERY_LOW = "very_low"


class HealthColor(StrEnum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


MARGIN_GREEN_MIN = 25
MARGIN_YELLOW_MIN = 15
COLLECTION_GREEN_MIN = 85
COLLECTION_YELLOW_MIN = 70


def calculate_profit(revenue: float, cost: float) -> float:
    """Exact difference, no rounding."""
    return revenue - cost


def calculate_profit_margin(revenue: float, cost: float) -> float:
    return safe_percentage(calculate_profit(revenue, cost), revenue)


def calculate_revenue_change_percent(current: float, previous: float) -> float:
    return safe_percentage(current - previous, previous)


def calculate_job_completion_rate(completed: int, total: int) -> float:
    return safe_percentage(completed, total)


def calculate_win_rate(won: int, lost: int) -> float:
    """Won share of decided quotations."""
    return safe_percentage(won, won + lost)


def calculate_collection_rate(paid: float, invoiced: float) -> float:
    return safe_percentage(paid, invoiced)


def calculate_utilization_rate(operating: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return safe_percentage(operating, total)


def get_utilization_category(rate: float) -> UtilizationCategory:
    if rate >= 75:
        return UtilizationCategory.HIGH
    if rate >= 50:
        return UtilizationCategory.NORMAL
    if rate >= 25:
        return UtilizationCategory.LOW
    return UtilizationCategory.VERY_LOW


def get_margin_color(margin: float) -> HealthColor:
    if margin >= MARGIN_GREEN_MIN:
        return HealthColor.GREEN
    if margin >= MARGIN_YELLOW_MIN:
        return HealthColor.YELLOW
    return HealthColor.RED


def get_collection_color(rate: float) -> HealthColor:
    if rate >= COLLECTION_GREEN_MIN:
        return HealthColor.GREEN
    if rate >= COLLECTION_YELLOW_MIN:
        return HealthColor.YELLOW
    return HealthColor.RED
