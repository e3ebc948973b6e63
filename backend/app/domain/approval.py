"""Proforma job order (PJO) approval workflow rules.

Pure domain functions -- no DB access, fully deterministic.

A PJO may be approved only when all three gate conditions hold:
    1. it carries at least one revenue and one cost line item
    2. estimated revenue exceeds estimated cost (positive margin)
    3. the engineering review, if required, is completed or waived
Conditions 1 and 2 are enforced on submission, condition 3 on approval.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any

from app.domain.engineering import ApprovalGateResult, can_approve_pjo
from app.domain.money import format_idr, round_half_up

_ROMAN_MONTHS = ("I", "II", "III", "IV", "V", "VI", "VII", "VIII", "IX", "X", "XI", "XII")


class PJOStatus(StrEnum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class CostStatus(StrEnum):
    ESTIMATED = "estimated"
    CONFIRMED = "confirmed"
    AT_RISK = "at_risk"
    EXCEEDED = "exceeded"


class BudgetWarningLevel(StrEnum):
    SAFE = "safe"
    WARNING = "warning"
    EXCEEDED = "exceeded"


@dataclass
class ValidationResult:
    valid: bool
    error: str | None = None


@dataclass
class CostStatusResult:
    status: CostStatus
    variance: float
    variance_pct: float


def calculate_revenue_total(items: Iterable[Any]) -> float:
    """Sum of revenue line subtotals (quantity x unit price when unset)."""
    total = 0.0
    for item in items:
        subtotal = getattr(item, "subtotal", None)
        if subtotal is None:
            subtotal = (item.quantity or 0) * (item.unit_price or 0)
        total += subtotal
    return total


def calculate_cost_total(items: Iterable[Any], kind: str = "estimated") -> float:
    """Sum of estimated or actual cost line amounts. Missing amounts count as 0."""
    attr = "actual_amount" if kind == "actual" else "estimated_amount"
    return sum(getattr(item, attr, None) or 0 for item in items)


def validate_line_items(revenue_count: int, cost_count: int) -> ValidationResult:
    if revenue_count < 1:
        return ValidationResult(False, "Cannot submit: at least one revenue item is required")
    if cost_count < 1:
        return ValidationResult(False, "Cannot submit: at least one cost item is required")
    return ValidationResult(True)


def validate_positive_margin(total_revenue: float, total_cost: float) -> ValidationResult:
    """Revenue must strictly exceed cost."""
    if total_cost >= total_revenue:
        margin = (total_revenue - total_cost) / total_revenue * 100 if total_revenue > 0 else 0
        return ValidationResult(
            False,
            f"Cannot submit: Estimated cost ({format_idr(total_cost)}) exceeds or equals revenue "
            f"({format_idr(total_revenue)}). Current margin: {margin:.2f}%",
        )
    return ValidationResult(True)


def can_submit_pjo(
    status: str,
    revenue_count: int,
    cost_count: int,
    total_revenue: float,
    total_cost: float,
) -> ValidationResult:
    """Whether a draft PJO may be sent for approval.

    Rules:
        - only draft PJOs can be submitted
        - line items must be present (one revenue, one cost at minimum)
        - margin must be positive
    """
    if status != PJOStatus.DRAFT:
        return ValidationResult(False, f"Only draft PJOs can be submitted. Current status: {status}")

    items = validate_line_items(revenue_count, cost_count)
    if not items.valid:
        return items

    return validate_positive_margin(total_revenue, total_cost)


def evaluate_approval(
    status: str,
    requires_engineering: bool | None,
    engineering_status: str | None,
) -> ApprovalGateResult:
    """Full approval gate for a PJO snapshot."""
    if status != PJOStatus.PENDING_APPROVAL:
        return ApprovalGateResult(
            can_approve=False,
            reason=f"Only PJOs pending approval can be approved. Current status: {status}",
        )
    return can_approve_pjo(requires_engineering, engineering_status)


def validate_rejection(status: str, reason: str | None) -> ValidationResult:
    if not reason or not reason.strip():
        return ValidationResult(False, "Rejection reason is required")
    if status != PJOStatus.PENDING_APPROVAL:
        return ValidationResult(False, f"Only PJOs pending approval can be rejected. Current status: {status}")
    return ValidationResult(True)


def calculate_variance(estimated: float, actual: float) -> tuple[float, float]:
    """(actual - estimated, variance as a percentage of estimated)."""
    variance = actual - estimated
    variance_pct = variance / estimated * 100 if estimated > 0 else 0.0
    return variance, variance_pct


def calculate_cost_status(estimated: float, actual: float) -> CostStatusResult:
    """Classify an actual cost against its estimate.

    Rules:
        - confirmed when actual <= 90% of estimated
        - at_risk when actual is above 90% but not above estimated
        - exceeded when actual > estimated
    """
    variance, variance_pct = calculate_variance(estimated, actual)
    if actual <= estimated * 0.9:
        status = CostStatus.CONFIRMED
    elif actual <= estimated:
        status = CostStatus.AT_RISK
    else:
        status = CostStatus.EXCEEDED
    return CostStatusResult(status=status, variance=variance, variance_pct=round_half_up(variance_pct, 2))


def get_budget_warning_level(estimated: float, actual: float) -> BudgetWarningLevel:
    if actual > estimated:
        return BudgetWarningLevel.EXCEEDED
    if actual >= estimated * 0.9:
        return BudgetWarningLevel.WARNING
    return BudgetWarningLevel.SAFE


def to_roman_month(month: int) -> str:
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {month}")
    return _ROMAN_MONTHS[month - 1]


def generate_pjo_number(sequence: int, on: date) -> str:
    """PJO numbers look like ``0007/CARGO/III/2026``."""
    return f"{sequence:04d}/CARGO/{to_roman_month(on.month)}/{on.year}"


def pjo_number_suffix(on: date) -> str:
    """Shared tail of every PJO number issued in the month of ``on``."""
    return f"/CARGO/{to_roman_month(on.month)}/{on.year}"
