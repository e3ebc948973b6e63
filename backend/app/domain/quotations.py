"""Quotation lifecycle and pricing rules.

Pure domain functions -- no DB access, fully deterministic.

Lifecycle:
    draft -> engineering_review | ready | cancelled
    engineering_review -> ready | cancelled
    ready -> submitted | cancelled
    submitted -> won | lost | cancelled
    won, lost and cancelled are terminal
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any

from app.domain.complexity import MarketClassification
from app.domain.engineering import is_review_closed
from app.domain.money import round_half_up


class QuotationStatus(StrEnum):
    DRAFT = "draft"
    ENGINEERING_REVIEW = "engineering_review"
    READY = "ready"
    SUBMITTED = "submitted"
    WON = "won"
    LOST = "lost"
    CANCELLED = "cancelled"


class LostReasonCategory(StrEnum):
    HARGA_TINGGI = "harga_tinggi"
    KALAH_KOMPETITOR = "kalah_kompetitor"
    TEKNIKAL_ISSUE = "teknikal_issue"
    CUSTOMER_CANCEL = "customer_cancel"
    LAINNYA = "lainnya"


LOST_REASON_LABELS = {
    LostReasonCategory.HARGA_TINGGI.value: "Harga terlalu tinggi",
    LostReasonCategory.KALAH_KOMPETITOR.value: "Kalah kompetitor",
    LostReasonCategory.TEKNIKAL_ISSUE.value: "Teknikal issue",
    LostReasonCategory.CUSTOMER_CANCEL.value: "Customer cancel",
    LostReasonCategory.LAINNYA.value: "Lainnya",
}

VALID_STATUS_TRANSITIONS: dict[str, tuple[QuotationStatus, ...]] = {
    QuotationStatus.DRAFT.value: (
        QuotationStatus.ENGINEERING_REVIEW,
        QuotationStatus.READY,
        QuotationStatus.CANCELLED,
    ),
    QuotationStatus.ENGINEERING_REVIEW.value: (QuotationStatus.READY, QuotationStatus.CANCELLED),
    QuotationStatus.READY.value: (QuotationStatus.SUBMITTED, QuotationStatus.CANCELLED),
    QuotationStatus.SUBMITTED.value: (QuotationStatus.WON, QuotationStatus.LOST, QuotationStatus.CANCELLED),
    QuotationStatus.WON.value: (),
    QuotationStatus.LOST.value: (),
    QuotationStatus.CANCELLED.value: (),
}


@dataclass
class SubmitCheck:
    can_submit: bool
    reason: str | None = None


@dataclass
class QuotationTotals:
    total_revenue: float
    total_cost: float
    total_pursuit_cost: float
    gross_profit: float
    profit_margin: float
    pursuit_cost_per_shipment: float


def generate_quotation_number(existing_count: int, on: date) -> str:
    """``QUO-YYYY-NNNN`` where NNNN is the next sequence in the year."""
    return f"QUO-{on.year}-{existing_count + 1:04d}"


def can_transition_status(current_status: str, target_status: str) -> bool:
    return target_status in VALID_STATUS_TRANSITIONS.get(str(current_status), ())


def get_valid_next_statuses(
    current_status: str,
    requires_engineering: bool | None,
    engineering_status: str | None,
) -> list[QuotationStatus]:
    """Transitions currently open to a quotation.

    Rules:
        - a draft that requires engineering may only enter review (or cancel)
        - a draft that does not require engineering skips review
        - a quotation under review may only become ready once engineering
          is completed or waived
    """
    targets = list(VALID_STATUS_TRANSITIONS.get(str(current_status), ()))

    if current_status == QuotationStatus.DRAFT:
        if requires_engineering:
            return [s for s in targets if s in (QuotationStatus.ENGINEERING_REVIEW, QuotationStatus.CANCELLED)]
        return [s for s in targets if s != QuotationStatus.ENGINEERING_REVIEW]

    if current_status == QuotationStatus.ENGINEERING_REVIEW and not is_review_closed(engineering_status):
        return [s for s in targets if s == QuotationStatus.CANCELLED]

    return targets


def can_mark_ready(
    current_status: str,
    requires_engineering: bool | None,
    engineering_status: str | None,
) -> SubmitCheck:
    """Whether a quotation may move to ``ready``."""
    if QuotationStatus.READY in get_valid_next_statuses(current_status, requires_engineering, engineering_status):
        return SubmitCheck(True)

    if requires_engineering and not is_review_closed(engineering_status):
        return SubmitCheck(
            False,
            f"Engineering review must be completed or waived first. Current status: {engineering_status}",
        )
    return SubmitCheck(False, f"Cannot mark quotation ready from status '{current_status}'")


def can_submit_quotation(
    status: str | None,
    requires_engineering: bool | None,
    engineering_status: str | None,
) -> SubmitCheck:
    """Whether a quotation may be sent to the client."""
    if status != QuotationStatus.READY:
        return SubmitCheck(False, f"Quotation must be in 'ready' status to submit. Current status: {status}")

    if requires_engineering and not is_review_closed(engineering_status):
        return SubmitCheck(
            False,
            "Engineering review must be completed or waived before submission. "
            f"Current status: {engineering_status}",
        )
    return SubmitCheck(True)


def determine_initial_status(classification: MarketClassification) -> QuotationStatus:
    if classification.requires_engineering:
        return QuotationStatus.ENGINEERING_REVIEW
    return QuotationStatus.DRAFT


def calculate_pursuit_cost_per_shipment(total_pursuit_cost: float, shipments: int) -> float:
    if shipments <= 0:
        return total_pursuit_cost
    return round_half_up(total_pursuit_cost / shipments, 2)


def calculate_quotation_totals(
    revenue_subtotals: Iterable[float | None],
    cost_amounts: Iterable[float | None],
    pursuit_amounts: Iterable[float | None],
    estimated_shipments: int = 1,
) -> QuotationTotals:
    """Financial roll-up of a quotation. Margin and per-shipment cost use 2 decimals."""
    total_revenue = sum(v or 0 for v in revenue_subtotals)
    total_cost = sum(v or 0 for v in cost_amounts)
    total_pursuit_cost = sum(v or 0 for v in pursuit_amounts)
    gross_profit = total_revenue - total_cost
    margin = gross_profit / total_revenue * 100 if total_revenue > 0 else 0

    return QuotationTotals(
        total_revenue=total_revenue,
        total_cost=total_cost,
        total_pursuit_cost=total_pursuit_cost,
        gross_profit=gross_profit,
        profit_margin=round_half_up(margin, 2),
        pursuit_cost_per_shipment=calculate_pursuit_cost_per_shipment(total_pursuit_cost, estimated_shipments),
    )


def calculate_pipeline_value(quotations: Iterable[Any]) -> float:
    """Revenue still in play: quotations that are not won, lost or cancelled."""
    closed = (QuotationStatus.WON, QuotationStatus.LOST, QuotationStatus.CANCELLED)
    return sum(q.total_revenue or 0 for q in quotations if q.status not in closed)


def parse_outcome_reason(outcome_reason: str | None) -> tuple[LostReasonCategory, str]:
    """Split a stored ``category|detail`` lost reason.

    Values without a separator are either a bare category or legacy free text,
    which is filed under ``lainnya``.
    """
    if not outcome_reason:
        return LostReasonCategory.LAINNYA, ""

    category, sep, detail = outcome_reason.partition("|")
    if not sep:
        if outcome_reason in LOST_REASON_LABELS:
            return LostReasonCategory(outcome_reason), ""
        return LostReasonCategory.LAINNYA, outcome_reason

    if category in LOST_REASON_LABELS:
        return LostReasonCategory(category), detail
    return LostReasonCategory.LAINNYA, outcome_reason


def format_outcome_reason(category: str, detail: str | None) -> str:
    detail = (detail or "").strip()
    if detail:
        return f"{category}|{detail}"
    return str(category)


def split_amount(amount: float, shipments: int) -> float:
    """Per-shipment share of an amount when a quotation converts into several PJOs."""
    if shipments <= 1:
        return amount
    return amount / shipments
