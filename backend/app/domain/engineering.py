"""Engineering review rules: required assessments, status roll-up, approval gate.

Pure domain functions -- no DB access, fully deterministic.

The functions work on explicit snapshots. Anything exposing a ``status``
attribute (ORM rows, AssessmentSnapshot) can be passed as an assessment.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from app.domain.complexity import ComplexityFactor


class EngineeringStatus(StrEnum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WAIVED = "waived"


class AssessmentStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AssessmentType(StrEnum):
    TECHNICAL_REVIEW = "technical_review"
    ROUTE_SURVEY = "route_survey"
    PERMIT_CHECK = "permit_check"
    JMP_CREATION = "jmp_creation"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReviewDecision(StrEnum):
    APPROVED = "approved"
    APPROVED_WITH_CONDITIONS = "approved_with_conditions"
    NOT_RECOMMENDED = "not_recommended"
    REJECTED = "rejected"


ROUTE_ASSESSMENT_FACTORS = frozenset({"new_route", "challenging_terrain"})
PERMIT_ASSESSMENT_FACTORS = frozenset({"special_permits"})
JMP_ASSESSMENT_FACTORS = frozenset({"over_length", "over_width", "over_height"})

# Roles allowed to waive engineering review. Matching is exact and case-sensitive.
WAIVER_ROLES = frozenset({"manager", "super_admin", "admin", "owner"})

# Engineering states that satisfy the approval gate.
CLOSED_STATUSES = (EngineeringStatus.COMPLETED, EngineeringStatus.WAIVED)

_RISK_ORDER = (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL)


@dataclass(frozen=True)
class AssessmentSnapshot:
    """Minimal view of an assessment for the roll-up functions."""

    status: str
    risk_level: str | None = None
    additional_cost_estimate: float | None = None


@dataclass
class ApprovalGateResult:
    """Outcome of the engineering approval gate. Never persisted."""

    can_approve: bool
    reason: str | None = None


def determine_required_assessments(factors: Iterable[ComplexityFactor] | None) -> list[AssessmentType]:
    """Assessments to create when a record enters engineering review.

    Args:
        factors: Triggered complexity factors (None or empty is allowed)

    Returns:
        Assessment types in a stable order, technical_review always first

    Rules:
        - technical_review is always required
        - route factors (new_route, challenging_terrain) add route_survey
        - permit factors (special_permits) add permit_check
        - dimension factors (over_length, over_width, over_height) add jmp_creation
        - categories are additive, each type appears once
    """
    codes = {factor.criteria_code for factor in factors or ()}

    required = [AssessmentType.TECHNICAL_REVIEW]
    if codes & ROUTE_ASSESSMENT_FACTORS:
        required.append(AssessmentType.ROUTE_SURVEY)
    if codes & PERMIT_ASSESSMENT_FACTORS:
        required.append(AssessmentType.PERMIT_CHECK)
    if codes & JMP_ASSESSMENT_FACTORS:
        required.append(AssessmentType.JMP_CREATION)
    return required


def _active(assessments: Iterable[Any] | None) -> list[Any]:
    return [a for a in assessments or () if a.status != AssessmentStatus.CANCELLED]


def calculate_engineering_status(assessments: Iterable[Any] | None) -> EngineeringStatus:
    """Roll assessment statuses up into the parent's engineering status.

    Rules:
        - cancelled assessments are ignored
        - any in_progress assessment makes the review in_progress
        - otherwise, all remaining completed makes it completed
        - otherwise (pending or unknown statuses remain) it is pending
        - no remaining assessments at all is pending, never completed
    """
    active = _active(assessments)
    if not active:
        return EngineeringStatus.PENDING

    statuses = [a.status for a in active]
    if AssessmentStatus.IN_PROGRESS in statuses:
        return EngineeringStatus.IN_PROGRESS
    if all(status == AssessmentStatus.COMPLETED for status in statuses):
        return EngineeringStatus.COMPLETED
    return EngineeringStatus.PENDING


def can_approve_pjo(requires_engineering: bool | None, engineering_status: str | None) -> ApprovalGateResult:
    """Engineering part of the approval gate.

    Records that do not require engineering are always approvable. Records
    that do are approvable only once the review is completed or waived.
    """
    if not requires_engineering:
        return ApprovalGateResult(can_approve=True)

    if engineering_status in CLOSED_STATUSES:
        return ApprovalGateResult(can_approve=True)

    current = engineering_status or "not started"
    return ApprovalGateResult(
        can_approve=False,
        reason=f"Engineering review must be completed or waived before approval. Current status: {current}",
    )


def can_waive_engineering_review(role: str | None) -> bool:
    return role in WAIVER_ROLES


def is_review_closed(engineering_status: str | None) -> bool:
    return engineering_status in CLOSED_STATUSES


def can_initialize_review(engineering_status: str | None) -> bool:
    """Review can be opened only on records that never had one."""
    return engineering_status in (None, "", EngineeringStatus.NOT_REQUIRED)


def calculate_total_additional_costs(assessments: Iterable[Any] | None) -> float:
    """Sum of additional cost estimates from completed assessments."""
    return sum(
        a.additional_cost_estimate or 0
        for a in assessments or ()
        if a.status == AssessmentStatus.COMPLETED
    )


def get_highest_risk_level(assessments: Iterable[Any] | None) -> RiskLevel | None:
    """Worst risk level reported by completed assessments, or None."""
    levels = [
        RiskLevel(a.risk_level)
        for a in assessments or ()
        if a.status == AssessmentStatus.COMPLETED and a.risk_level in _RISK_ORDER
    ]
    if not levels:
        return None
    return max(levels, key=_RISK_ORDER.index)


def get_assessment_completion_percentage(assessments: Iterable[Any] | None) -> int:
    """Share of non-cancelled assessments that are completed, 0-100."""
    active = _active(assessments)
    if not active:
        return 0
    completed = sum(1 for a in active if a.status == AssessmentStatus.COMPLETED)
    return int(completed * 100 / len(active) + 0.5)
