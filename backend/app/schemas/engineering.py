"""Engineering review Pydantic schemas for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.domain.engineering import AssessmentType, ReviewDecision, RiskLevel


class InitializeReviewRequest(BaseModel):
    assigned_to: str = Field(..., min_length=1)


class AddAssessmentRequest(BaseModel):
    assessment_type: AssessmentType
    assigned_to: str | None = None


class CompleteAssessmentRequest(BaseModel):
    findings: str
    recommendations: str
    risk_level: RiskLevel
    additional_cost_estimate: float | None = Field(None, ge=0)
    cost_justification: str | None = None


class CompleteReviewRequest(BaseModel):
    overall_risk_level: RiskLevel
    decision: ReviewDecision
    notes: str
    apply_additional_costs: bool = False


class WaiveReviewRequest(BaseModel):
    reason: str


class AssessmentResponse(BaseModel):
    id: str
    assessment_type: str
    status: str
    assigned_to: str | None = None
    findings: str | None = None
    recommendations: str | None = None
    risk_level: str | None = None
    additional_cost_estimate: float | None = None
    cost_justification: str | None = None
    completed_by: str | None = None
    completed_at: datetime | None = None


class EngineeringSummaryResponse(BaseModel):
    """Engineering review state of a quotation or PJO."""

    parent_kind: str
    parent_id: str
    requires_engineering: bool
    engineering_status: str
    completion_percentage: int = Field(..., ge=0, le=100)
    highest_risk_level: str | None = None
    total_additional_costs: float = 0
    waived_reason: str | None = None
    assessments: list[AssessmentResponse] = Field(default_factory=list)
