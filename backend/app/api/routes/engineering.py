"""Engineering review API routes.

Reviews hang off either a quotation or a PJO, addressed as
/engineering/{quotations|pjos}/{id}/...; single assessments are addressed
directly by id.
"""

from fastapi import APIRouter, Depends

from app.core.auth import CurrentUser, require_auth
from app.db.base import get_session_factory
from app.schemas.engineering import (
    AddAssessmentRequest,
    AssessmentResponse,
    CompleteAssessmentRequest,
    CompleteReviewRequest,
    EngineeringSummaryResponse,
    InitializeReviewRequest,
    WaiveReviewRequest,
)
from app.services.engineering_service import EngineeringService, ParentKind

router = APIRouter()


@router.post("/assessments/{assessment_id}/start", response_model=AssessmentResponse)
async def start_assessment(assessment_id: str, user: CurrentUser = Depends(require_auth)):
    service = EngineeringService(get_session_factory())
    return await service.start_assessment(assessment_id, user)


@router.post("/assessments/{assessment_id}/complete", response_model=AssessmentResponse)
async def complete_assessment(
    assessment_id: str,
    request: CompleteAssessmentRequest,
    user: CurrentUser = Depends(require_auth),
):
    """Record findings and close an assessment.

    Raises:
        HTTPException(404): Assessment not found
        HTTPException(409): Assessment already completed or cancelled
        HTTPException(422): Findings or recommendations empty
    """
    service = EngineeringService(get_session_factory())
    return await service.complete_assessment(assessment_id, request, user)


@router.post("/assessments/{assessment_id}/cancel", response_model=AssessmentResponse)
async def cancel_assessment(assessment_id: str, user: CurrentUser = Depends(require_auth)):
    service = EngineeringService(get_session_factory())
    return await service.cancel_assessment(assessment_id, user)


@router.post("/{kind}/{parent_id}/initialize", response_model=EngineeringSummaryResponse, status_code=201)
async def initialize_review(
    kind: ParentKind,
    parent_id: str,
    request: InitializeReviewRequest,
    user: CurrentUser = Depends(require_auth),
):
    """Open an engineering review and create the required assessments.

    Raises:
        HTTPException(404): Record not found
        HTTPException(409): Review already initialized
    """
    service = EngineeringService(get_session_factory())
    return await service.initialize_review(kind, parent_id, request.assigned_to, user)


@router.get("/{kind}/{parent_id}/assessments", response_model=EngineeringSummaryResponse)
async def get_review(kind: ParentKind, parent_id: str, user: CurrentUser = Depends(require_auth)):
    service = EngineeringService(get_session_factory())
    return await service.get_summary(kind, parent_id)


@router.post("/{kind}/{parent_id}/assessments", response_model=AssessmentResponse, status_code=201)
async def add_assessment(
    kind: ParentKind,
    parent_id: str,
    request: AddAssessmentRequest,
    user: CurrentUser = Depends(require_auth),
):
    service = EngineeringService(get_session_factory())
    return await service.add_assessment(kind, parent_id, request.assessment_type, request.assigned_to, user)


@router.post("/{kind}/{parent_id}/complete", response_model=EngineeringSummaryResponse)
async def complete_review(
    kind: ParentKind,
    parent_id: str,
    request: CompleteReviewRequest,
    user: CurrentUser = Depends(require_auth),
):
    """Close the review with an overall decision and risk level.

    Raises:
        HTTPException(404): Record not found
        HTTPException(409): Review not required, or already waived
        HTTPException(422): Notes empty
    """
    service = EngineeringService(get_session_factory())
    return await service.complete_review(kind, parent_id, request, user)


@router.post("/{kind}/{parent_id}/waive", response_model=EngineeringSummaryResponse)
async def waive_review(
    kind: ParentKind,
    parent_id: str,
    request: WaiveReviewRequest,
    user: CurrentUser = Depends(require_auth),
):
    """Waive the engineering review.

    Raises:
        HTTPException(403): Role may not waive engineering review
        HTTPException(404): Record not found
        HTTPException(409): Review not required, or already completed or waived
        HTTPException(422): Reason empty
    """
    service = EngineeringService(get_session_factory())
    return await service.waive_review(kind, parent_id, request.reason, user)
