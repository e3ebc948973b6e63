"""EngineeringService: engineering review lifecycle for quotations and PJOs."""

import uuid
from dataclasses import asdict
from datetime import UTC, datetime
from enum import StrEnum

import structlog
from fastapi import HTTPException
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.auth import CurrentUser
from app.db.models.complexity_criterion import ComplexityCriterion as CriterionRow
from app.db.models.engineering_assessment import EngineeringAssessment
from app.db.models.pjo import PJOCostItem, ProformaJobOrder
from app.db.models.quotation import Quotation, QuotationCostItem
from app.domain.approval import validate_line_items, validate_positive_margin
from app.domain.complexity import (
    CargoProfile,
    ComplexityCriterion,
    ComplexityFactor,
    MarketClassification,
    calculate_market_classification,
)
from app.domain.engineering import (
    AssessmentStatus,
    AssessmentType,
    EngineeringStatus,
    calculate_engineering_status,
    calculate_total_additional_costs,
    can_initialize_review,
    can_waive_engineering_review,
    determine_required_assessments,
    get_assessment_completion_percentage,
    get_highest_risk_level,
    is_review_closed,
)
from app.domain.quotations import QuotationStatus
from app.schemas.engineering import (
    AssessmentResponse,
    CompleteAssessmentRequest,
    CompleteReviewRequest,
    EngineeringSummaryResponse,
)
from app.services.activity import record_activity
from app.services.totals import apply_pjo_totals, apply_quotation_totals

logger = structlog.get_logger(__name__)

ADDITIONAL_COST_DESCRIPTION = "Engineering Assessment - Additional Costs"


class ParentKind(StrEnum):
    PJO = "pjos"
    QUOTATION = "quotations"


Parent = ProformaJobOrder | Quotation


def _parse_uuid(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"{label} not found") from None


def _parent_kind(parent: Parent) -> ParentKind:
    return ParentKind.PJO if isinstance(parent, ProformaJobOrder) else ParentKind.QUOTATION


def _parent_number(parent: Parent) -> str:
    return parent.pjo_number if isinstance(parent, ProformaJobOrder) else parent.quotation_number


def _document_type(kind: ParentKind) -> str:
    return "pjo" if kind == ParentKind.PJO else "quotation"


def parent_lock_statement(kind: ParentKind, key: uuid.UUID) -> Select:
    """SELECT ... FOR UPDATE on a review's parent row.

    Every engineering write takes this lock before reading the assessments it
    rolls up, so two writers on one review are serialized.
    """
    model = ProformaJobOrder if kind == ParentKind.PJO else Quotation
    return (
        select(model)
        .where(model.id == key)
        .with_for_update()  # Row-level lock
        .execution_options(populate_existing=True)
    )


def stored_factors(parent: Parent) -> list[ComplexityFactor]:
    return [ComplexityFactor.from_dict(f) for f in parent.complexity_factors or [] if isinstance(f, dict)]


async def classify_cargo(session: AsyncSession, cargo: CargoProfile) -> MarketClassification:
    """Score cargo against the active complexity criteria catalogue."""
    result = await session.execute(
        select(CriterionRow).where(CriterionRow.is_active.is_(True)).order_by(CriterionRow.display_order)
    )
    criteria = [
        ComplexityCriterion(
            criteria_code=row.criteria_code,
            criteria_name=row.criteria_name,
            weight=row.weight,
            is_active=row.is_active,
            auto_detect_rules=row.auto_detect_rules,
        )
        for row in result.scalars().all()
    ]
    return calculate_market_classification(cargo, criteria)


def apply_classification(parent: Parent, classification: MarketClassification) -> None:
    parent.market_type = classification.market_type.value
    parent.complexity_score = classification.complexity_score
    parent.complexity_factors = [factor.to_dict() for factor in classification.complexity_factors]
    parent.requires_engineering = classification.requires_engineering


async def open_review(
    session: AsyncSession,
    parent: Parent,
    user_id: str,
    assigned_to: str | None = None,
) -> list[EngineeringAssessment]:
    """Flag a record for engineering review and create its assessments.

    The parent must already be flushed so that it has an id. The caller commits.
    """
    now = datetime.now(UTC)
    parent.requires_engineering = True
    parent.engineering_status = EngineeringStatus.PENDING.value
    parent.engineering_assigned_to = assigned_to
    parent.engineering_assigned_at = now if assigned_to else None
    if isinstance(parent, Quotation) and parent.status == QuotationStatus.DRAFT:
        parent.status = QuotationStatus.ENGINEERING_REVIEW.value

    kind = _parent_kind(parent)
    assessments = []
    for assessment_type in determine_required_assessments(stored_factors(parent)):
        assessment = EngineeringAssessment(
            assessment_type=assessment_type.value,
            status=AssessmentStatus.PENDING.value,
            assigned_to=assigned_to,
            assigned_at=now if assigned_to else None,
        )
        if kind == ParentKind.PJO:
            assessment.pjo_id = parent.id
        else:
            assessment.quotation_id = parent.id
        session.add(assessment)
        assessments.append(assessment)

    record_activity(
        session,
        "engineering_review_opened",
        _document_type(kind),
        parent.id,
        user_id,
        document_number=_parent_number(parent),
        assigned_to=assigned_to,
        assessments=[a.assessment_type for a in assessments],
    )
    return assessments


async def reclassify_cargo(
    session: AsyncSession, parent: Parent, cargo: CargoProfile, user_id: str
) -> MarketClassification | None:
    """Replace a record's cargo and re-score it.

    Rules:
        - unchanged cargo is a no-op (returns None)
        - once a review has been opened the cargo is frozen (409)
        - cargo that now scores as complex opens the review

    The caller commits.
    """
    if CargoProfile.from_record(parent) == cargo:
        return None
    if not can_initialize_review(parent.engineering_status):
        raise HTTPException(
            status_code=409,
            detail=f"Cargo cannot change once engineering review has been opened (status: {parent.engineering_status})",
        )

    for name, value in asdict(cargo).items():
        setattr(parent, name, value)
    classification = await classify_cargo(session, cargo)
    apply_classification(parent, classification)
    if classification.requires_engineering:
        await open_review(session, parent, user_id)
    return classification


def _assessment_response(assessment: EngineeringAssessment) -> AssessmentResponse:
    return AssessmentResponse(
        id=str(assessment.id),
        assessment_type=assessment.assessment_type,
        status=assessment.status,
        assigned_to=assessment.assigned_to,
        findings=assessment.findings,
        recommendations=assessment.recommendations,
        risk_level=assessment.risk_level,
        additional_cost_estimate=assessment.additional_cost_estimate,
        cost_justification=assessment.cost_justification,
        completed_by=assessment.completed_by,
        completed_at=assessment.completed_at,
    )


class EngineeringService:
    """Service layer for the engineering review sub-workflow.

    Every status change of an assessment rolls up into the parent's
    engineering_status, except once the review is completed or waived.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize with dependency injection.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self.session_factory = session_factory

    async def _load_parent(
        self, session: AsyncSession, kind: ParentKind, parent_id: str, for_update: bool = False
    ) -> Parent:
        model = ProformaJobOrder if kind == ParentKind.PJO else Quotation
        label = "PJO" if kind == ParentKind.PJO else "Quotation"
        key = _parse_uuid(parent_id, label)
        if for_update:
            result = await session.execute(parent_lock_statement(kind, key))
            parent = result.scalar_one_or_none()
        else:
            parent = await session.get(model, key)
        if parent is None or not parent.is_active:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return parent

    async def _load_assessments(self, session: AsyncSession, parent: Parent) -> list[EngineeringAssessment]:
        column = EngineeringAssessment.pjo_id if _parent_kind(parent) == ParentKind.PJO else EngineeringAssessment.quotation_id
        result = await session.execute(
            select(EngineeringAssessment).where(column == parent.id).order_by(EngineeringAssessment.created_at)
        )
        return list(result.scalars().all())

    async def _load_assessment(self, session: AsyncSession, assessment_id: str) -> tuple[EngineeringAssessment, Parent]:
        """Load an assessment for writing, with its parent row locked.

        The assessment is re-read after the lock is granted, so its status
        reflects any writer that committed while this one was waiting.
        """
        assessment = await session.get(EngineeringAssessment, _parse_uuid(assessment_id, "Assessment"))
        if assessment is None:
            raise HTTPException(status_code=404, detail="Assessment not found")
        if assessment.pjo_id is not None:
            statement = parent_lock_statement(ParentKind.PJO, assessment.pjo_id)
        else:
            statement = parent_lock_statement(ParentKind.QUOTATION, assessment.quotation_id)
        parent = (await session.execute(statement)).scalar_one_or_none()
        if parent is None:
            raise HTTPException(status_code=404, detail="Assessment not found")
        await session.refresh(assessment)
        return assessment, parent

    async def _roll_up_status(self, session: AsyncSession, parent: Parent) -> None:
        """Recompute the parent's engineering_status from its assessments."""
        if is_review_closed(parent.engineering_status):
            return
        await session.flush()
        assessments = await self._load_assessments(session, parent)
        new_status = calculate_engineering_status(assessments)
        if new_status != parent.engineering_status:
            logger.info(
                "engineering_status_changed",
                parent_kind=_parent_kind(parent).value,
                parent_id=str(parent.id),
                from_status=parent.engineering_status,
                to_status=new_status.value,
            )
            parent.engineering_status = new_status.value

    async def _summary(self, session: AsyncSession, parent: Parent) -> EngineeringSummaryResponse:
        assessments = await self._load_assessments(session, parent)
        highest = get_highest_risk_level(assessments)
        return EngineeringSummaryResponse(
            parent_kind=_parent_kind(parent).value,
            parent_id=str(parent.id),
            requires_engineering=parent.requires_engineering,
            engineering_status=parent.engineering_status,
            completion_percentage=get_assessment_completion_percentage(assessments),
            highest_risk_level=highest.value if highest else None,
            total_additional_costs=calculate_total_additional_costs(assessments),
            waived_reason=parent.engineering_waived_reason,
            assessments=[_assessment_response(a) for a in assessments],
        )

    async def get_summary(self, kind: ParentKind, parent_id: str) -> EngineeringSummaryResponse:
        """Engineering review state of a record.

        Raises:
            HTTPException(404): Record not found
        """
        async with self.session_factory() as session:
            parent = await self._load_parent(session, kind, parent_id)
            return await self._summary(session, parent)

    async def initialize_review(
        self, kind: ParentKind, parent_id: str, assigned_to: str, user: CurrentUser
    ) -> EngineeringSummaryResponse:
        """Open an engineering review on a record that has none yet.

        Args:
            kind: Parent record kind
            parent_id: UUID string of the quotation or PJO
            assigned_to: Engineer responsible for the assessments
            user: Acting user

        Returns:
            EngineeringSummaryResponse with the freshly created assessments

        Raises:
            HTTPException(404): Record not found
            HTTPException(409): Review already initialized
        """
        async with self.session_factory() as session:
            parent = await self._load_parent(session, kind, parent_id, for_update=True)
            if not can_initialize_review(parent.engineering_status):
                raise HTTPException(
                    status_code=409,
                    detail=f"Engineering review already initialized (status: {parent.engineering_status})",
                )

            await open_review(session, parent, user.user_id, assigned_to=assigned_to.strip())
            await session.commit()
            return await self._summary(session, parent)

    async def add_assessment(
        self,
        kind: ParentKind,
        parent_id: str,
        assessment_type: AssessmentType,
        assigned_to: str | None,
        user: CurrentUser,
    ) -> AssessmentResponse:
        """Add an extra assessment to an open review.

        Raises:
            HTTPException(404): Record not found
            HTTPException(409): Record does not require engineering, or review is closed
        """
        async with self.session_factory() as session:
            parent = await self._load_parent(session, kind, parent_id, for_update=True)
            if not parent.requires_engineering:
                raise HTTPException(status_code=409, detail="Engineering review is not required for this record")
            if is_review_closed(parent.engineering_status):
                raise HTTPException(
                    status_code=409,
                    detail=f"Cannot add assessments to a closed review (status: {parent.engineering_status})",
                )

            assessment = EngineeringAssessment(
                assessment_type=assessment_type.value,
                status=AssessmentStatus.PENDING.value,
                assigned_to=assigned_to,
                assigned_at=datetime.now(UTC) if assigned_to else None,
            )
            if kind == ParentKind.PJO:
                assessment.pjo_id = parent.id
            else:
                assessment.quotation_id = parent.id
            session.add(assessment)

            await self._roll_up_status(session, parent)
            record_activity(
                session,
                "engineering_assessment_added",
                _document_type(kind),
                parent.id,
                user.user_id,
                document_number=_parent_number(parent),
                assessment_type=assessment_type.value,
            )
            await session.commit()
            return _assessment_response(assessment)

    async def start_assessment(self, assessment_id: str, user: CurrentUser) -> AssessmentResponse:
        """Move a pending assessment to in_progress.

        Raises:
            HTTPException(404): Assessment not found
            HTTPException(409): Assessment is not pending
        """
        async with self.session_factory() as session:
            assessment, parent = await self._load_assessment(session, assessment_id)
            if assessment.status != AssessmentStatus.PENDING:
                raise HTTPException(
                    status_code=409,
                    detail=f"Only pending assessments can be started (status: {assessment.status})",
                )

            assessment.status = AssessmentStatus.IN_PROGRESS.value
            assessment.started_at = datetime.now(UTC)
            if not assessment.assigned_to:
                assessment.assigned_to = user.user_id
                assessment.assigned_at = assessment.started_at

            await self._roll_up_status(session, parent)
            await session.commit()
            return _assessment_response(assessment)

    async def complete_assessment(
        self, assessment_id: str, request: CompleteAssessmentRequest, user: CurrentUser
    ) -> AssessmentResponse:
        """Record the findings of an assessment and mark it completed.

        Raises:
            HTTPException(404): Assessment not found
            HTTPException(409): Assessment already completed or cancelled
            HTTPException(422): Findings or recommendations empty
        """
        findings = request.findings.strip()
        recommendations = request.recommendations.strip()
        if not findings or not recommendations:
            raise HTTPException(status_code=422, detail="Findings and recommendations are required")

        async with self.session_factory() as session:
            assessment, parent = await self._load_assessment(session, assessment_id)
            if assessment.status in (AssessmentStatus.COMPLETED, AssessmentStatus.CANCELLED):
                raise HTTPException(
                    status_code=409,
                    detail=f"Assessment cannot be completed (status: {assessment.status})",
                )

            assessment.status = AssessmentStatus.COMPLETED.value
            assessment.findings = findings
            assessment.recommendations = recommendations
            assessment.risk_level = request.risk_level.value
            assessment.additional_cost_estimate = request.additional_cost_estimate
            assessment.cost_justification = (request.cost_justification or "").strip() or None
            assessment.completed_by = user.user_id
            assessment.completed_at = datetime.now(UTC)

            await self._roll_up_status(session, parent)
            await session.commit()
            return _assessment_response(assessment)

    async def cancel_assessment(self, assessment_id: str, user: CurrentUser) -> AssessmentResponse:
        """Cancel an assessment that is no longer needed.

        Raises:
            HTTPException(404): Assessment not found
            HTTPException(409): Assessment already completed or cancelled
        """
        async with self.session_factory() as session:
            assessment, parent = await self._load_assessment(session, assessment_id)
            if assessment.status in (AssessmentStatus.COMPLETED, AssessmentStatus.CANCELLED):
                raise HTTPException(
                    status_code=409,
                    detail=f"Assessment cannot be cancelled (status: {assessment.status})",
                )

            assessment.status = AssessmentStatus.CANCELLED.value
            await self._roll_up_status(session, parent)
            record_activity(
                session,
                "engineering_assessment_cancelled",
                _document_type(_parent_kind(parent)),
                parent.id,
                user.user_id,
                document_number=_parent_number(parent),
                assessment_type=assessment.assessment_type,
            )
            await session.commit()
            return _assessment_response(assessment)

    async def complete_review(
        self, kind: ParentKind, parent_id: str, request: CompleteReviewRequest, user: CurrentUser
    ) -> EngineeringSummaryResponse:
        """Close the review with an overall verdict.

        When apply_additional_costs is set, the additional cost estimates of the
        completed assessments are added to the record as a single cost line.

        Raises:
            HTTPException(404): Record not found
            HTTPException(409): Record does not require engineering, or review was waived
            HTTPException(422): Notes empty
        """
        notes = request.notes.strip()
        if not notes:
            raise HTTPException(status_code=422, detail="Review notes are required")

        async with self.session_factory() as session:
            parent = await self._load_parent(session, kind, parent_id, for_update=True)
            if not parent.requires_engineering:
                raise HTTPException(status_code=409, detail="Engineering review is not required for this record")
            if parent.engineering_status == EngineeringStatus.WAIVED:
                raise HTTPException(status_code=409, detail="Engineering review was waived")

            assessments = await self._load_assessments(session, parent)
            parent.engineering_status = EngineeringStatus.COMPLETED.value
            parent.engineering_risk_level = request.overall_risk_level.value
            parent.engineering_decision = request.decision.value
            parent.engineering_notes = notes
            parent.engineering_completed_by = user.user_id
            parent.engineering_completed_at = datetime.now(UTC)

            additional = calculate_total_additional_costs(assessments)
            if request.apply_additional_costs and additional > 0:
                self._apply_additional_costs(parent, additional)

            record_activity(
                session,
                "engineering_review_completed",
                _document_type(kind),
                parent.id,
                user.user_id,
                document_number=_parent_number(parent),
                decision=request.decision.value,
                risk_level=request.overall_risk_level.value,
                additional_costs_applied=additional if request.apply_additional_costs else 0,
            )
            self._advance_quotation(session, parent, user.user_id)
            await session.commit()
            return await self._summary(session, parent)

    def _advance_quotation(self, session: AsyncSession, parent: Parent, user_id: str) -> None:
        """Move a quotation held in engineering_review to ready once its review is closed.

        The quotation stays in engineering_review when it still lacks line
        items or a positive margin; mark_ready moves it on later.
        """
        if not isinstance(parent, Quotation) or parent.status != QuotationStatus.ENGINEERING_REVIEW:
            return

        items = validate_line_items(len(parent.revenue_items), len(parent.cost_items))
        margin = validate_positive_margin(parent.total_revenue, parent.total_cost)
        if not (items.valid and margin.valid):
            logger.info(
                "quotation_ready_deferred",
                quotation_id=str(parent.id),
                reason=items.error or margin.error,
            )
            return

        parent.status = QuotationStatus.READY.value
        record_activity(
            session,
            "quotation_ready",
            "quotation",
            parent.id,
            user_id,
            document_number=parent.quotation_number,
            from_status=QuotationStatus.ENGINEERING_REVIEW.value,
            trigger="engineering_review_closed",
        )

    def _apply_additional_costs(self, parent: Parent, amount: float) -> None:
        if isinstance(parent, ProformaJobOrder):
            parent.cost_items.append(
                PJOCostItem(category="engineering", description=ADDITIONAL_COST_DESCRIPTION, estimated_amount=amount)
            )
            apply_pjo_totals(parent)
        else:
            parent.cost_items.append(
                QuotationCostItem(category="engineering", description=ADDITIONAL_COST_DESCRIPTION, estimated_amount=amount)
            )
            apply_quotation_totals(parent)

    async def waive_review(
        self, kind: ParentKind, parent_id: str, reason: str, user: CurrentUser
    ) -> EngineeringSummaryResponse:
        """Waive the engineering review. Manager roles only, reason mandatory.

        Raises:
            HTTPException(403): Role may not waive engineering review
            HTTPException(404): Record not found
            HTTPException(409): Record does not require engineering, or review already completed or waived
            HTTPException(422): Reason empty
        """
        if not can_waive_engineering_review(user.role):
            logger.warning("engineering_waive_denied", user_id=user.user_id, role=user.role)
            raise HTTPException(status_code=403, detail="Only managers can waive engineering review")

        reason = (reason or "").strip()
        if not reason:
            raise HTTPException(status_code=422, detail="Waiver reason is required")

        async with self.session_factory() as session:
            parent = await self._load_parent(session, kind, parent_id, for_update=True)
            if not parent.requires_engineering:
                raise HTTPException(status_code=409, detail="Engineering review is not required for this record")
            if is_review_closed(parent.engineering_status):
                raise HTTPException(
                    status_code=409,
                    detail=f"Engineering review already closed (status: {parent.engineering_status})",
                )

            parent.engineering_status = EngineeringStatus.WAIVED.value
            parent.engineering_waived_reason = reason
            parent.engineering_completed_by = user.user_id
            parent.engineering_completed_at = datetime.now(UTC)

            record_activity(
                session,
                "engineering_review_waived",
                _document_type(kind),
                parent.id,
                user.user_id,
                document_number=_parent_number(parent),
                reason=reason,
                role=user.role,
            )
            self._advance_quotation(session, parent, user.user_id)
            await session.commit()
            return await self._summary(session, parent)
