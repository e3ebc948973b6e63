"""PJOService: proforma job order lifecycle and approval gate."""

import uuid
from datetime import UTC, date, datetime

import structlog
from fastapi import HTTPException
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.auth import CurrentUser
from app.db.models.pjo import PJOCostItem, PJORevenueItem, ProformaJobOrder
from app.domain.approval import (
    PJOStatus,
    calculate_cost_status,
    can_submit_pjo,
    evaluate_approval,
    generate_pjo_number,
    get_budget_warning_level,
    pjo_number_suffix,
    validate_rejection,
)
from app.domain.complexity import CargoProfile, MarketType, validate_cargo_specifications
from app.domain.engineering import CLOSED_STATUSES, EngineeringStatus
from app.domain.metrics import calculate_profit, calculate_profit_margin
from app.schemas.pjos import (
    ApprovalStatusResponse,
    CostItemResponse,
    CreatePJORequest,
    PJOResponse,
    RevenueItemResponse,
    UpdatePJORequest,
)
from app.schemas.quotations import ComplexityFactorResponse, CostItemRequest, RevenueItemRequest
from app.services.activity import record_activity
from app.services.engineering_service import apply_classification, classify_cargo, open_review, reclassify_cargo
from app.services.totals import apply_pjo_totals, find_line_item

logger = structlog.get_logger(__name__)


def validate_cargo(cargo: CargoProfile) -> None:
    """Raise 422 listing every invalid cargo measurement."""
    valid, errors = validate_cargo_specifications(cargo)
    if not valid:
        raise HTTPException(status_code=422, detail=errors)


async def next_pjo_number(session: AsyncSession, on: date) -> str:
    """Next free number in the monthly PJO sequence."""
    suffix = pjo_number_suffix(on)
    result = await session.execute(
        select(func.count()).select_from(ProformaJobOrder).where(ProformaJobOrder.pjo_number.endswith(suffix))
    )
    return generate_pjo_number(result.scalar_one() + 1, on)


def _cost_item_response(item: PJOCostItem) -> CostItemResponse:
    warning = None
    if item.actual_amount is not None:
        warning = get_budget_warning_level(item.estimated_amount, item.actual_amount).value
    return CostItemResponse(
        id=str(item.id),
        category=item.category,
        description=item.description,
        estimated_amount=item.estimated_amount,
        actual_amount=item.actual_amount,
        status=item.status,
        budget_warning_level=warning,
    )


def pjo_response(pjo: ProformaJobOrder) -> PJOResponse:
    return PJOResponse(
        id=str(pjo.id),
        pjo_number=pjo.pjo_number,
        quotation_id=str(pjo.quotation_id) if pjo.quotation_id else None,
        customer_name=pjo.customer_name,
        commodity=pjo.commodity,
        pol=pjo.pol,
        pod=pjo.pod,
        status=pjo.status,
        market_type=pjo.market_type,
        complexity_score=pjo.complexity_score,
        complexity_factors=[ComplexityFactorResponse(**f) for f in pjo.complexity_factors or []],
        requires_engineering=pjo.requires_engineering,
        engineering_status=pjo.engineering_status,
        total_revenue=pjo.total_revenue,
        total_cost_estimated=pjo.total_cost_estimated,
        total_cost_actual=pjo.total_cost_actual,
        profit=calculate_profit(pjo.total_revenue, pjo.total_cost_estimated),
        profit_margin=calculate_profit_margin(pjo.total_revenue, pjo.total_cost_estimated),
        approved_by=pjo.approved_by,
        approved_at=pjo.approved_at,
        rejection_reason=pjo.rejection_reason,
        revenue_items=[
            RevenueItemResponse(
                id=str(item.id),
                description=item.description,
                quantity=item.quantity,
                unit=item.unit,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )
            for item in pjo.revenue_items
        ],
        cost_items=[_cost_item_response(item) for item in pjo.cost_items],
        created_at=pjo.created_at,
    )


class PJOService:
    """Service layer for proforma job orders.

    draft -> pending_approval -> approved | rejected. Approval is additionally
    gated on the engineering review when the PJO requires one.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize with dependency injection.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self.session_factory = session_factory

    async def _get_pjo(self, session: AsyncSession, pjo_id: str) -> ProformaJobOrder:
        try:
            key = uuid.UUID(pjo_id)
        except ValueError:
            raise HTTPException(status_code=404, detail="PJO not found") from None

        pjo = await session.get(ProformaJobOrder, key)
        if pjo is None or not pjo.is_active:
            raise HTTPException(status_code=404, detail="PJO not found")
        return pjo

    def _require_draft(self, pjo: ProformaJobOrder) -> None:
        if pjo.status != PJOStatus.DRAFT:
            raise HTTPException(
                status_code=409,
                detail=f"Line items can only be changed on draft PJOs. Current status: {pjo.status}",
            )

    async def create(self, request: CreatePJORequest, user: CurrentUser) -> PJOResponse:
        """Create a draft PJO, classify its cargo and open engineering review if needed.

        Raises:
            HTTPException(422): Negative cargo measurements
        """
        cargo = CargoProfile(**request.cargo.model_dump())
        validate_cargo(cargo)

        async with self.session_factory() as session:
            classification = await classify_cargo(session, cargo)
            pjo = ProformaJobOrder(
                pjo_number=await next_pjo_number(session, datetime.now(UTC).date()),
                customer_name=request.customer_name,
                commodity=request.commodity,
                pol=request.pol,
                pod=request.pod,
                status=PJOStatus.DRAFT.value,
                engineering_status=EngineeringStatus.NOT_REQUIRED.value,
                created_by=user.user_id,
                revenue_items=[],
                cost_items=[],
                **request.cargo.model_dump(),
            )
            apply_classification(pjo, classification)
            session.add(pjo)
            await session.flush()

            if classification.requires_engineering:
                await open_review(session, pjo, user.user_id)

            record_activity(
                session,
                "pjo_created",
                "pjo",
                pjo.id,
                user.user_id,
                document_number=pjo.pjo_number,
                complexity_score=classification.complexity_score,
                requires_engineering=classification.requires_engineering,
            )
            await session.commit()
            return pjo_response(pjo)

    async def get(self, pjo_id: str) -> PJOResponse:
        async with self.session_factory() as session:
            return pjo_response(await self._get_pjo(session, pjo_id))

    async def list_pjos(
        self, status: PJOStatus | None = None, market_type: MarketType | None = None
    ) -> list[PJOResponse]:
        """Active PJOs, newest first."""
        async with self.session_factory() as session:
            query = select(ProformaJobOrder).where(ProformaJobOrder.is_active.is_(True))
            if status is not None:
                query = query.where(ProformaJobOrder.status == status.value)
            if market_type is not None:
                query = query.where(ProformaJobOrder.market_type == market_type.value)
            result = await session.execute(query.order_by(ProformaJobOrder.created_at.desc()))
            return [pjo_response(p) for p in result.scalars().all()]

    async def update(self, pjo_id: str, request: UpdatePJORequest, user: CurrentUser) -> PJOResponse:
        """Edit the header and cargo of a draft PJO.

        A new cargo profile is re-scored. Cargo is frozen once an engineering
        review has been opened, and cargo that now scores as complex opens one.

        Raises:
            HTTPException(404): PJO not found
            HTTPException(409): PJO is not a draft, or cargo frozen by review
            HTTPException(422): Negative cargo measurements
        """
        cargo = None
        if request.cargo is not None:
            cargo = CargoProfile(**request.cargo.model_dump())
            validate_cargo(cargo)

        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            if pjo.status != PJOStatus.DRAFT:
                raise HTTPException(
                    status_code=409,
                    detail=f"Only draft PJOs can be edited. Current status: {pjo.status}",
                )

            changes = request.model_dump(exclude_unset=True, exclude_none=True, exclude={"cargo"})
            for field, value in changes.items():
                setattr(pjo, field, value)

            classification = None
            if cargo is not None:
                classification = await reclassify_cargo(session, pjo, cargo, user.user_id)

            record_activity(
                session,
                "pjo_updated",
                "pjo",
                pjo.id,
                user.user_id,
                document_number=pjo.pjo_number,
                fields=sorted(changes),
                complexity_score=classification.complexity_score if classification else None,
            )
            await session.commit()
            return pjo_response(pjo)

    async def delete(self, pjo_id: str, user: CurrentUser) -> None:
        """Soft delete a draft PJO.

        Raises:
            HTTPException(404): PJO not found
            HTTPException(409): PJO is not a draft
        """
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            if pjo.status != PJOStatus.DRAFT:
                raise HTTPException(
                    status_code=409,
                    detail=f"Only draft PJOs can be deleted. Current status: {pjo.status}",
                )

            pjo.is_active = False
            record_activity(session, "pjo_deleted", "pjo", pjo.id, user.user_id, document_number=pjo.pjo_number)
            await session.commit()

    async def add_revenue_item(self, pjo_id: str, request: RevenueItemRequest, user: CurrentUser) -> PJOResponse:
        """Append a revenue line to a draft PJO and refresh its totals.

        Raises:
            HTTPException(404): PJO not found
            HTTPException(409): PJO is not a draft
        """
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            self._require_draft(pjo)

            pjo.revenue_items.append(
                PJORevenueItem(
                    description=request.description,
                    quantity=request.quantity,
                    unit=request.unit,
                    unit_price=request.unit_price,
                    subtotal=request.quantity * request.unit_price,
                )
            )
            apply_pjo_totals(pjo)
            await session.commit()
            return pjo_response(pjo)

    async def add_cost_item(self, pjo_id: str, request: CostItemRequest, user: CurrentUser) -> PJOResponse:
        """Append an estimated cost line to a draft PJO and refresh its totals.

        Raises:
            HTTPException(404): PJO not found
            HTTPException(409): PJO is not a draft
        """
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            self._require_draft(pjo)

            pjo.cost_items.append(
                PJOCostItem(
                    category=request.category,
                    description=request.description,
                    estimated_amount=request.estimated_amount,
                    vendor_name=request.vendor_name,
                )
            )
            apply_pjo_totals(pjo)
            await session.commit()
            return pjo_response(pjo)

    async def update_revenue_item(
        self, pjo_id: str, item_id: str, request: RevenueItemRequest, user: CurrentUser
    ) -> PJOResponse:
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            self._require_draft(pjo)

            item = find_line_item(pjo.revenue_items, item_id, "Revenue item")
            item.description = request.description
            item.quantity = request.quantity
            item.unit = request.unit
            item.unit_price = request.unit_price
            item.subtotal = request.quantity * request.unit_price
            apply_pjo_totals(pjo)
            await session.commit()
            return pjo_response(pjo)

    async def delete_revenue_item(self, pjo_id: str, item_id: str, user: CurrentUser) -> PJOResponse:
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            self._require_draft(pjo)

            pjo.revenue_items.remove(find_line_item(pjo.revenue_items, item_id, "Revenue item"))
            apply_pjo_totals(pjo)
            await session.commit()
            return pjo_response(pjo)

    async def update_cost_item(
        self, pjo_id: str, item_id: str, request: CostItemRequest, user: CurrentUser
    ) -> PJOResponse:
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            self._require_draft(pjo)

            item = find_line_item(pjo.cost_items, item_id, "Cost item")
            item.category = request.category
            item.description = request.description
            item.estimated_amount = request.estimated_amount
            item.vendor_name = request.vendor_name
            apply_pjo_totals(pjo)
            await session.commit()
            return pjo_response(pjo)

    async def delete_cost_item(self, pjo_id: str, item_id: str, user: CurrentUser) -> PJOResponse:
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            self._require_draft(pjo)

            pjo.cost_items.remove(find_line_item(pjo.cost_items, item_id, "Cost item"))
            apply_pjo_totals(pjo)
            await session.commit()
            return pjo_response(pjo)

    async def record_actual_cost(
        self, pjo_id: str, item_id: str, actual_amount: float, user: CurrentUser
    ) -> CostItemResponse:
        """Record the realised amount of a cost line on an approved PJO.

        Raises:
            HTTPException(404): PJO or cost item not found
            HTTPException(409): PJO is not approved
        """
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            if pjo.status != PJOStatus.APPROVED:
                raise HTTPException(
                    status_code=409,
                    detail=f"Actual costs can only be recorded on approved PJOs. Current status: {pjo.status}",
                )

            item = find_line_item(pjo.cost_items, item_id, "Cost item")

            cost_status = calculate_cost_status(item.estimated_amount, actual_amount)
            item.actual_amount = actual_amount
            item.status = cost_status.status.value
            apply_pjo_totals(pjo)

            record_activity(
                session,
                "pjo_actual_cost_recorded",
                "pjo",
                pjo.id,
                user.user_id,
                document_number=pjo.pjo_number,
                cost_item_id=item_id,
                actual_amount=actual_amount,
                cost_status=cost_status.status.value,
                variance_pct=cost_status.variance_pct,
            )
            await session.commit()
            return _cost_item_response(item)

    async def submit(self, pjo_id: str, user: CurrentUser) -> PJOResponse:
        """Send a draft PJO for approval.

        Raises:
            HTTPException(404): PJO not found
            HTTPException(409): PJO is not a draft
            HTTPException(422): Missing line items or non-positive margin
        """
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            if pjo.status != PJOStatus.DRAFT:
                raise HTTPException(
                    status_code=409,
                    detail=f"Only draft PJOs can be submitted. Current status: {pjo.status}",
                )

            check = can_submit_pjo(
                pjo.status,
                len(pjo.revenue_items),
                len(pjo.cost_items),
                pjo.total_revenue,
                pjo.total_cost_estimated,
            )
            if not check.valid:
                raise HTTPException(status_code=422, detail=check.error)

            pjo.status = PJOStatus.PENDING_APPROVAL.value
            pjo.submitted_by = user.user_id
            pjo.submitted_at = datetime.now(UTC)
            record_activity(session, "pjo_submitted", "pjo", pjo.id, user.user_id, document_number=pjo.pjo_number)
            await session.commit()
            return pjo_response(pjo)

    async def get_approval_status(self, pjo_id: str) -> ApprovalStatusResponse:
        """Evaluate the approval gate without changing anything."""
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            gate = evaluate_approval(pjo.status, pjo.requires_engineering, pjo.engineering_status)
            return ApprovalStatusResponse(
                pjo_id=str(pjo.id),
                status=pjo.status,
                can_approve=gate.can_approve,
                reason=gate.reason,
                requires_engineering=pjo.requires_engineering,
                engineering_status=pjo.engineering_status,
            )

    async def approve(self, pjo_id: str, user: CurrentUser) -> PJOResponse:
        """Approve a PJO pending approval.

        The write is a conditional UPDATE repeating the gate in its WHERE
        clause, so a concurrent status change or engineering reopen between
        the check and the write is detected as zero affected rows.

        Raises:
            HTTPException(404): PJO not found
            HTTPException(409): PJO not pending approval, or lost a concurrent update
            HTTPException(422): Engineering review not completed or waived
        """
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            if pjo.status != PJOStatus.PENDING_APPROVAL:
                raise HTTPException(
                    status_code=409,
                    detail=f"Only PJOs pending approval can be approved. Current status: {pjo.status}",
                )

            gate = evaluate_approval(pjo.status, pjo.requires_engineering, pjo.engineering_status)
            if not gate.can_approve:
                logger.info(
                    "pjo_approval_blocked",
                    pjo_id=pjo_id,
                    engineering_status=pjo.engineering_status,
                    user_id=user.user_id,
                )
                raise HTTPException(status_code=422, detail=gate.reason)

            now = datetime.now(UTC)
            result = await session.execute(
                update(ProformaJobOrder)
                .where(
                    ProformaJobOrder.id == pjo.id,
                    ProformaJobOrder.status == PJOStatus.PENDING_APPROVAL.value,
                    or_(
                        ProformaJobOrder.requires_engineering.is_(False),
                        ProformaJobOrder.engineering_status.in_([s.value for s in CLOSED_STATUSES]),
                    ),
                )
                .values(status=PJOStatus.APPROVED.value, approved_by=user.user_id, approved_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                logger.warning("pjo_approval_conflict", pjo_id=pjo_id, user_id=user.user_id)
                raise HTTPException(status_code=409, detail="PJO was modified concurrently; reload and retry")

            record_activity(
                session,
                "pjo_approved",
                "pjo",
                pjo.id,
                user.user_id,
                document_number=pjo.pjo_number,
                engineering_status=pjo.engineering_status,
            )
            await session.commit()
            await session.refresh(pjo)
            return pjo_response(pjo)

    async def reject(self, pjo_id: str, reason: str, user: CurrentUser) -> PJOResponse:
        """Reject a PJO pending approval. A reason is mandatory.

        Raises:
            HTTPException(404): PJO not found
            HTTPException(409): PJO not pending approval
            HTTPException(422): Reason empty
        """
        async with self.session_factory() as session:
            pjo = await self._get_pjo(session, pjo_id)
            check = validate_rejection(pjo.status, reason)
            if not check.valid:
                status_code = 422 if not (reason or "").strip() else 409
                raise HTTPException(status_code=status_code, detail=check.error)

            pjo.status = PJOStatus.REJECTED.value
            pjo.rejected_by = user.user_id
            pjo.rejected_at = datetime.now(UTC)
            pjo.rejection_reason = reason.strip()
            record_activity(
                session,
                "pjo_rejected",
                "pjo",
                pjo.id,
                user.user_id,
                document_number=pjo.pjo_number,
                reason=pjo.rejection_reason,
            )
            await session.commit()
            return pjo_response(pjo)
