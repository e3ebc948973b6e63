"""QuotationService: quotation lifecycle, pricing and conversion to PJOs."""

import uuid
from dataclasses import asdict
from datetime import UTC, datetime

import structlog
from fastapi import HTTPException
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.auth import CurrentUser
from app.db.models.pjo import PJOCostItem, PJORevenueItem, ProformaJobOrder
from app.db.models.quotation import PursuitCost, Quotation, QuotationCostItem, QuotationRevenueItem
from app.domain.approval import PJOStatus, validate_line_items, validate_positive_margin
from app.domain.complexity import CargoProfile, MarketType
from app.domain.engineering import CLOSED_STATUSES, EngineeringStatus
from app.domain.quotations import (
    QuotationStatus,
    calculate_pursuit_cost_per_shipment,
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
from app.schemas.quotations import (
    ComplexityFactorResponse,
    ConvertQuotationResponse,
    CostItemRequest,
    CreateQuotationRequest,
    MarkLostRequest,
    PursuitCostRequest,
    PursuitCostResponse,
    QuotationCostItemResponse,
    QuotationResponse,
    QuotationRevenueItemResponse,
    RevenueItemRequest,
    UpdateQuotationRequest,
)
from app.services.activity import record_activity
from app.services.engineering_service import apply_classification, classify_cargo, open_review, reclassify_cargo
from app.services.pjo_service import next_pjo_number, validate_cargo
from app.services.totals import apply_pjo_totals, apply_quotation_totals, find_line_item

logger = structlog.get_logger(__name__)

EDITABLE_STATUSES = (QuotationStatus.DRAFT, QuotationStatus.ENGINEERING_REVIEW)


def quotation_response(quotation: Quotation) -> QuotationResponse:
    category = detail = None
    if quotation.status == QuotationStatus.LOST:
        parsed_category, detail = parse_outcome_reason(quotation.outcome_reason)
        category = parsed_category.value

    return QuotationResponse(
        id=str(quotation.id),
        quotation_number=quotation.quotation_number,
        customer_name=quotation.customer_name,
        title=quotation.title,
        origin=quotation.origin,
        destination=quotation.destination,
        status=quotation.status,
        market_type=quotation.market_type,
        complexity_score=quotation.complexity_score,
        complexity_factors=[ComplexityFactorResponse(**f) for f in quotation.complexity_factors or []],
        requires_engineering=quotation.requires_engineering,
        engineering_status=quotation.engineering_status,
        estimated_shipments=quotation.estimated_shipments,
        total_revenue=quotation.total_revenue,
        total_cost=quotation.total_cost,
        total_pursuit_cost=quotation.total_pursuit_cost,
        gross_profit=quotation.gross_profit,
        profit_margin=quotation.profit_margin,
        pursuit_cost_per_shipment=calculate_pursuit_cost_per_shipment(
            quotation.total_pursuit_cost, quotation.estimated_shipments
        ),
        valid_next_statuses=[
            s.value
            for s in get_valid_next_statuses(
                quotation.status, quotation.requires_engineering, quotation.engineering_status
            )
        ],
        lost_reason_category=category,
        lost_reason_detail=detail,
        revenue_items=[
            QuotationRevenueItemResponse(
                id=str(item.id),
                description=item.description,
                quantity=item.quantity,
                unit=item.unit,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )
            for item in quotation.revenue_items
        ],
        cost_items=[
            QuotationCostItemResponse(
                id=str(item.id),
                category=item.category,
                description=item.description,
                estimated_amount=item.estimated_amount,
                vendor_name=item.vendor_name,
            )
            for item in quotation.cost_items
        ],
        pursuit_costs=[
            PursuitCostResponse(id=str(c.id), category=c.category, description=c.description, amount=c.amount)
            for c in quotation.pursuit_costs
        ],
        created_at=quotation.created_at,
    )


class QuotationService:
    """Service layer for quotations.

    Quotations whose cargo scores as complex start in engineering_review and
    cannot become ready until that review is completed or waived.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize with dependency injection.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self.session_factory = session_factory

    async def _get_quotation(self, session: AsyncSession, quotation_id: str) -> Quotation:
        try:
            key = uuid.UUID(quotation_id)
        except ValueError:
            raise HTTPException(status_code=404, detail="Quotation not found") from None

        quotation = await session.get(Quotation, key)
        if quotation is None or not quotation.is_active:
            raise HTTPException(status_code=404, detail="Quotation not found")
        return quotation

    def _require_editable(self, quotation: Quotation) -> None:
        if quotation.status not in EDITABLE_STATUSES:
            raise HTTPException(
                status_code=409,
                detail=f"Quotation can no longer be edited. Current status: {quotation.status}",
            )

    def _require_transition(self, quotation: Quotation, target: QuotationStatus) -> None:
        if not can_transition_status(quotation.status, target):
            raise HTTPException(
                status_code=409,
                detail=f"Cannot move quotation from '{quotation.status}' to '{target.value}'",
            )

    async def create(self, request: CreateQuotationRequest, user: CurrentUser) -> QuotationResponse:
        """Create a quotation, classify its cargo and open engineering review if needed.

        Raises:
            HTTPException(422): Negative cargo measurements
        """
        cargo = CargoProfile(**request.cargo.model_dump())
        validate_cargo(cargo)

        async with self.session_factory() as session:
            classification = await classify_cargo(session, cargo)

            today = datetime.now(UTC).date()
            count = await session.execute(
                select(func.count())
                .select_from(Quotation)
                .where(Quotation.quotation_number.startswith(f"QUO-{today.year}-"))
            )

            quotation = Quotation(
                quotation_number=generate_quotation_number(count.scalar_one(), today),
                customer_name=request.customer_name,
                title=request.title,
                commodity=request.commodity,
                origin=request.origin,
                destination=request.destination,
                rfq_deadline=request.rfq_deadline,
                estimated_shipments=request.estimated_shipments,
                status=determine_initial_status(classification).value,
                engineering_status=EngineeringStatus.NOT_REQUIRED.value,
                created_by=user.user_id,
                revenue_items=[],
                cost_items=[],
                pursuit_costs=[],
                **request.cargo.model_dump(),
            )
            apply_classification(quotation, classification)
            session.add(quotation)
            await session.flush()

            if classification.requires_engineering:
                await open_review(session, quotation, user.user_id)

            record_activity(
                session,
                "quotation_created",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
                complexity_score=classification.complexity_score,
                market_type=classification.market_type.value,
            )
            await session.commit()
            return quotation_response(quotation)

    async def get(self, quotation_id: str) -> QuotationResponse:
        async with self.session_factory() as session:
            return quotation_response(await self._get_quotation(session, quotation_id))

    async def list_quotations(
        self, status: QuotationStatus | None = None, market_type: MarketType | None = None
    ) -> list[QuotationResponse]:
        """Active quotations, newest first."""
        async with self.session_factory() as session:
            query = select(Quotation).where(Quotation.is_active.is_(True))
            if status is not None:
                query = query.where(Quotation.status == status.value)
            if market_type is not None:
                query = query.where(Quotation.market_type == market_type.value)
            result = await session.execute(query.order_by(Quotation.created_at.desc()))
            return [quotation_response(q) for q in result.scalars().all()]

    async def update(
        self, quotation_id: str, request: UpdateQuotationRequest, user: CurrentUser
    ) -> QuotationResponse:
        """Edit the header and cargo of a quotation still being prepared.

        A new cargo profile is re-scored. Cargo is frozen once an engineering
        review has been opened, and cargo that now scores as complex opens one.

        Raises:
            HTTPException(404): Quotation not found
            HTTPException(409): Quotation no longer editable, or cargo frozen by review
            HTTPException(422): Negative cargo measurements
        """
        cargo = None
        if request.cargo is not None:
            cargo = CargoProfile(**request.cargo.model_dump())
            validate_cargo(cargo)

        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_editable(quotation)

            changes = request.model_dump(exclude_unset=True, exclude_none=True, exclude={"cargo"})
            for field, value in changes.items():
                setattr(quotation, field, value)

            classification = None
            if cargo is not None:
                classification = await reclassify_cargo(session, quotation, cargo, user.user_id)
            apply_quotation_totals(quotation)

            record_activity(
                session,
                "quotation_updated",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
                fields=sorted(changes),
                complexity_score=classification.complexity_score if classification else None,
            )
            await session.commit()
            return quotation_response(quotation)

    async def delete(self, quotation_id: str, user: CurrentUser) -> None:
        """Soft delete a quotation; it disappears from reads and lists.

        Raises:
            HTTPException(404): Quotation not found
            HTTPException(409): Quotation is won (its PJOs refer to it)
        """
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            if quotation.status == QuotationStatus.WON:
                raise HTTPException(status_code=409, detail="Won quotations cannot be deleted")

            quotation.is_active = False
            record_activity(
                session,
                "quotation_deleted",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
                status=quotation.status,
            )
            await session.commit()

    async def add_revenue_item(
        self, quotation_id: str, request: RevenueItemRequest, user: CurrentUser
    ) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_editable(quotation)

            quotation.revenue_items.append(
                QuotationRevenueItem(
                    description=request.description,
                    quantity=request.quantity,
                    unit=request.unit,
                    unit_price=request.unit_price,
                    subtotal=request.quantity * request.unit_price,
                )
            )
            apply_quotation_totals(quotation)
            await session.commit()
            return quotation_response(quotation)

    async def add_cost_item(self, quotation_id: str, request: CostItemRequest, user: CurrentUser) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_editable(quotation)

            quotation.cost_items.append(
                QuotationCostItem(
                    category=request.category,
                    description=request.description,
                    estimated_amount=request.estimated_amount,
                    vendor_name=request.vendor_name,
                )
            )
            apply_quotation_totals(quotation)
            await session.commit()
            return quotation_response(quotation)

    async def update_revenue_item(
        self, quotation_id: str, item_id: str, request: RevenueItemRequest, user: CurrentUser
    ) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_editable(quotation)

            item = find_line_item(quotation.revenue_items, item_id, "Revenue item")
            item.description = request.description
            item.quantity = request.quantity
            item.unit = request.unit
            item.unit_price = request.unit_price
            item.subtotal = request.quantity * request.unit_price
            apply_quotation_totals(quotation)
            await session.commit()
            return quotation_response(quotation)

    async def delete_revenue_item(self, quotation_id: str, item_id: str, user: CurrentUser) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_editable(quotation)

            quotation.revenue_items.remove(find_line_item(quotation.revenue_items, item_id, "Revenue item"))
            apply_quotation_totals(quotation)
            await session.commit()
            return quotation_response(quotation)

    async def update_cost_item(
        self, quotation_id: str, item_id: str, request: CostItemRequest, user: CurrentUser
    ) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_editable(quotation)

            item = find_line_item(quotation.cost_items, item_id, "Cost item")
            item.category = request.category
            item.description = request.description
            item.estimated_amount = request.estimated_amount
            item.vendor_name = request.vendor_name
            apply_quotation_totals(quotation)
            await session.commit()
            return quotation_response(quotation)

    async def delete_cost_item(self, quotation_id: str, item_id: str, user: CurrentUser) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_editable(quotation)

            quotation.cost_items.remove(find_line_item(quotation.cost_items, item_id, "Cost item"))
            apply_quotation_totals(quotation)
            await session.commit()
            return quotation_response(quotation)

    def _require_pursuit_open(self, quotation: Quotation) -> None:
        if quotation.status in (QuotationStatus.WON, QuotationStatus.LOST, QuotationStatus.CANCELLED):
            raise HTTPException(
                status_code=409,
                detail=f"Pursuit costs of a closed quotation cannot change. Current status: {quotation.status}",
            )

    async def add_pursuit_cost(
        self, quotation_id: str, request: PursuitCostRequest, user: CurrentUser
    ) -> QuotationResponse:
        """Record a cost incurred while pursuing the deal (survey, travel, ...)."""
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_pursuit_open(quotation)

            quotation.pursuit_costs.append(
                PursuitCost(category=request.category, description=request.description, amount=request.amount)
            )
            apply_quotation_totals(quotation)
            await session.commit()
            return quotation_response(quotation)

    async def delete_pursuit_cost(self, quotation_id: str, cost_id: str, user: CurrentUser) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_pursuit_open(quotation)

            quotation.pursuit_costs.remove(find_line_item(quotation.pursuit_costs, cost_id, "Pursuit cost"))
            apply_quotation_totals(quotation)
            await session.commit()
            return quotation_response(quotation)

    async def mark_ready(self, quotation_id: str, user: CurrentUser) -> QuotationResponse:
        """Move a quotation to ready once engineering and pricing allow it.

        Raises:
            HTTPException(404): Quotation not found
            HTTPException(409): Invalid status, or lost a concurrent update
            HTTPException(422): Engineering review open, missing line items or non-positive margin
        """
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_transition(quotation, QuotationStatus.READY)

            check = can_mark_ready(quotation.status, quotation.requires_engineering, quotation.engineering_status)
            if not check.can_submit:
                raise HTTPException(status_code=422, detail=check.reason)

            items = validate_line_items(len(quotation.revenue_items), len(quotation.cost_items))
            if not items.valid:
                raise HTTPException(status_code=422, detail=items.error)
            margin = validate_positive_margin(quotation.total_revenue, quotation.total_cost)
            if not margin.valid:
                raise HTTPException(status_code=422, detail=margin.error)

            previous_status = quotation.status
            result = await session.execute(
                update(Quotation)
                .where(
                    Quotation.id == quotation.id,
                    Quotation.status == previous_status,
                    or_(
                        Quotation.requires_engineering.is_(False),
                        Quotation.engineering_status.in_([s.value for s in CLOSED_STATUSES]),
                    ),
                )
                .values(status=QuotationStatus.READY.value, updated_at=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                logger.warning("quotation_ready_conflict", quotation_id=quotation_id, user_id=user.user_id)
                raise HTTPException(status_code=409, detail="Quotation was modified concurrently; reload and retry")

            record_activity(
                session,
                "quotation_ready",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
                from_status=previous_status,
            )
            await session.commit()
            await session.refresh(quotation)
            return quotation_response(quotation)

    async def submit(self, quotation_id: str, user: CurrentUser) -> QuotationResponse:
        """Send a ready quotation to the client.

        Raises:
            HTTPException(404): Quotation not found
            HTTPException(409): Quotation is not ready
            HTTPException(422): Engineering review not completed or waived
        """
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_transition(quotation, QuotationStatus.SUBMITTED)

            check = can_submit_quotation(
                quotation.status, quotation.requires_engineering, quotation.engineering_status
            )
            if not check.can_submit:
                raise HTTPException(status_code=422, detail=check.reason)

            quotation.status = QuotationStatus.SUBMITTED.value
            quotation.submitted_by = user.user_id
            quotation.submitted_at = datetime.now(UTC)
            record_activity(
                session,
                "quotation_submitted",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
            )
            await session.commit()
            return quotation_response(quotation)

    async def mark_won(self, quotation_id: str, user: CurrentUser) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_transition(quotation, QuotationStatus.WON)

            quotation.status = QuotationStatus.WON.value
            quotation.outcome_date = datetime.now(UTC)
            record_activity(
                session,
                "quotation_won",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
                total_revenue=quotation.total_revenue,
            )
            await session.commit()
            return quotation_response(quotation)

    async def mark_lost(self, quotation_id: str, request: MarkLostRequest, user: CurrentUser) -> QuotationResponse:
        """Close a submitted quotation as lost, keeping the categorized reason."""
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_transition(quotation, QuotationStatus.LOST)

            quotation.status = QuotationStatus.LOST.value
            quotation.outcome_date = datetime.now(UTC)
            quotation.outcome_reason = format_outcome_reason(request.category.value, request.detail)
            record_activity(
                session,
                "quotation_lost",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
                reason=quotation.outcome_reason,
            )
            await session.commit()
            return quotation_response(quotation)

    async def cancel(self, quotation_id: str, user: CurrentUser) -> QuotationResponse:
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            self._require_transition(quotation, QuotationStatus.CANCELLED)

            previous_status = quotation.status
            quotation.status = QuotationStatus.CANCELLED.value
            record_activity(
                session,
                "quotation_cancelled",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
                from_status=previous_status,
            )
            await session.commit()
            return quotation_response(quotation)

    async def convert_to_pjos(
        self, quotation_id: str, split_by_shipments: bool, user: CurrentUser
    ) -> ConvertQuotationResponse:
        """Create draft PJOs from a won quotation.

        With split_by_shipments, one PJO is created per estimated shipment and
        every amount is divided evenly between them. Engineering was settled on
        the quotation, so the PJOs start with engineering not required.

        Raises:
            HTTPException(404): Quotation not found
            HTTPException(409): Quotation not won, or already converted
        """
        async with self.session_factory() as session:
            quotation = await self._get_quotation(session, quotation_id)
            if quotation.status != QuotationStatus.WON:
                raise HTTPException(
                    status_code=409,
                    detail=f"Only won quotations can be converted. Current status: {quotation.status}",
                )

            existing = await session.execute(
                select(func.count()).select_from(ProformaJobOrder).where(ProformaJobOrder.quotation_id == quotation.id)
            )
            if existing.scalar_one() > 0:
                raise HTTPException(status_code=409, detail="Quotation has already been converted to PJOs")

            shipments = quotation.estimated_shipments if split_by_shipments else 1
            shipments = max(shipments or 1, 1)
            today = datetime.now(UTC).date()

            pjos = []
            for _ in range(shipments):
                pjo = ProformaJobOrder(
                    pjo_number=await next_pjo_number(session, today),
                    quotation_id=quotation.id,
                    customer_name=quotation.customer_name,
                    commodity=quotation.commodity,
                    pol=quotation.origin,
                    pod=quotation.destination,
                    status=PJOStatus.DRAFT.value,
                    market_type=quotation.market_type,
                    complexity_score=quotation.complexity_score,
                    complexity_factors=list(quotation.complexity_factors or []),
                    requires_engineering=False,
                    engineering_status=EngineeringStatus.NOT_REQUIRED.value,
                    pursuit_cost_allocation=split_amount(quotation.total_pursuit_cost, shipments),
                    created_by=user.user_id,
                    revenue_items=[
                        PJORevenueItem(
                            description=item.description,
                            quantity=item.quantity,
                            unit=item.unit,
                            unit_price=split_amount(item.unit_price, shipments),
                            subtotal=split_amount(item.subtotal, shipments),
                        )
                        for item in quotation.revenue_items
                    ],
                    cost_items=[
                        PJOCostItem(
                            category=item.category,
                            description=item.description,
                            estimated_amount=split_amount(item.estimated_amount, shipments),
                            vendor_name=item.vendor_name,
                        )
                        for item in quotation.cost_items
                    ],
                    **asdict(CargoProfile.from_record(quotation)),
                )
                apply_pjo_totals(pjo)
                session.add(pjo)
                await session.flush()
                pjos.append(pjo)

            record_activity(
                session,
                "quotation_converted",
                "quotation",
                quotation.id,
                user.user_id,
                document_number=quotation.quotation_number,
                pjo_numbers=[p.pjo_number for p in pjos],
            )
            await session.commit()
            return ConvertQuotationResponse(
                quotation_id=str(quotation.id),
                pjo_ids=[str(p.id) for p in pjos],
                pjo_numbers=[p.pjo_number for p in pjos],
            )
