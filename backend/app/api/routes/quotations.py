"""Quotation API routes."""

from fastapi import APIRouter, Depends, Query

from app.core.auth import CurrentUser, require_auth
from app.db.base import get_session_factory
from app.domain.complexity import MarketType
from app.domain.quotations import QuotationStatus
from app.schemas.quotations import (
    ConvertQuotationRequest,
    ConvertQuotationResponse,
    CostItemRequest,
    CreateQuotationRequest,
    MarkLostRequest,
    PursuitCostRequest,
    QuotationResponse,
    RevenueItemRequest,
    UpdateQuotationRequest,
)
from app.services.quotation_service import QuotationService

router = APIRouter()


@router.post("", response_model=QuotationResponse, status_code=201)
async def create_quotation(request: CreateQuotationRequest, user: CurrentUser = Depends(require_auth)):
    """Create a quotation.

    Complex cargo puts the quotation straight into engineering_review with its
    assessments created.

    Raises:
        HTTPException(422): Negative cargo measurements
    """
    service = QuotationService(get_session_factory())
    return await service.create(request, user)


@router.get("", response_model=list[QuotationResponse])
async def list_quotations(
    status: QuotationStatus | None = Query(None, description="Only quotations in this status"),
    market_type: MarketType | None = Query(None, description="simple or complex"),
    user: CurrentUser = Depends(require_auth),
):
    """List active quotations, newest first."""
    service = QuotationService(get_session_factory())
    return await service.list_quotations(status, market_type)


@router.get("/{quotation_id}", response_model=QuotationResponse)
async def get_quotation(quotation_id: str, user: CurrentUser = Depends(require_auth)):
    service = QuotationService(get_session_factory())
    return await service.get(quotation_id)


@router.patch("/{quotation_id}", response_model=QuotationResponse)
async def update_quotation(
    quotation_id: str, request: UpdateQuotationRequest, user: CurrentUser = Depends(require_auth)
):
    """Edit header fields and cargo.

    New cargo is re-scored; cargo that now scores as complex opens an
    engineering review.

    Raises:
        HTTPException(404): Quotation not found
        HTTPException(409): Quotation locked, or cargo frozen by an opened review
        HTTPException(422): Negative cargo measurements
    """
    service = QuotationService(get_session_factory())
    return await service.update(quotation_id, request, user)


@router.delete("/{quotation_id}")
async def delete_quotation(quotation_id: str, user: CurrentUser = Depends(require_auth)):
    """Soft delete a quotation. Won quotations are kept.

    Raises:
        HTTPException(404): Quotation not found
        HTTPException(409): Quotation is won
    """
    service = QuotationService(get_session_factory())
    await service.delete(quotation_id, user)
    return {"status": "deleted"}


@router.post("/{quotation_id}/revenue-items", response_model=QuotationResponse, status_code=201)
async def add_revenue_item(
    quotation_id: str, request: RevenueItemRequest, user: CurrentUser = Depends(require_auth)
):
    service = QuotationService(get_session_factory())
    return await service.add_revenue_item(quotation_id, request, user)


@router.put("/{quotation_id}/revenue-items/{item_id}", response_model=QuotationResponse)
async def update_revenue_item(
    quotation_id: str,
    item_id: str,
    request: RevenueItemRequest,
    user: CurrentUser = Depends(require_auth),
):
    service = QuotationService(get_session_factory())
    return await service.update_revenue_item(quotation_id, item_id, request, user)


@router.delete("/{quotation_id}/revenue-items/{item_id}", response_model=QuotationResponse)
async def delete_revenue_item(quotation_id: str, item_id: str, user: CurrentUser = Depends(require_auth)):
    service = QuotationService(get_session_factory())
    return await service.delete_revenue_item(quotation_id, item_id, user)


@router.post("/{quotation_id}/cost-items", response_model=QuotationResponse, status_code=201)
async def add_cost_item(quotation_id: str, request: CostItemRequest, user: CurrentUser = Depends(require_auth)):
    service = QuotationService(get_session_factory())
    return await service.add_cost_item(quotation_id, request, user)


@router.put("/{quotation_id}/cost-items/{item_id}", response_model=QuotationResponse)
async def update_cost_item(
    quotation_id: str,
    item_id: str,
    request: CostItemRequest,
    user: CurrentUser = Depends(require_auth),
):
    service = QuotationService(get_session_factory())
    return await service.update_cost_item(quotation_id, item_id, request, user)


@router.delete("/{quotation_id}/cost-items/{item_id}", response_model=QuotationResponse)
async def delete_cost_item(quotation_id: str, item_id: str, user: CurrentUser = Depends(require_auth)):
    service = QuotationService(get_session_factory())
    return await service.delete_cost_item(quotation_id, item_id, user)


@router.post("/{quotation_id}/pursuit-costs", response_model=QuotationResponse, status_code=201)
async def add_pursuit_cost(
    quotation_id: str, request: PursuitCostRequest, user: CurrentUser = Depends(require_auth)
):
    service = QuotationService(get_session_factory())
    return await service.add_pursuit_cost(quotation_id, request, user)


@router.delete("/{quotation_id}/pursuit-costs/{cost_id}", response_model=QuotationResponse)
async def delete_pursuit_cost(quotation_id: str, cost_id: str, user: CurrentUser = Depends(require_auth)):
    """Remove a pursuit cost while the quotation is still open.

    Raises:
        HTTPException(404): Quotation or pursuit cost not found
        HTTPException(409): Quotation won, lost or cancelled
    """
    service = QuotationService(get_session_factory())
    return await service.delete_pursuit_cost(quotation_id, cost_id, user)


@router.post("/{quotation_id}/ready", response_model=QuotationResponse)
async def mark_ready(quotation_id: str, user: CurrentUser = Depends(require_auth)):
    """Mark a quotation ready to send.

    Raises:
        HTTPException(409): Invalid status, or modified concurrently
        HTTPException(422): Engineering review open, missing line items or non-positive margin
    """
    service = QuotationService(get_session_factory())
    return await service.mark_ready(quotation_id, user)


@router.post("/{quotation_id}/submit", response_model=QuotationResponse)
async def submit_quotation(quotation_id: str, user: CurrentUser = Depends(require_auth)):
    service = QuotationService(get_session_factory())
    return await service.submit(quotation_id, user)


@router.post("/{quotation_id}/won", response_model=QuotationResponse)
async def mark_won(quotation_id: str, user: CurrentUser = Depends(require_auth)):
    service = QuotationService(get_session_factory())
    return await service.mark_won(quotation_id, user)


@router.post("/{quotation_id}/lost", response_model=QuotationResponse)
async def mark_lost(quotation_id: str, request: MarkLostRequest, user: CurrentUser = Depends(require_auth)):
    service = QuotationService(get_session_factory())
    return await service.mark_lost(quotation_id, request, user)


@router.post("/{quotation_id}/cancel", response_model=QuotationResponse)
async def cancel_quotation(quotation_id: str, user: CurrentUser = Depends(require_auth)):
    service = QuotationService(get_session_factory())
    return await service.cancel(quotation_id, user)


@router.post("/{quotation_id}/convert", response_model=ConvertQuotationResponse, status_code=201)
async def convert_quotation(
    quotation_id: str,
    request: ConvertQuotationRequest,
    user: CurrentUser = Depends(require_auth),
):
    """Create draft PJOs from a won quotation.

    Raises:
        HTTPException(404): Quotation not found
        HTTPException(409): Quotation not won, or already converted
    """
    service = QuotationService(get_session_factory())
    return await service.convert_to_pjos(quotation_id, request.split_by_shipments, user)
