"""Proforma job order API routes."""

from fastapi import APIRouter, Depends, Query

from app.core.auth import CurrentUser, require_auth
from app.db.base import get_session_factory
from app.domain.approval import PJOStatus
from app.domain.complexity import MarketType
from app.schemas.pjos import (
    ActualCostRequest,
    ApprovalStatusResponse,
    CostItemResponse,
    CreatePJORequest,
    PJOResponse,
    RejectPJORequest,
    UpdatePJORequest,
)
from app.schemas.quotations import CostItemRequest, RevenueItemRequest
from app.services.pjo_service import PJOService

router = APIRouter()


@router.post("", response_model=PJOResponse, status_code=201)
async def create_pjo(request: CreatePJORequest, user: CurrentUser = Depends(require_auth)):
    """Create a draft PJO.

    Cargo is scored against the complexity criteria; a complex PJO starts with
    an engineering review already opened.

    Raises:
        HTTPException(422): Negative cargo measurements
    """
    service = PJOService(get_session_factory())
    return await service.create(request, user)


@router.get("", response_model=list[PJOResponse])
async def list_pjos(
    status: PJOStatus | None = Query(None, description="Only PJOs in this status"),
    market_type: MarketType | None = Query(None, description="simple or complex"),
    user: CurrentUser = Depends(require_auth),
):
    """List active PJOs, newest first."""
    service = PJOService(get_session_factory())
    return await service.list_pjos(status, market_type)


@router.get("/{pjo_id}", response_model=PJOResponse)
async def get_pjo(pjo_id: str, user: CurrentUser = Depends(require_auth)):
    service = PJOService(get_session_factory())
    return await service.get(pjo_id)


@router.patch("/{pjo_id}", response_model=PJOResponse)
async def update_pjo(pjo_id: str, request: UpdatePJORequest, user: CurrentUser = Depends(require_auth)):
    """Edit header fields and cargo of a draft PJO.

    Raises:
        HTTPException(404): PJO not found
        HTTPException(409): PJO is not a draft, or cargo frozen by an opened review
        HTTPException(422): Negative cargo measurements
    """
    service = PJOService(get_session_factory())
    return await service.update(pjo_id, request, user)


@router.delete("/{pjo_id}")
async def delete_pjo(pjo_id: str, user: CurrentUser = Depends(require_auth)):
    """Soft delete a draft PJO.

    Raises:
        HTTPException(404): PJO not found
        HTTPException(409): PJO is not a draft
    """
    service = PJOService(get_session_factory())
    await service.delete(pjo_id, user)
    return {"status": "deleted"}


@router.post("/{pjo_id}/revenue-items", response_model=PJOResponse, status_code=201)
async def add_revenue_item(pjo_id: str, request: RevenueItemRequest, user: CurrentUser = Depends(require_auth)):
    service = PJOService(get_session_factory())
    return await service.add_revenue_item(pjo_id, request, user)


@router.put("/{pjo_id}/revenue-items/{item_id}", response_model=PJOResponse)
async def update_revenue_item(
    pjo_id: str,
    item_id: str,
    request: RevenueItemRequest,
    user: CurrentUser = Depends(require_auth),
):
    service = PJOService(get_session_factory())
    return await service.update_revenue_item(pjo_id, item_id, request, user)


@router.delete("/{pjo_id}/revenue-items/{item_id}", response_model=PJOResponse)
async def delete_revenue_item(pjo_id: str, item_id: str, user: CurrentUser = Depends(require_auth)):
    service = PJOService(get_session_factory())
    return await service.delete_revenue_item(pjo_id, item_id, user)


@router.post("/{pjo_id}/cost-items", response_model=PJOResponse, status_code=201)
async def add_cost_item(pjo_id: str, request: CostItemRequest, user: CurrentUser = Depends(require_auth)):
    service = PJOService(get_session_factory())
    return await service.add_cost_item(pjo_id, request, user)


@router.put("/{pjo_id}/cost-items/{item_id}", response_model=PJOResponse)
async def update_cost_item(
    pjo_id: str,
    item_id: str,
    request: CostItemRequest,
    user: CurrentUser = Depends(require_auth),
):
    service = PJOService(get_session_factory())
    return await service.update_cost_item(pjo_id, item_id, request, user)


@router.delete("/{pjo_id}/cost-items/{item_id}", response_model=PJOResponse)
async def delete_cost_item(pjo_id: str, item_id: str, user: CurrentUser = Depends(require_auth)):
    service = PJOService(get_session_factory())
    return await service.delete_cost_item(pjo_id, item_id, user)


@router.post("/{pjo_id}/cost-items/{item_id}/actual", response_model=CostItemResponse)
async def record_actual_cost(
    pjo_id: str,
    item_id: str,
    request: ActualCostRequest,
    user: CurrentUser = Depends(require_auth),
):
    """Record the realised amount of a cost line and classify it against budget.

    Raises:
        HTTPException(404): PJO or cost item not found
        HTTPException(409): PJO is not approved
    """
    service = PJOService(get_session_factory())
    return await service.record_actual_cost(pjo_id, item_id, request.actual_amount, user)


@router.post("/{pjo_id}/submit", response_model=PJOResponse)
async def submit_pjo(pjo_id: str, user: CurrentUser = Depends(require_auth)):
    """Send a draft PJO for approval.

    Raises:
        HTTPException(404): PJO not found
        HTTPException(409): PJO is not a draft
        HTTPException(422): Missing line items or non-positive margin
    """
    service = PJOService(get_session_factory())
    return await service.submit(pjo_id, user)


@router.get("/{pjo_id}/approval-status", response_model=ApprovalStatusResponse)
async def get_approval_status(pjo_id: str, user: CurrentUser = Depends(require_auth)):
    """Whether the PJO can be approved right now, and why not."""
    service = PJOService(get_session_factory())
    return await service.get_approval_status(pjo_id)


@router.post("/{pjo_id}/approve", response_model=PJOResponse)
async def approve_pjo(pjo_id: str, user: CurrentUser = Depends(require_auth)):
    """Approve a PJO pending approval.

    Raises:
        HTTPException(404): PJO not found
        HTTPException(409): PJO not pending approval, or modified concurrently
        HTTPException(422): Engineering review not completed or waived
    """
    service = PJOService(get_session_factory())
    return await service.approve(pjo_id, user)


@router.post("/{pjo_id}/reject", response_model=PJOResponse)
async def reject_pjo(pjo_id: str, request: RejectPJORequest, user: CurrentUser = Depends(require_auth)):
    """Reject a PJO pending approval.

    Raises:
        HTTPException(404): PJO not found
        HTTPException(409): PJO not pending approval
        HTTPException(422): Reason empty
    """
    service = PJOService(get_session_factory())
    return await service.reject(pjo_id, request.reason, user)
