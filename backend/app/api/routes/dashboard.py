"""Dashboard API endpoints.

GET /api/dashboard/director      - Director KPIs (cached)
GET /api/dashboard/finance/aging - Accounts receivable aging
"""

from fastapi import APIRouter, Depends, Query

from app.core.auth import CurrentUser, require_auth
from app.db.base import get_session_factory
from app.db.redis import get_redis
from app.schemas.dashboard import ARAgingResponse, DirectorDashboardResponse
from app.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/director", response_model=DirectorDashboardResponse)
async def get_director_dashboard(
    refresh: bool = Query(False, description="Bypass the cached metrics"),
    user: CurrentUser = Depends(require_auth),
    redis=Depends(get_redis),
) -> DirectorDashboardResponse:
    """Business performance, operations, pipeline and financial health."""
    service = DashboardService(get_session_factory(), redis)
    return await service.get_director_dashboard(refresh=refresh)


@router.get("/finance/aging", response_model=ARAgingResponse)
async def get_ar_aging(user: CurrentUser = Depends(require_auth)) -> ARAgingResponse:
    """Outstanding invoices per aging bucket and the overdue list, worst first."""
    service = DashboardService(get_session_factory())
    return await service.get_ar_aging()
