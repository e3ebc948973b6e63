from fastapi import APIRouter

from app.api.routes import dashboard, engineering, health, pjos, quotations

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(quotations.router, prefix="/quotations", tags=["quotations"])
api_router.include_router(pjos.router, prefix="/pjos", tags=["pjos"])
api_router.include_router(engineering.router, prefix="/engineering", tags=["engineering"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
