"""
FastAPI router for dashboard endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from common.utils import list_response, success_response
from printshop.dependencies import CurrentMember, get_dashboard_service
from printshop.services.resources.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("")
async def get_dashboard(
    member: CurrentMember,
    dashboard_service: Annotated[DashboardService, Depends(get_dashboard_service)],
):
    """Get overview statistics."""
    overview = await dashboard_service.get_overview(member)
    return success_response(overview)


@router.get("/analytics")
async def get_analytics(
    member: CurrentMember,
    dashboard_service: Annotated[DashboardService, Depends(get_dashboard_service)],
):
    """Projects per status and material usage."""
    analytics = await dashboard_service.get_analytics(member)
    return success_response(analytics)


@router.get("/low-stock")
async def get_low_stock(
    member: CurrentMember,
    dashboard_service: Annotated[DashboardService, Depends(get_dashboard_service)],
):
    """Materials below their reorder threshold."""
    materials = await dashboard_service.get_low_stock(member)
    return list_response(materials)
