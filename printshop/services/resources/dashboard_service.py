"""
Dashboard statistics and analytics over an organization's resources.
"""

import logging
from typing import List, Dict, Any

from printshop.schemas.resources import ProjectStatus, ResourceKind
from printshop.services.organization.access import MemberContext
from printshop.services.resources.resource_service import ResourceService

logger = logging.getLogger(__name__)

TOP_MATERIALS_LIMIT = 5
RECENT_PROJECTS_LIMIT = 4


def _number(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def low_stock_materials(materials: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Materials whose stock fell below their reorder threshold."""
    return [
        m for m in materials
        if _number(m.get("stockInGrams")) < _number(m.get("reorderThreshold"))
    ]


class DashboardService:
    """
    Read-only summaries for any member of the organization.
    """

    def __init__(self, resource_service: ResourceService):
        self._resources = resource_service

    async def get_overview(self, context: MemberContext) -> Dict[str, Any]:
        """
        Get dashboard statistics.

        Returns:
            dict with counts, revenue, stock totals, top materials,
            recent projects and low-stock alerts
        """
        clients = await self._resources.list_resources(context, ResourceKind.CLIENTS)
        projects = await self._resources.list_resources(context, ResourceKind.PROJECTS)
        materials = await self._resources.list_resources(context, ResourceKind.MATERIALS)

        active = [p for p in projects if p.get("status") == ProjectStatus.IN_PROGRESS.value]
        completed = [p for p in projects if p.get("status") == ProjectStatus.COMPLETED.value]
        revenue = sum(_number(p.get("budget")) for p in completed)
        total_stock_grams = sum(_number(m.get("stockInGrams")) for m in materials)

        top_materials = sorted(
            materials,
            key=lambda m: _number(m.get("stockInGrams")),
            reverse=True,
        )[:TOP_MATERIALS_LIMIT]

        return {
            "clientCount": len(clients),
            "activeProjects": len(active),
            "completedProjects": len(completed),
            "totalRevenue": round(revenue, 2),
            "totalStockKg": round(total_stock_grams / 1000, 2),
            "topMaterials": top_materials,
            # list_resources is already newest first
            "recentProjects": projects[:RECENT_PROJECTS_LIMIT],
            "lowStock": low_stock_materials(materials),
        }

    async def get_analytics(self, context: MemberContext) -> Dict[str, Any]:
        """
        Projects per status and how often each material is used.
        """
        projects = await self._resources.list_resources(context, ResourceKind.PROJECTS)

        by_status = {status.value: 0 for status in ProjectStatus}
        material_usage: Dict[str, int] = {}

        for project in projects:
            status = project.get("status")
            if status in by_status:
                by_status[status] += 1

            material = project.get("material")
            if material:
                material_usage[material] = material_usage.get(material, 0) + 1

        return {
            "projectsByStatus": by_status,
            "materialUsage": [
                {"name": name, "count": count} for name, count in material_usage.items()
            ],
        }

    async def get_low_stock(self, context: MemberContext) -> List[Dict[str, Any]]:
        materials = await self._resources.list_resources(context, ResourceKind.MATERIALS)
        return low_stock_materials(materials)
