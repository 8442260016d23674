"""Unit tests for DashboardService."""

import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from printshop.schemas.resources import ResourceKind
from printshop.services.resources.dashboard_service import DashboardService, low_stock_materials


def _project(status, budget=0, material=None, days_ago=0):
    return {
        "id": str(ObjectId()),
        "status": status,
        "budget": budget,
        "material": material,
        "createdAt": datetime.now(timezone.utc) - timedelta(days=days_ago),
    }


@pytest.fixture
def resources():
    data = {
        ResourceKind.CLIENTS: [{"id": "c1"}, {"id": "c2"}],
        ResourceKind.PROJECTS: [
            _project("in_progress", 40, "PLA", days_ago=0),
            _project("completed", 67.6, "PLA", days_ago=1),
            _project("completed", 100, "PETG", days_ago=2),
            _project("queued", 0, None, days_ago=3),
            _project("queued", 0, "PLA", days_ago=4),
        ],
        ResourceKind.MATERIALS: [
            {"id": "m1", "type": "PLA", "stockInGrams": 1500, "reorderThreshold": 200},
            {"id": "m2", "type": "PETG", "stockInGrams": 150, "reorderThreshold": 200},
            {"id": "m3", "type": "ABS", "stockInGrams": 0},
        ],
    }
    service = MagicMock()
    service.list_resources = AsyncMock(side_effect=lambda context, kind: data[kind])
    return service


@pytest.fixture
def service(resources):
    return DashboardService(resources)


class TestLowStock:
    def test_below_threshold_only(self):
        materials = [
            {"id": "a", "stockInGrams": 100, "reorderThreshold": 200},
            {"id": "b", "stockInGrams": 200, "reorderThreshold": 200},
            {"id": "c", "stockInGrams": None, "reorderThreshold": None},
        ]
        assert [m["id"] for m in low_stock_materials(materials)] == ["a"]

    @pytest.mark.asyncio
    async def test_get_low_stock(self, service, make_context):
        low = await service.get_low_stock(make_context())
        assert [m["id"] for m in low] == ["m2"]


class TestOverview:
    @pytest.mark.asyncio
    async def test_counts_and_totals(self, service, make_context):
        overview = await service.get_overview(make_context())

        assert overview["clientCount"] == 2
        assert overview["activeProjects"] == 1
        assert overview["completedProjects"] == 2
        assert overview["totalRevenue"] == 167.6
        assert overview["totalStockKg"] == 1.65
        assert [m["id"] for m in overview["topMaterials"]] == ["m1", "m2", "m3"]
        assert len(overview["recentProjects"]) == 4
        assert [m["id"] for m in overview["lowStock"]] == ["m2"]


class TestAnalytics:
    @pytest.mark.asyncio
    async def test_projects_by_status_and_material_usage(self, service, make_context):
        analytics = await service.get_analytics(make_context())

        assert analytics["projectsByStatus"] == {"queued": 2, "in_progress": 1, "completed": 2}
        assert analytics["materialUsage"] == [
            {"name": "PLA", "count": 3},
            {"name": "PETG", "count": 1},
        ]
