"""
Print shop API routers.

All routers are imported here for easy access.
"""

from printshop.routers.auth import router as auth_router
from printshop.routers.session import router as session_router
from printshop.routers.organization import router as organization_router
from printshop.routers.resources import router as resources_router
from printshop.routers.pricing import router as pricing_router
from printshop.routers.dashboard import router as dashboard_router
from printshop.routers.live import router as live_router

__all__ = [
    "auth_router",
    "session_router",
    "organization_router",
    "resources_router",
    "pricing_router",
    "dashboard_router",
    "live_router",
]
