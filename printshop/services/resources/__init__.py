"""Resource services."""

from printshop.services.resources.resource_service import ResourceService
from printshop.services.resources.pricing_service import PricingService, Quote, calculate_quote
from printshop.services.resources.dashboard_service import DashboardService

__all__ = [
    "ResourceService",
    "PricingService",
    "Quote",
    "calculate_quote",
    "DashboardService",
]
