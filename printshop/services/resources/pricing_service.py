"""
Quote calculation.

    materialCost = weightGrams * pricePerKg / 1000
    designCost   = designHours * hourlyDesignRate
    totalCost    = materialCost + designCost
    finalPrice   = totalCost * (1 + marginPercent / 100) * (quantity if bulk else 1)

pricePerKg is read from the organization's inventory at calculation time, so a
quote always reflects current material prices.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from common.utils.exceptions import (
    ConflictException,
    ValidationException,
)
from printshop.schemas.resources import ProjectStatus, ResourceKind
from printshop.services.organization.access import MemberContext, Role, require_role
from printshop.services.resources.resource_service import ResourceService

logger = logging.getLogger(__name__)


@dataclass
class Quote:
    material: str
    pricePerKg: float
    weight: float
    designHours: float
    hourlyDesignRate: float
    marginPercent: float
    quantity: int
    bulk: bool
    materialCost: float
    designCost: float
    totalCost: float
    finalPrice: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_quote(
    price_per_kg: float,
    weight_grams: float,
    design_hours: float,
    hourly_rate: float,
    margin_percent: float,
    quantity: int = 1,
    bulk: bool = False,
    material: str = "",
) -> Quote:
    """Pure price computation; money values are rounded to cents."""
    for name, value in (
        ("weight", weight_grams),
        ("designHours", design_hours),
        ("hourlyDesignRate", hourly_rate),
        ("marginPercent", margin_percent),
    ):
        if value is None or value < 0:
            raise ValidationException(
                message=f"{name} must be zero or positive",
                code="VALIDATION_ERROR",
            )
    if quantity is None or quantity < 1:
        raise ValidationException(
            message="quantity must be at least 1",
            code="VALIDATION_ERROR",
        )

    material_cost = weight_grams * price_per_kg / 1000
    design_cost = design_hours * hourly_rate
    total_cost = material_cost + design_cost
    multiplier = quantity if bulk else 1
    final_price = total_cost * (1 + margin_percent / 100) * multiplier

    return Quote(
        material=material,
        pricePerKg=price_per_kg,
        weight=weight_grams,
        designHours=design_hours,
        hourlyDesignRate=hourly_rate,
        marginPercent=margin_percent,
        quantity=quantity,
        bulk=bulk,
        materialCost=round(material_cost, 2),
        designCost=round(design_cost, 2),
        totalCost=round(total_cost, 2),
        finalPrice=round(final_price, 2),
    )


class PricingService:
    """
    Prices print jobs against the organization's inventory.
    """

    def __init__(
        self,
        resource_service: ResourceService,
        hourly_design_rate: float = 25.0,
        default_margin_percent: float = 30.0,
    ):
        """
        Initialize PricingService.

        Args:
            resource_service: Organization-scoped resource access
            hourly_design_rate: Default design rate per hour
            default_margin_percent: Default profit margin
        """
        self._resources = resource_service
        self._materials_collection = resource_service.collection(ResourceKind.MATERIALS)
        self._projects_collection = resource_service.collection(ResourceKind.PROJECTS)
        self._hourly_design_rate = hourly_design_rate
        self._default_margin_percent = default_margin_percent

    async def _price_per_kg(self, context: MemberContext, material_type: str) -> float:
        materials = await self._materials_collection.find(
            {"organizationId": context.organization_id, "type": material_type},
            sort=[("createdAt", 1)],
            limit=1,
        ).to_list(length=1)

        if not materials:
            raise ValidationException(
                message=f"Material '{material_type}' is not in inventory",
                code="MATERIAL_NOT_IN_INVENTORY",
            )
        return float(materials[0].get("pricePerKg") or 0)

    async def calculate(
        self,
        context: MemberContext,
        material: str,
        weight: float,
        design_hours: float = 0,
        margin_percent: Optional[float] = None,
        hourly_design_rate: Optional[float] = None,
        quantity: int = 1,
        bulk: bool = False,
    ) -> Quote:
        """
        Calculate a quote. Any member may price a job.

        Args:
            context: Acting member
            material: Material type as stored in inventory (e.g. "PLA")
            weight: Weight in grams
            design_hours: Design time in hours
            margin_percent: Profit margin, defaults to settings
            hourly_design_rate: Design rate, defaults to settings
            quantity: Units, applied only when ``bulk`` is set
            bulk: Multiply the price by ``quantity``

        Returns:
            Quote
        """
        price_per_kg = await self._price_per_kg(context, material)

        return calculate_quote(
            price_per_kg=price_per_kg,
            weight_grams=weight,
            design_hours=design_hours,
            hourly_rate=self._hourly_design_rate if hourly_design_rate is None else hourly_design_rate,
            margin_percent=self._default_margin_percent if margin_percent is None else margin_percent,
            quantity=quantity,
            bulk=bulk,
            material=material,
        )

    async def save_project_quote(
        self,
        context: MemberContext,
        project_id: str,
        **quote_args: Any,
    ) -> Dict[str, Any]:
        """
        Price a project and write the quote onto it.

        Writes budget, weight, material, designHours and quantity. Completed
        projects are locked.

        Raises:
            ConflictException: PROJECT_LOCKED for completed projects
        """
        require_role(context, Role.EDITOR, "save quotes")

        project = await self._resources.get_resource(context, ResourceKind.PROJECTS, project_id)
        if project.get("status") == ProjectStatus.COMPLETED.value:
            raise ConflictException(
                message="Completed projects cannot be re-priced",
                code="PROJECT_LOCKED",
            )

        quote = await self.calculate(context, **quote_args)

        result = await self._projects_collection.update_one(
            {
                **self._resources.document_filter(context, ResourceKind.PROJECTS, project_id),
                "status": {"$ne": ProjectStatus.COMPLETED.value},
            },
            {
                "$set": {
                    "budget": quote.finalPrice,
                    "weight": quote.weight,
                    "material": quote.material,
                    "designHours": quote.designHours,
                    "quantity": quote.quantity,
                    "updatedAt": datetime.now(timezone.utc),
                }
            },
        )

        if result.matched_count == 0:
            raise ConflictException(
                message="Completed projects cannot be re-priced",
                code="PROJECT_LOCKED",
            )

        logger.info(f"Saved quote {quote.finalPrice} on project {project_id}")
        return {
            "quote": quote.to_dict(),
            "project": await self._resources.get_resource(context, ResourceKind.PROJECTS, project_id),
        }
