"""
Pydantic models for price quotes.
"""

from typing import Optional
from pydantic import BaseModel, Field


class QuoteRequest(BaseModel):
    """Inputs of the price calculation."""
    material: str = Field(..., min_length=1, description="Material type as stored in inventory")
    weight: float = Field(..., ge=0, description="Grams")
    designHours: float = Field(default=0, ge=0)
    marginPercent: Optional[float] = Field(None, ge=0)
    hourlyDesignRate: Optional[float] = Field(None, ge=0)
    quantity: int = Field(default=1, ge=1)
    bulk: bool = False

    def to_service_args(self) -> dict:
        return {
            "material": self.material,
            "weight": self.weight,
            "design_hours": self.designHours,
            "margin_percent": self.marginPercent,
            "hourly_design_rate": self.hourlyDesignRate,
            "quantity": self.quantity,
            "bulk": self.bulk,
        }
