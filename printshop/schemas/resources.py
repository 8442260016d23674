"""
Pydantic models for the per-organization resources.

The same models back request validation in the routers and the checks the
resource service runs before every write.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ResourceKind(str, Enum):
    """Collections holding organization-scoped resources."""
    CLIENTS = "clients"
    PROJECTS = "projects"
    MATERIALS = "materials"
    EXPENSES = "expenses"


class ProjectStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ResourceModel(BaseModel):
    """Base for resource payloads; unknown fields are dropped."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class ClientData(ResourceModel):
    """A customer of the print shop."""
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=254)
    phone: Optional[str] = Field(None, max_length=50)


class ProjectData(ResourceModel):
    """A print job."""
    name: str = Field(..., min_length=1, max_length=200)
    client: Optional[str] = None
    status: ProjectStatus = ProjectStatus.QUEUED
    estimatedDeliveryDate: Optional[dt.date] = None
    type: Optional[str] = None
    material: Optional[str] = None
    description: Optional[str] = Field(None, max_length=5000)
    quantity: int = Field(default=1, ge=1)
    budget: float = Field(default=0, ge=0)
    weight: float = Field(default=0, ge=0)
    designHours: float = Field(default=0, ge=0)


class MaterialData(ResourceModel):
    """A filament or resin in inventory."""
    name: str = Field(..., min_length=1, max_length=200)
    brand: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=50)
    color: Optional[str] = None
    pricePerKg: float = Field(default=0, ge=0)
    stockInGrams: float = Field(default=0, ge=0)
    reorderThreshold: float = Field(default=0, ge=0)


class ExpenseData(ResourceModel):
    """A business expense."""
    description: str = Field(..., min_length=1, max_length=500)
    amount: float = Field(..., ge=0)
    category: str = Field(default="Material", min_length=1, max_length=100)
    date: Optional[dt.date] = None


RESOURCE_MODELS = {
    ResourceKind.CLIENTS: ClientData,
    ResourceKind.PROJECTS: ProjectData,
    ResourceKind.MATERIALS: MaterialData,
    ResourceKind.EXPENSES: ExpenseData,
}


class ProjectStatusRequest(BaseModel):
    """Request to move a project to another status."""
    status: ProjectStatus
