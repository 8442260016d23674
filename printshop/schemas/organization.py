"""
Pydantic models for session, organization and team requests.
"""

from typing import Optional
from pydantic import BaseModel, Field, EmailStr


class CreateOrganizationRequest(BaseModel):
    """Request to self-provision an organization. Name defaults to "<local-part>'s Team"."""
    name: Optional[str] = Field(None, max_length=100)


class InviteRequest(BaseModel):
    """Request to invite an email address."""
    email: EmailStr
    role: str = Field(default="viewer")


class ChangeRoleRequest(BaseModel):
    """Request to change a member's role."""
    role: str


class DeleteOrganizationRequest(BaseModel):
    """Request to delete an organization. Must repeat its exact name."""
    confirmationName: str
