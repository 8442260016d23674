"""
Pydantic models for sign-up and sign-in.
"""

from typing import Optional
from pydantic import BaseModel, Field, EmailStr


class SignUpRequest(BaseModel):
    """Request body for account creation."""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    displayName: Optional[str] = Field(None, max_length=100)


class SignInRequest(BaseModel):
    """Request body for email/password sign-in."""
    email: EmailStr
    password: str = Field(..., min_length=1)
