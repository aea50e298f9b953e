"""
Donor model definitions.

Donors are scoped to one initiative and may hold many credits.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DonorBase(BaseModel):
    """Base donor fields."""

    initiative_id: UUID = Field(..., description="Initiative ID")
    name: str = Field(..., min_length=1, max_length=255, description="Donor name")
    email: str = Field(..., min_length=3, max_length=255, description="Contact email")
    organization: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)


class DonorCreate(DonorBase):
    """Schema for creating a donor."""

    pass


class DonorUpdate(BaseModel):
    """Schema for updating a donor."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, min_length=3, max_length=255)
    organization: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)


class Donor(DonorBase):
    """Complete donor model."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str = Field(..., description="Owner user ID")
    created_at: datetime
    updated_at: datetime
