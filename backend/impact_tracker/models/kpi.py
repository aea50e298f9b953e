"""
KPI and claim (KPI update) model definitions.

Both are owned by the KPI CRUD layer; this service only reads them.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from impact_tracker.models.enums import KpiCategory


class Kpi(BaseModel):
    """Organization-scoped metric definition."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str = Field(..., description="Owner user ID")
    initiative_id: UUID = Field(..., description="Initiative the KPI belongs to")
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    unit_of_measurement: str = Field("", max_length=100)
    category: KpiCategory = KpiCategory.OUTPUT
    created_at: Optional[datetime] = None


class Claim(BaseModel):
    """
    A dated measurement recorded against a KPI.

    Point claims only carry date_represented; interval claims also carry both
    range bounds (date_represented then acts as the anchor).
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    kpi_id: UUID
    user_id: str = Field(..., description="Owner user ID")
    value: float = Field(..., ge=0)
    date_represented: Optional[date] = None
    date_range_start: Optional[date] = None
    date_range_end: Optional[date] = None
    created_at: Optional[datetime] = None

    @property
    def is_range(self) -> bool:
        return self.date_range_start is not None and self.date_range_end is not None
