"""
Evidence model definitions.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from impact_tracker.models.enums import EvidenceType


class Evidence(BaseModel):
    """Proof record with a date or a date range."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str = Field(..., description="Owner user ID")
    title: str = Field("", max_length=255)
    type: EvidenceType = EvidenceType.DOCUMENTATION
    date_represented: Optional[date] = None
    date_range_start: Optional[date] = None
    date_range_end: Optional[date] = None
    created_at: Optional[datetime] = None

    @property
    def has_range(self) -> bool:
        return self.date_range_start is not None and self.date_range_end is not None
