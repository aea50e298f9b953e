"""
Donor credit model definitions.

A credit attributes part of a KPI's measured impact to a donor, either against
the KPI's total (metric-level, kpi_update_id is None) or against a single
claim (claim-level).
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from impact_tracker.models.enums import CreditScope

# donor_credits.credited_value is NUMERIC(15, 2): at most 13 integer digits
MAX_CREDITED_VALUE = 10**13


@dataclass(frozen=True)
class CreditScopeRef:
    """The (KPI[, claim]) pair a credit total is evaluated against."""

    kpi_id: UUID
    kpi_update_id: Optional[UUID] = None

    @property
    def scope(self) -> CreditScope:
        return CreditScope.CLAIM if self.kpi_update_id else CreditScope.METRIC

    @property
    def key(self) -> str:
        return f"{self.kpi_id}:{self.kpi_update_id or '*'}"


class DonorCreditBase(BaseModel):
    """Base donor credit fields."""

    donor_id: UUID = Field(..., description="Donor ID")
    kpi_id: UUID = Field(..., description="KPI ID")
    kpi_update_id: Optional[UUID] = Field(None, description="Claim ID for claim-level credits")
    credited_value: float = Field(
        ..., ge=0, lt=MAX_CREDITED_VALUE, allow_inf_nan=False, description="Units of impact credited"
    )
    credited_percentage: Optional[float] = Field(None, ge=0, le=100)
    date_range_start: Optional[date] = None
    date_range_end: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _check_date_range(self):
        if self.date_range_start and self.date_range_end and self.date_range_end < self.date_range_start:
            raise ValueError("date_range_end must not be before date_range_start")
        return self


class DonorCreditCreate(DonorCreditBase):
    """Schema for creating a donor credit."""

    @property
    def scope_ref(self) -> CreditScopeRef:
        return CreditScopeRef(self.kpi_id, self.kpi_update_id)


class DonorCreditUpdate(BaseModel):
    """
    Schema for updating a donor credit.

    Only fields present in the request are applied; sending kpi_update_id=null
    explicitly moves a claim-level credit to metric level.
    """

    kpi_id: Optional[UUID] = None
    kpi_update_id: Optional[UUID] = None
    credited_value: Optional[float] = Field(None, ge=0, lt=MAX_CREDITED_VALUE, allow_inf_nan=False)
    credited_percentage: Optional[float] = Field(None, ge=0, le=100)
    date_range_start: Optional[date] = None
    date_range_end: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _check_date_range(self):
        if self.date_range_start and self.date_range_end and self.date_range_end < self.date_range_start:
            raise ValueError("date_range_end must not be before date_range_start")
        return self

    def changes_allocation(self) -> bool:
        """True when the update can raise some scope's credited total."""
        return bool({"credited_value", "kpi_id", "kpi_update_id"} & self.model_fields_set)


class DonorCredit(DonorCreditBase):
    """Complete donor credit model."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str = Field(..., description="Owner user ID")
    needs_review: bool = Field(False, description="Set when the scope's ceiling dropped below its credits")
    created_at: datetime
    updated_at: datetime

    @property
    def scope_ref(self) -> CreditScopeRef:
        return CreditScopeRef(self.kpi_id, self.kpi_update_id)


class DonorSummary(BaseModel):
    id: UUID
    name: str
    email: str
    organization: Optional[str] = None


class KpiSummary(BaseModel):
    id: UUID
    title: str
    unit_of_measurement: str = ""
    initiative_id: Optional[UUID] = None


class ClaimSummary(BaseModel):
    id: UUID
    value: float
    date_represented: Optional[date] = None
    date_range_start: Optional[date] = None
    date_range_end: Optional[date] = None


class DonorCreditDetail(DonorCredit):
    """Donor credit joined with donor, KPI and claim summaries."""

    donor: Optional[DonorSummary] = None
    kpi: Optional[KpiSummary] = None
    kpi_update: Optional[ClaimSummary] = None


class ScopeAvailability(BaseModel):
    """Creditable capacity remaining in one scope."""

    kpi_id: UUID
    kpi_update_id: Optional[UUID] = None
    scope: CreditScope
    ceiling: float = Field(..., description="Claim value, or the KPI's summed claim values")
    already_credited: float = Field(..., description="Credits in scope, minus the excluded row")
    available: float = Field(..., description="ceiling - already_credited; negative when over-allocated")
    excluding_credit_id: Optional[UUID] = None
    donor_id: Optional[UUID] = None
    donor_credited: Optional[float] = Field(None, description="The donor's own credits in scope")
    available_for_donor: Optional[float] = Field(
        None, description="ceiling - other donors' credits in scope"
    )


class CreditTotal(BaseModel):
    total: float


class ReconcileResult(BaseModel):
    """Outcome of re-checking a KPI's credits against its current claims."""

    kpi_id: UUID
    removed_credit_ids: list[UUID] = Field(default_factory=list)
    flagged_credit_ids: list[UUID] = Field(default_factory=list)
    cleared_credit_ids: list[UUID] = Field(default_factory=list)
    over_allocated: list[ScopeAvailability] = Field(default_factory=list)
