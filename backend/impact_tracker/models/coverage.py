"""
Evidence coverage models.
"""

from uuid import UUID

from pydantic import BaseModel, Field


class ClaimCoverage(BaseModel):
    """Proof status of one claim."""

    claim_id: UUID
    proven: bool
    evidence_ids: list[UUID] = Field(default_factory=list, description="Evidence matching the claim by date")
    completion_percentage: int = Field(0, ge=0, le=100, description="Share of the claim's days with linked proof")


class EvidenceTypeStat(BaseModel):
    type: str
    count: int
    percentage: int
    label: str


class KpiCoverage(BaseModel):
    """Proof percentage and breakdown for one KPI."""

    kpi_id: UUID
    evidence_percentage: int = Field(..., ge=0, le=100)
    total_claims: int
    proven_claims: int
    total_value: float
    evidence_count: int
    claims: list[ClaimCoverage] = Field(default_factory=list)
    evidence_types: list[EvidenceTypeStat] = Field(default_factory=list)


class InitiativeCoverage(BaseModel):
    initiative_id: UUID
    total_kpis: int
    kpis_with_evidence: int
    evidence_coverage_percentage: int
    kpis: list[KpiCoverage] = Field(default_factory=list)
