"""Pydantic models (schemas) for the application."""

from impact_tracker.models.enums import CreditScope, EvidenceType, KpiCategory
from impact_tracker.models.kpi import Claim, Kpi
from impact_tracker.models.evidence import Evidence
from impact_tracker.models.donor import Donor, DonorCreate, DonorUpdate
from impact_tracker.models.donor_credit import (
    CreditScopeRef,
    CreditTotal,
    DonorCredit,
    DonorCreditCreate,
    DonorCreditDetail,
    DonorCreditUpdate,
    ReconcileResult,
    ScopeAvailability,
)
from impact_tracker.models.coverage import ClaimCoverage, EvidenceTypeStat, InitiativeCoverage, KpiCoverage

__all__ = [
    # Enums
    "CreditScope",
    "EvidenceType",
    "KpiCategory",
    # Upstream records
    "Kpi",
    "Claim",
    "Evidence",
    # Donors
    "Donor",
    "DonorCreate",
    "DonorUpdate",
    # Credits
    "CreditScopeRef",
    "CreditTotal",
    "DonorCredit",
    "DonorCreditCreate",
    "DonorCreditDetail",
    "DonorCreditUpdate",
    "ReconcileResult",
    "ScopeAvailability",
    # Coverage
    "ClaimCoverage",
    "EvidenceTypeStat",
    "InitiativeCoverage",
    "KpiCoverage",
]
