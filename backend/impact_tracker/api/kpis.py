"""
KPI evidence coverage endpoints.
"""

from uuid import UUID

from fastapi import APIRouter

from impact_tracker.api.deps import Coverage, CurrentUser
from impact_tracker.models.coverage import InitiativeCoverage, KpiCoverage

router = APIRouter(prefix="/kpis", tags=["kpis"])


@router.get("/initiative/{initiative_id}/coverage", response_model=InitiativeCoverage)
async def get_initiative_coverage(
    initiative_id: UUID,
    user: CurrentUser,
    service: Coverage,
) -> InitiativeCoverage:
    """Share of an initiative's KPIs that have any proven claim."""
    return await service.get_initiative_coverage(user.id, initiative_id)


@router.get("/{kpi_id}/coverage", response_model=KpiCoverage)
async def get_kpi_coverage(
    kpi_id: UUID,
    user: CurrentUser,
    service: Coverage,
) -> KpiCoverage:
    """Proof percentage of a KPI's claims, with per-claim detail."""
    return await service.get_kpi_coverage(user.id, kpi_id)
