"""
Donor credit API endpoints.

Attribution of measured KPI impact to donors, at metric or claim level.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from impact_tracker.api.deps import CreditService, CurrentUser
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

router = APIRouter(prefix="/donor-credits", tags=["donor-credits"])


@router.get("/donor/{donor_id}", response_model=list[DonorCreditDetail])
async def list_donor_credits(
    donor_id: UUID,
    user: CurrentUser,
    service: CreditService,
) -> list[DonorCreditDetail]:
    """List a donor's credits with donor, KPI and claim summaries."""
    return await service.list_for_donor(user.id, donor_id)


@router.get("/metric/{kpi_id}", response_model=list[DonorCreditDetail])
async def list_kpi_credits(
    kpi_id: UUID,
    user: CurrentUser,
    service: CreditService,
) -> list[DonorCreditDetail]:
    """List every credit against a KPI, metric and claim level."""
    return await service.list_for_kpi(user.id, kpi_id)


@router.post("/metric/{kpi_id}/reconcile", response_model=ReconcileResult)
async def reconcile_kpi_credits(
    kpi_id: UUID,
    user: CurrentUser,
    service: CreditService,
) -> ReconcileResult:
    """Re-check a KPI's credits after its claims changed."""
    return await service.reconcile_kpi(user.id, kpi_id)


@router.get("/total/{kpi_id}", response_model=CreditTotal)
async def get_credit_total(
    kpi_id: UUID,
    user: CurrentUser,
    service: CreditService,
    kpi_update_id: UUID | None = Query(None, description="Claim ID for a claim-level total"),
) -> CreditTotal:
    """Total credited in one scope."""
    total = await service.total_for_scope(user.id, CreditScopeRef(kpi_id, kpi_update_id))
    return CreditTotal(total=total)


@router.get("/available/{kpi_id}", response_model=ScopeAvailability)
async def get_available_credit(
    kpi_id: UUID,
    user: CurrentUser,
    service: CreditService,
    kpi_update_id: UUID | None = Query(None, description="Claim ID for claim-level availability"),
    donor_id: UUID | None = Query(None, description="Donor whose editable amount to report"),
    excluding_credit_id: UUID | None = Query(None, description="Credit being edited"),
) -> ScopeAvailability:
    """Remaining creditable capacity of a scope."""
    return await service.get_availability(
        user.id,
        CreditScopeRef(kpi_id, kpi_update_id),
        excluding_credit_id=excluding_credit_id,
        donor_id=donor_id,
    )


@router.get("/initiative/{initiative_id}", response_model=list[DonorCreditDetail])
async def list_initiative_credits(
    initiative_id: UUID,
    user: CurrentUser,
    service: CreditService,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    donor_id: UUID | None = Query(None),
) -> list[DonorCreditDetail]:
    """List an initiative's credits, optionally within a date window."""
    return await service.list_for_initiative(
        user.id, initiative_id, start_date=start_date, end_date=end_date, donor_id=donor_id
    )


@router.get("/{credit_id}", response_model=DonorCreditDetail)
async def get_donor_credit(
    credit_id: UUID,
    user: CurrentUser,
    service: CreditService,
) -> DonorCreditDetail:
    """Get a donor credit by ID."""
    return await service.get(user.id, credit_id)


@router.post("", response_model=DonorCredit, status_code=status.HTTP_201_CREATED)
async def create_donor_credit(
    credit: DonorCreditCreate,
    user: CurrentUser,
    service: CreditService,
) -> DonorCredit:
    """Create a donor credit. Rejected when it would exceed the scope's ceiling."""
    return await service.create(user.id, credit)


@router.put("/{credit_id}", response_model=DonorCredit)
async def update_donor_credit(
    credit_id: UUID,
    update: DonorCreditUpdate,
    user: CurrentUser,
    service: CreditService,
) -> DonorCredit:
    """Update a donor credit's value, scope or details."""
    return await service.update(user.id, credit_id, update)


@router.delete("/{credit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_donor_credit(
    credit_id: UUID,
    user: CurrentUser,
    service: CreditService,
):
    """Delete a donor credit."""
    await service.delete(user.id, credit_id)
