"""
Donor API endpoints.

Provides CRUD operations for an initiative's donors.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from impact_tracker.api.deps import CreditService, CurrentUser, DonorRepo
from impact_tracker.core.exceptions import NotFoundError
from impact_tracker.core.logger import setup_logger
from impact_tracker.models.donor import Donor, DonorCreate, DonorUpdate
from impact_tracker.models.donor_credit import DonorCreditDetail

logger = setup_logger(__name__)

router = APIRouter(prefix="/donors", tags=["donors"])


@router.get("", response_model=list[Donor])
async def list_donors(
    user: CurrentUser,
    repo: DonorRepo,
    initiative_id: UUID | None = Query(None, description="Initiative whose donors to list"),
) -> list[Donor]:
    """List donors of an initiative."""
    if not initiative_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="initiative_id query parameter is required",
        )
    return await repo.list_by_initiative(user.id, initiative_id)


@router.post("", response_model=Donor, status_code=status.HTTP_201_CREATED)
async def create_donor(
    donor: DonorCreate,
    user: CurrentUser,
    repo: DonorRepo,
) -> Donor:
    """Create a new donor."""
    created = await repo.create(user.id, donor)
    logger.info(f"Created donor {created.id} for initiative {created.initiative_id}")
    return created


@router.get("/{donor_id}", response_model=Donor)
async def get_donor(
    donor_id: UUID,
    user: CurrentUser,
    repo: DonorRepo,
) -> Donor:
    """Get a donor by ID."""
    donor = await repo.get(user.id, donor_id)
    if not donor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Donor {donor_id} not found",
        )
    return donor


@router.get("/{donor_id}/credits", response_model=list[DonorCreditDetail])
async def list_credits_of_donor(
    donor_id: UUID,
    user: CurrentUser,
    repo: DonorRepo,
    service: CreditService,
) -> list[DonorCreditDetail]:
    """List a donor's credits."""
    donor = await repo.get(user.id, donor_id)
    if not donor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Donor {donor_id} not found",
        )
    return await service.list_for_donor(user.id, donor_id)


@router.put("/{donor_id}", response_model=Donor)
async def update_donor(
    donor_id: UUID,
    update: DonorUpdate,
    user: CurrentUser,
    repo: DonorRepo,
) -> Donor:
    """Update a donor."""
    try:
        return await repo.update(user.id, donor_id, update)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.delete("/{donor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_donor(
    donor_id: UUID,
    user: CurrentUser,
    repo: DonorRepo,
):
    """Delete a donor and its credits."""
    deleted = await repo.delete(user.id, donor_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Donor {donor_id} not found",
        )
    logger.info(f"Deleted donor {donor_id}")
