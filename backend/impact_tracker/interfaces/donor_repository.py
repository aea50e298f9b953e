"""
Donor repository interface.

Defines the contract for donor data operations.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from impact_tracker.models.donor import Donor, DonorCreate, DonorUpdate


class IDonorRepository(ABC):
    """Interface for donor repository operations."""

    @abstractmethod
    async def create(self, user_id: str, donor: DonorCreate) -> Donor:
        """Create a new donor."""
        pass

    @abstractmethod
    async def get(self, user_id: str, donor_id: UUID) -> Donor | None:
        """Get a donor by ID."""
        pass

    @abstractmethod
    async def list_by_initiative(self, user_id: str, initiative_id: UUID) -> list[Donor]:
        """List donors of an initiative, newest first."""
        pass

    @abstractmethod
    async def update(self, user_id: str, donor_id: UUID, update: DonorUpdate) -> Donor:
        """Update a donor. Raises NotFoundError if missing."""
        pass

    @abstractmethod
    async def delete(self, user_id: str, donor_id: UUID) -> bool:
        """Delete a donor and its credits. Returns True if deleted, False if not found."""
        pass
