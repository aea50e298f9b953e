"""
Claim store interface.

Read-only view of KPIs and their claims (KPI updates). Claims are written by
the KPI CRUD layer, never by the donor credit subsystem.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from impact_tracker.models.kpi import Claim, Kpi


class IClaimStore(ABC):
    """Interface for reading KPIs and claims."""

    @abstractmethod
    async def get_kpi(self, user_id: str, kpi_id: UUID) -> Kpi | None:
        """Get a KPI owned by the user."""
        pass

    @abstractmethod
    async def list_kpis_for_initiative(self, user_id: str, initiative_id: UUID) -> list[Kpi]:
        """List the user's KPIs of an initiative."""
        pass

    @abstractmethod
    async def list_claims_for_kpi(self, user_id: str, kpi_id: UUID) -> list[Claim]:
        """List every claim recorded against a KPI."""
        pass

    @abstractmethod
    async def get_claim(self, user_id: str, claim_id: UUID) -> Claim | None:
        """Get a single claim owned by the user."""
        pass
