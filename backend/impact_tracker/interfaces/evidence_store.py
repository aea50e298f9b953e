"""
Evidence store interface.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from impact_tracker.models.evidence import Evidence


class IEvidenceStore(ABC):
    """Interface for reading evidence records."""

    @abstractmethod
    async def list_evidence_for_kpi(self, user_id: str, kpi_id: UUID) -> list[Evidence]:
        """
        List evidence linked to a KPI.

        Includes evidence linked to the KPI directly (legacy coarse link) and
        evidence linked to any of the KPI's claims. Each record appears once.
        """
        pass

    @abstractmethod
    async def list_evidence_for_claim(self, user_id: str, claim_id: UUID) -> list[Evidence]:
        """List evidence precisely linked to one claim."""
        pass
