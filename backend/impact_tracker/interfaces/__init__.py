"""Abstract interfaces for infrastructure abstraction."""

from impact_tracker.interfaces.auth_provider import IAuthProvider
from impact_tracker.interfaces.claim_store import IClaimStore
from impact_tracker.interfaces.donor_credit_repository import (
    ICreditLedgerTransaction,
    IDonorCreditRepository,
)
from impact_tracker.interfaces.donor_repository import IDonorRepository
from impact_tracker.interfaces.evidence_store import IEvidenceStore

__all__ = [
    "IAuthProvider",
    "IClaimStore",
    "IEvidenceStore",
    "IDonorRepository",
    "IDonorCreditRepository",
    "ICreditLedgerTransaction",
]
