"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from impact_tracker.core.config import get_settings
from impact_tracker.core.exceptions import AuthenticationError
from impact_tracker.interfaces.auth_provider import IAuthProvider, User
from impact_tracker.interfaces.claim_store import IClaimStore
from impact_tracker.interfaces.donor_credit_repository import IDonorCreditRepository
from impact_tracker.interfaces.donor_repository import IDonorRepository
from impact_tracker.interfaces.evidence_store import IEvidenceStore
from impact_tracker.services.coverage_calculator import CoverageService
from impact_tracker.services.donor_credit_service import DonorCreditService


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_claim_store() -> IClaimStore:
    """Get claim store instance."""
    settings = get_settings()
    if settings.is_cloud:
        raise NotImplementedError("Hosted claim store not implemented yet")
    from impact_tracker.infrastructure.local.claim_store import SqliteClaimStore
    return SqliteClaimStore()


@lru_cache()
def get_evidence_store() -> IEvidenceStore:
    """Get evidence store instance."""
    settings = get_settings()
    if settings.is_cloud:
        raise NotImplementedError("Hosted evidence store not implemented yet")
    from impact_tracker.infrastructure.local.evidence_store import SqliteEvidenceStore
    return SqliteEvidenceStore()


@lru_cache()
def get_donor_repository() -> IDonorRepository:
    """Get donor repository instance."""
    settings = get_settings()
    if settings.is_cloud:
        raise NotImplementedError("Hosted donor repository not implemented yet")
    from impact_tracker.infrastructure.local.donor_repository import SqliteDonorRepository
    return SqliteDonorRepository()


@lru_cache()
def get_donor_credit_repository() -> IDonorCreditRepository:
    """Get donor credit repository instance."""
    settings = get_settings()
    if settings.is_cloud:
        raise NotImplementedError("Hosted donor credit repository not implemented yet")
    from impact_tracker.infrastructure.local.donor_credit_repository import SqliteDonorCreditRepository
    return SqliteDonorCreditRepository()


@lru_cache()
def get_auth_provider() -> IAuthProvider:
    """Get auth provider instance."""
    settings = get_settings()
    from impact_tracker.infrastructure.local.mock_auth import MockAuthProvider
    return MockAuthProvider(enabled=settings.AUTH_REQUIRED, dev_user_id=settings.DEV_USER_ID)


# ===========================================
# Service Dependencies
# ===========================================


def get_donor_credit_service(
    credit_repo: IDonorCreditRepository = Depends(get_donor_credit_repository),
    donor_repo: IDonorRepository = Depends(get_donor_repository),
    claim_store: IClaimStore = Depends(get_claim_store),
) -> DonorCreditService:
    """Get donor credit service wired to the configured stores."""
    return DonorCreditService(
        credit_repo,
        donor_repo,
        claim_store,
        decimal_places=get_settings().CREDIT_DECIMAL_PLACES,
    )


def get_coverage_service(
    claim_store: IClaimStore = Depends(get_claim_store),
    evidence_store: IEvidenceStore = Depends(get_evidence_store),
) -> CoverageService:
    """Get coverage service wired to the configured stores."""
    return CoverageService(claim_store, evidence_store)


# ===========================================
# User Authentication
# ===========================================


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> User:
    """
    Get current authenticated user.

    The user ID is the tenant key every ledger operation is scoped by.
    """
    if not auth_provider.is_enabled():
        return auth_provider.default_user()

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )

    # Extract token from "Bearer <token>"
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    try:
        return await auth_provider.verify_token(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        )


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

DonorRepo = Annotated[IDonorRepository, Depends(get_donor_repository)]
CreditService = Annotated[DonorCreditService, Depends(get_donor_credit_service)]
Coverage = Annotated[CoverageService, Depends(get_coverage_service)]
CurrentUser = Annotated[User, Depends(get_current_user)]
