"""
Donor credit repository interface.

Defines the contract for the credit ledger. Writes that can raise a scope's
total go through locked_scopes() so that reading the total, validating and
writing happen in one transaction while concurrent writers to the same scope
wait.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from impact_tracker.models.donor_credit import (
    CreditScopeRef,
    DonorCredit,
    DonorCreditCreate,
    DonorCreditDetail,
    DonorCreditUpdate,
)


class ICreditLedgerTransaction(ABC):
    """Ledger operations bound to one tenant and one open transaction."""

    @abstractmethod
    async def total_for_scope(
        self,
        scope: CreditScopeRef,
        excluding_credit_id: UUID | None = None,
        donor_id: UUID | None = None,
    ) -> Decimal:
        """Sum credited_value in scope, optionally skipping one row or keeping one donor."""
        pass

    @abstractmethod
    async def get(self, credit_id: UUID) -> DonorCredit | None:
        """Get a credit row inside the transaction."""
        pass

    @abstractmethod
    async def find_for_donor(self, donor_id: UUID, scope: CreditScopeRef) -> DonorCredit | None:
        """Get the donor's existing row for a scope, if any."""
        pass

    @abstractmethod
    async def list_for_scope(self, scope: CreditScopeRef) -> list[DonorCredit]:
        """List every credit row in a scope."""
        pass

    @abstractmethod
    async def insert(self, credit: DonorCreditCreate) -> DonorCredit:
        """Insert a credit row."""
        pass

    @abstractmethod
    async def update(self, credit_id: UUID, update: DonorCreditUpdate) -> DonorCredit:
        """Apply the fields set on update. Raises NotFoundError if missing."""
        pass

    @abstractmethod
    async def set_needs_review(self, credit_ids: Iterable[UUID], flagged: bool) -> None:
        """Set or clear the review flag on credit rows."""
        pass

    @abstractmethod
    async def delete_many(self, credit_ids: Iterable[UUID]) -> int:
        """Delete credit rows. Returns the number deleted."""
        pass


class IDonorCreditRepository(ABC):
    """Interface for donor credit repository operations."""

    @abstractmethod
    def locked_scopes(
        self, user_id: str, scopes: Iterable[CreditScopeRef]
    ) -> AbstractAsyncContextManager[ICreditLedgerTransaction]:
        """
        Open a transaction holding the lock of every given scope.

        Commits when the block exits normally and rolls back on any exception.
        Raises ConcurrencyConflictError when a lock cannot be obtained.
        """
        pass

    @abstractmethod
    async def get(self, user_id: str, credit_id: UUID) -> DonorCredit | None:
        """Get a credit by ID."""
        pass

    @abstractmethod
    async def get_detail(self, user_id: str, credit_id: UUID) -> DonorCreditDetail | None:
        """Get a credit joined with donor, KPI and claim summaries."""
        pass

    @abstractmethod
    async def list_for_donor(self, user_id: str, donor_id: UUID) -> list[DonorCreditDetail]:
        """List a donor's credits, newest first."""
        pass

    @abstractmethod
    async def list_for_kpi(self, user_id: str, kpi_id: UUID) -> list[DonorCreditDetail]:
        """List every credit against a KPI (both granularities), newest first."""
        pass

    @abstractmethod
    async def list_for_initiative(
        self, user_id: str, initiative_id: UUID, donor_id: UUID | None = None
    ) -> list[DonorCreditDetail]:
        """List credits whose KPI belongs to an initiative."""
        pass

    @abstractmethod
    async def total_for_scope(
        self,
        user_id: str,
        scope: CreditScopeRef,
        excluding_credit_id: UUID | None = None,
        donor_id: UUID | None = None,
    ) -> Decimal:
        """Sum credited_value in scope (same query as ICreditLedgerTransaction.total_for_scope)."""
        pass

    @abstractmethod
    async def delete(self, user_id: str, credit_id: UUID) -> bool:
        """Delete a credit. Returns True if deleted, False if not found."""
        pass
