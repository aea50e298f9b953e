"""
Donor credit allocation service.

Every write that can raise a scope's total runs inside locked_scopes(): the
ceiling and the scope total are read after the scope lock is held, the
candidate value is checked, and the row is written in the same transaction.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from impact_tracker.core.config import get_settings
from impact_tracker.core.exceptions import AllocationExceededError, NotFoundError, ValidationError
from impact_tracker.core.logger import setup_logger
from impact_tracker.interfaces.claim_store import IClaimStore
from impact_tracker.interfaces.donor_credit_repository import ICreditLedgerTransaction, IDonorCreditRepository
from impact_tracker.interfaces.donor_repository import IDonorRepository
from impact_tracker.models.donor_credit import (
    CreditScopeRef,
    DonorCredit,
    DonorCreditCreate,
    DonorCreditDetail,
    DonorCreditUpdate,
    ReconcileResult,
    ScopeAvailability,
)
from impact_tracker.models.kpi import Kpi
from impact_tracker.services.credit_availability import (
    check_allocation,
    compute_availability,
    compute_ceiling,
    to_amount,
)

logger = setup_logger(__name__)


def credit_date(credit: DonorCreditDetail) -> date | None:
    """Date a credit is reported under: its own range start, else its claim's date."""
    if credit.date_range_start:
        return credit.date_range_start
    if credit.kpi_update:
        return credit.kpi_update.date_represented or credit.kpi_update.date_range_start
    return None


class DonorCreditService:
    """Validates and records donor credits against measured KPI values."""

    def __init__(
        self,
        credit_repo: IDonorCreditRepository,
        donor_repo: IDonorRepository,
        claim_store: IClaimStore,
        decimal_places: int | None = None,
    ):
        self._credits = credit_repo
        self._donors = donor_repo
        self._claims = claim_store
        self._places = decimal_places if decimal_places is not None else get_settings().CREDIT_DECIMAL_PLACES

    # ===========================================
    # Reference checks
    # ===========================================

    async def _require_kpi(self, user_id: str, kpi_id: UUID) -> Kpi:
        kpi = await self._claims.get_kpi(user_id, kpi_id)
        if not kpi:
            raise ValidationError(f"KPI {kpi_id} not found")
        return kpi

    async def _check_scope(self, user_id: str, scope: CreditScopeRef) -> Kpi:
        kpi = await self._require_kpi(user_id, scope.kpi_id)
        if scope.kpi_update_id is not None:
            claim = await self._claims.get_claim(user_id, scope.kpi_update_id)
            if not claim:
                raise ValidationError(f"Claim {scope.kpi_update_id} not found")
            if claim.kpi_id != scope.kpi_id:
                raise ValidationError(f"Claim {scope.kpi_update_id} does not belong to KPI {scope.kpi_id}")
        return kpi

    async def _check_donor(self, user_id: str, donor_id: UUID, kpi: Kpi) -> None:
        donor = await self._donors.get(user_id, donor_id)
        if not donor:
            raise ValidationError(f"Donor {donor_id} not found")
        if donor.initiative_id != kpi.initiative_id:
            raise ValidationError(f"Donor {donor_id} does not belong to the KPI's initiative")

    async def _ceiling(self, user_id: str, scope: CreditScopeRef) -> Decimal:
        # Recomputed from the claim store on every call, never cached
        claims = await self._claims.list_claims_for_kpi(user_id, scope.kpi_id)
        return compute_ceiling(scope, claims, self._places)

    async def _validate_in_scope(
        self,
        tx: ICreditLedgerTransaction,
        user_id: str,
        scope: CreditScopeRef,
        credited_value: Decimal,
        excluding_credit_id: UUID | None = None,
    ) -> None:
        ceiling = await self._ceiling(user_id, scope)
        already = await tx.total_for_scope(scope, excluding_credit_id=excluding_credit_id)
        try:
            check_allocation(ceiling, already, credited_value)
        except AllocationExceededError:
            logger.info(
                f"Allocation rejected for scope {scope.key}: requested {credited_value}, "
                f"ceiling {ceiling}, already credited {already}"
            )
            raise

    async def _clear_scope_review(self, tx: ICreditLedgerTransaction, scope: CreditScopeRef) -> None:
        """A scope that just passed validation is no longer over-allocated."""
        flagged = [c.id for c in await tx.list_for_scope(scope) if c.needs_review]
        await tx.set_needs_review(flagged, False)

    # ===========================================
    # Writes
    # ===========================================

    async def create(self, user_id: str, data: DonorCreditCreate) -> DonorCredit:
        scope = data.scope_ref
        kpi = await self._check_scope(user_id, scope)
        await self._check_donor(user_id, data.donor_id, kpi)

        value = to_amount(data.credited_value, self._places)
        data = data.model_copy(update={"credited_value": float(value)})

        async with self._credits.locked_scopes(user_id, [scope]) as tx:
            if await tx.find_for_donor(data.donor_id, scope):
                raise ValidationError(
                    f"Donor {data.donor_id} already has a credit for this "
                    f"{scope.scope.value}; update the existing credit instead"
                )
            await self._validate_in_scope(tx, user_id, scope, value)
            await self._clear_scope_review(tx, scope)
            credit = await tx.insert(data)

        logger.info(f"Created donor credit {credit.id}: {value} on scope {scope.key}")
        return credit

    async def update(self, user_id: str, credit_id: UUID, data: DonorCreditUpdate) -> DonorCredit:
        current = await self._credits.get(user_id, credit_id)
        if not current:
            raise NotFoundError(f"Donor credit {credit_id} not found")

        fields = data.model_fields_set
        for required in ("kpi_id", "credited_value"):
            if required in fields and getattr(data, required) is None:
                raise ValidationError(f"{required} cannot be null")

        new_scope = CreditScopeRef(
            data.kpi_id if "kpi_id" in fields else current.kpi_id,
            data.kpi_update_id if "kpi_update_id" in fields else current.kpi_update_id,
        )
        start = data.date_range_start if "date_range_start" in fields else current.date_range_start
        end = data.date_range_end if "date_range_end" in fields else current.date_range_end
        if start and end and end < start:
            raise ValidationError("date_range_end must not be before date_range_start")

        if not data.changes_allocation():
            async with self._credits.locked_scopes(user_id, []) as tx:
                credit = await tx.update(credit_id, data)
            logger.info(f"Updated donor credit {credit_id} (details only)")
            return credit

        if new_scope != current.scope_ref:
            kpi = await self._check_scope(user_id, new_scope)
            await self._check_donor(user_id, current.donor_id, kpi)

        raw_value = data.credited_value if "credited_value" in fields else current.credited_value
        value = to_amount(raw_value, self._places)
        data = data.model_copy(update={"credited_value": float(value)})

        async with self._credits.locked_scopes(user_id, {current.scope_ref, new_scope}) as tx:
            locked = await tx.get(credit_id)
            if not locked:
                raise NotFoundError(f"Donor credit {credit_id} not found")
            if locked.scope_ref != current.scope_ref:
                raise ValidationError(f"Donor credit {credit_id} changed scope concurrently; retry")
            if new_scope != current.scope_ref:
                existing = await tx.find_for_donor(current.donor_id, new_scope)
                if existing and existing.id != credit_id:
                    raise ValidationError(
                        f"Donor {current.donor_id} already has a credit for this "
                        f"{new_scope.scope.value}; update the existing credit instead"
                    )
            await self._validate_in_scope(tx, user_id, new_scope, value, excluding_credit_id=credit_id)
            await self._clear_scope_review(tx, new_scope)
            credit = await tx.update(credit_id, data)

        logger.info(f"Updated donor credit {credit_id}: {value} on scope {new_scope.key}")
        return credit

    async def delete(self, user_id: str, credit_id: UUID) -> None:
        """Delete a credit. Only lowers totals, so no allocation check."""
        deleted = await self._credits.delete(user_id, credit_id)
        if not deleted:
            raise NotFoundError(f"Donor credit {credit_id} not found")
        logger.info(f"Deleted donor credit {credit_id}")

    # ===========================================
    # Reads
    # ===========================================

    async def get(self, user_id: str, credit_id: UUID) -> DonorCreditDetail:
        credit = await self._credits.get_detail(user_id, credit_id)
        if not credit:
            raise NotFoundError(f"Donor credit {credit_id} not found")
        return credit

    async def list_for_donor(self, user_id: str, donor_id: UUID) -> list[DonorCreditDetail]:
        return await self._credits.list_for_donor(user_id, donor_id)

    async def list_for_kpi(self, user_id: str, kpi_id: UUID) -> list[DonorCreditDetail]:
        return await self._credits.list_for_kpi(user_id, kpi_id)

    async def list_for_initiative(
        self,
        user_id: str,
        initiative_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        donor_id: UUID | None = None,
    ) -> list[DonorCreditDetail]:
        credits = await self._credits.list_for_initiative(user_id, initiative_id, donor_id=donor_id)
        if start_date is None and end_date is None:
            return credits

        filtered = []
        for credit in credits:
            when = credit_date(credit)
            if when is None:
                continue
            if start_date and when < start_date:
                continue
            if end_date and when > end_date:
                continue
            filtered.append(credit)
        return filtered

    async def total_for_scope(self, user_id: str, scope: CreditScopeRef) -> float:
        await self._check_scope(user_id, scope)
        return float(await self._credits.total_for_scope(user_id, scope))

    async def get_availability(
        self,
        user_id: str,
        scope: CreditScopeRef,
        excluding_credit_id: UUID | None = None,
        donor_id: UUID | None = None,
    ) -> ScopeAvailability:
        """Remaining creditable capacity of a scope, optionally for one donor."""
        await self._check_scope(user_id, scope)
        ceiling = await self._ceiling(user_id, scope)
        already = await self._credits.total_for_scope(user_id, scope, excluding_credit_id=excluding_credit_id)

        donor_credited = None
        scope_total = None
        if donor_id is not None:
            donor_credited = await self._credits.total_for_scope(user_id, scope, donor_id=donor_id)
            scope_total = await self._credits.total_for_scope(user_id, scope)

        return compute_availability(
            scope,
            ceiling,
            already,
            excluding_credit_id=excluding_credit_id,
            donor_id=donor_id,
            donor_credited=donor_credited,
            scope_total=scope_total,
        )

    # ===========================================
    # Reconciliation after upstream claim changes
    # ===========================================

    async def reconcile_kpi(self, user_id: str, kpi_id: UUID) -> ReconcileResult:
        """
        Re-check every scope of a KPI against its current claims.

        Deletes claim-level credits whose claim is gone and flags every credit
        of an over-allocated scope for review (clearing the flag elsewhere).
        """
        await self._require_kpi(user_id, kpi_id)
        existing = await self._credits.list_for_kpi(user_id, kpi_id)
        claims = await self._claims.list_claims_for_kpi(user_id, kpi_id)
        claim_ids = {c.id for c in claims}

        scopes = {CreditScopeRef(kpi_id)}
        scopes |= {CreditScopeRef(kpi_id, claim_id) for claim_id in claim_ids}
        scopes |= {c.scope_ref for c in existing}

        result = ReconcileResult(kpi_id=kpi_id)
        async with self._credits.locked_scopes(user_id, scopes) as tx:
            claims = await self._claims.list_claims_for_kpi(user_id, kpi_id)
            claim_ids = {c.id for c in claims}

            for scope in sorted(scopes, key=lambda s: s.key):
                rows = await tx.list_for_scope(scope)
                if not rows:
                    continue

                if scope.kpi_update_id is not None and scope.kpi_update_id not in claim_ids:
                    await tx.delete_many(c.id for c in rows)
                    result.removed_credit_ids.extend(c.id for c in rows)
                    logger.warning(
                        f"Removed {len(rows)} credits of deleted claim {scope.kpi_update_id} on KPI {kpi_id}"
                    )
                    continue

                ceiling = compute_ceiling(scope, claims, self._places)
                total = await tx.total_for_scope(scope)
                if total > ceiling:
                    to_flag = [c.id for c in rows if not c.needs_review]
                    await tx.set_needs_review(to_flag, True)
                    result.flagged_credit_ids.extend(to_flag)
                    result.over_allocated.append(compute_availability(scope, ceiling, total))
                    logger.warning(
                        f"Scope {scope.key} over-allocated: credited {total}, ceiling {ceiling}; "
                        f"{len(rows)} credits flagged for review"
                    )
                else:
                    to_clear = [c.id for c in rows if c.needs_review]
                    await tx.set_needs_review(to_clear, False)
                    result.cleared_credit_ids.extend(to_clear)

        logger.info(
            f"Reconciled KPI {kpi_id}: removed {len(result.removed_credit_ids)}, "
            f"flagged {len(result.flagged_credit_ids)}, cleared {len(result.cleared_credit_ids)}"
        )
        return result
