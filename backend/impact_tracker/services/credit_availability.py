"""
Availability and allocation arithmetic for donor credits.

All amounts are Decimal quantized to the ledger's storage precision, so the
number shown as "available" is exactly the number the allocation check
enforces.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable
from uuid import UUID

from impact_tracker.core.exceptions import AllocationExceededError, ValidationError
from impact_tracker.models.donor_credit import CreditScopeRef, ScopeAvailability
from impact_tracker.models.kpi import Claim


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def to_amount(value, places: int) -> Decimal:
    """Quantize a credited amount to the ledger precision."""
    try:
        amount = Decimal(str(value)).quantize(_quantum(places), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"credited_value {value} is not a storable amount")
    if not amount.is_finite():
        raise ValidationError(f"credited_value {value} is not a storable amount")
    return amount


def compute_ceiling(scope: CreditScopeRef, claims: Iterable[Claim], places: int) -> Decimal:
    """
    Maximum creditable value of a scope.

    Claim scope: that claim's value. Metric scope: the sum of every claim of
    the KPI. A claim scope whose claim is absent from claims has ceiling 0.
    Rounded down so a stored credit can never exceed the measured value.
    """
    if scope.kpi_update_id is not None:
        values = [c.value for c in claims if c.id == scope.kpi_update_id]
    else:
        values = [c.value for c in claims]
    total = sum((Decimal(str(v)) for v in values), Decimal(0))
    return total.quantize(_quantum(places), rounding=ROUND_FLOOR)


def compute_availability(
    scope: CreditScopeRef,
    ceiling: Decimal,
    already_credited: Decimal,
    excluding_credit_id: UUID | None = None,
    donor_id: UUID | None = None,
    donor_credited: Decimal | None = None,
    scope_total: Decimal | None = None,
) -> ScopeAvailability:
    """
    Remaining capacity of a scope.

    available = ceiling - already_credited, negative when over-allocated.
    With a donor, available_for_donor = ceiling - (other donors' credits),
    the most that donor's own row may hold.
    """
    available_for_donor = None
    if donor_id is not None and donor_credited is not None:
        total = scope_total if scope_total is not None else already_credited
        available_for_donor = float(ceiling - (total - donor_credited))

    return ScopeAvailability(
        kpi_id=scope.kpi_id,
        kpi_update_id=scope.kpi_update_id,
        scope=scope.scope,
        ceiling=float(ceiling),
        already_credited=float(already_credited),
        available=float(ceiling - already_credited),
        excluding_credit_id=excluding_credit_id,
        donor_id=donor_id,
        donor_credited=float(donor_credited) if donor_credited is not None else None,
        available_for_donor=available_for_donor,
    )


def check_allocation(ceiling: Decimal, already_credited: Decimal, credited_value: Decimal) -> None:
    """Raise AllocationExceededError if already_credited + credited_value > ceiling."""
    if already_credited + credited_value > ceiling:
        available = ceiling - already_credited
        raise AllocationExceededError(
            f"Credited value exceeds available amount. Available: {available:.2f}",
            ceiling=float(ceiling),
            available=float(available),
        )
