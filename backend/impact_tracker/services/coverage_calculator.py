"""
Evidence coverage calculation.

Matches a KPI's claims against its evidence by date. Everything except
CoverageService is a pure function of its inputs, so results never depend on
the order records come back from the store.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from impact_tracker.core.exceptions import NotFoundError
from impact_tracker.core.logger import setup_logger
from impact_tracker.interfaces.claim_store import IClaimStore
from impact_tracker.interfaces.evidence_store import IEvidenceStore
from impact_tracker.models.coverage import ClaimCoverage, EvidenceTypeStat, InitiativeCoverage, KpiCoverage
from impact_tracker.models.evidence import Evidence
from impact_tracker.models.kpi import Claim

logger = setup_logger(__name__)


def percent(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return int((Decimal(100 * part) / Decimal(whole)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def evidence_covers_claim(evidence: Evidence, claim: Claim) -> bool:
    """True when the evidence date equals the claim date or its range contains it."""
    if claim.date_represented is None:
        return False
    if evidence.date_represented is not None and evidence.date_represented == claim.date_represented:
        return True
    if evidence.has_range:
        return evidence.date_range_start <= claim.date_represented <= evidence.date_range_end
    return False


def matching_evidence_ids(claim: Claim, evidence: Iterable[Evidence]) -> list[UUID]:
    return sorted((e.id for e in evidence if evidence_covers_claim(e, claim)), key=str)


def compute_coverage_percentage(claims: Iterable[Claim], evidence: Iterable[Evidence]) -> int:
    """Share of claims proven by at least one evidence record."""
    claim_list = list(claims)
    evidence_list = list(evidence)
    proven = sum(1 for claim in claim_list if any(evidence_covers_claim(e, claim) for e in evidence_list))
    return percent(proven, len(claim_list))


def _days(start: date, end: date) -> set[date]:
    return {start + timedelta(days=offset) for offset in range((end - start).days + 1)}


def compute_completion_percentage(claim: Claim, linked_evidence: Iterable[Evidence], proven: bool) -> int:
    """
    How much of one claim is backed by proof.

    Range claims count the days of [start, end] covered by evidence linked to
    that claim; an evidence range counts over its overlap, a dated evidence
    counts one day. Point claims are all or nothing.
    """
    if not claim.is_range:
        return 100 if proven else 0
    if claim.date_range_end < claim.date_range_start:
        return 0

    claim_days = _days(claim.date_range_start, claim.date_range_end)
    covered: set[date] = set()
    for evidence in linked_evidence:
        if evidence.has_range:
            start = max(evidence.date_range_start, claim.date_range_start)
            end = min(evidence.date_range_end, claim.date_range_end)
            if start <= end:
                covered |= _days(start, end)
        elif evidence.date_represented in claim_days:
            covered.add(evidence.date_represented)
    return percent(len(covered), len(claim_days))


def evidence_type_label(evidence_type: str) -> str:
    return " ".join(word.capitalize() for word in evidence_type.split("_"))


def summarize_evidence_types(evidence: Iterable[Evidence]) -> list[EvidenceTypeStat]:
    """Count evidence per type, most frequent first."""
    counts = Counter(e.type.value for e in evidence)
    total = sum(counts.values())
    return [
        EvidenceTypeStat(
            type=evidence_type,
            count=count,
            percentage=percent(count, total),
            label=evidence_type_label(evidence_type),
        )
        for evidence_type, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def build_kpi_coverage(
    kpi_id: UUID,
    claims: Iterable[Claim],
    evidence: Iterable[Evidence],
    linked_by_claim: dict[UUID, list[Evidence]] | None = None,
) -> KpiCoverage:
    """Assemble the coverage report of one KPI from already-fetched records."""
    claim_list = sorted(claims, key=lambda c: (c.date_represented or date.min, str(c.id)))
    evidence_list = list(evidence)
    linked_by_claim = linked_by_claim or {}

    claim_reports = []
    for claim in claim_list:
        evidence_ids = matching_evidence_ids(claim, evidence_list)
        proven = bool(evidence_ids)
        claim_reports.append(
            ClaimCoverage(
                claim_id=claim.id,
                proven=proven,
                evidence_ids=evidence_ids,
                completion_percentage=compute_completion_percentage(
                    claim, linked_by_claim.get(claim.id, []), proven
                ),
            )
        )

    proven_count = sum(1 for report in claim_reports if report.proven)
    return KpiCoverage(
        kpi_id=kpi_id,
        evidence_percentage=compute_coverage_percentage(claim_list, evidence_list),
        total_claims=len(claim_list),
        proven_claims=proven_count,
        total_value=float(sum(Decimal(str(c.value)) for c in claim_list)),
        evidence_count=len(evidence_list),
        claims=claim_reports,
        evidence_types=summarize_evidence_types(evidence_list),
    )


class CoverageService:
    """Reads claims and evidence and reports proof coverage."""

    def __init__(self, claim_store: IClaimStore, evidence_store: IEvidenceStore):
        self._claims = claim_store
        self._evidence = evidence_store

    async def _coverage_for(self, user_id: str, kpi_id: UUID) -> KpiCoverage:
        claims = await self._claims.list_claims_for_kpi(user_id, kpi_id)
        evidence = await self._evidence.list_evidence_for_kpi(user_id, kpi_id)
        linked_by_claim = {}
        for claim in claims:
            if claim.is_range:
                linked_by_claim[claim.id] = await self._evidence.list_evidence_for_claim(user_id, claim.id)
        return build_kpi_coverage(kpi_id, claims, evidence, linked_by_claim)

    async def get_kpi_coverage(self, user_id: str, kpi_id: UUID) -> KpiCoverage:
        kpi = await self._claims.get_kpi(user_id, kpi_id)
        if not kpi:
            raise NotFoundError(f"KPI {kpi_id} not found")
        return await self._coverage_for(user_id, kpi_id)

    async def get_initiative_coverage(self, user_id: str, initiative_id: UUID) -> InitiativeCoverage:
        kpis = await self._claims.list_kpis_for_initiative(user_id, initiative_id)
        reports = [await self._coverage_for(user_id, kpi.id) for kpi in kpis]
        with_evidence = sum(1 for report in reports if report.evidence_percentage > 0)
        logger.debug(f"Initiative {initiative_id}: {with_evidence}/{len(reports)} KPIs with evidence")
        return InitiativeCoverage(
            initiative_id=initiative_id,
            total_kpis=len(reports),
            kpis_with_evidence=with_evidence,
            evidence_coverage_percentage=percent(with_evidence, len(reports)),
            kpis=reports,
        )
