"""
Unit tests for evidence coverage calculation.
"""

import random
from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from impact_tracker.models.enums import EvidenceType
from impact_tracker.models.evidence import Evidence
from impact_tracker.models.kpi import Claim
from impact_tracker.services.coverage_calculator import (
    CoverageService,
    build_kpi_coverage,
    compute_completion_percentage,
    compute_coverage_percentage,
    evidence_covers_claim,
    evidence_type_label,
    percent,
    summarize_evidence_types,
)


def _claim(
    on: date | None = date(2024, 5, 1),
    value: float = 10,
    start: date | None = None,
    end: date | None = None,
) -> Claim:
    return Claim(
        id=uuid4(),
        kpi_id=uuid4(),
        user_id="u",
        value=value,
        date_represented=on,
        date_range_start=start,
        date_range_end=end,
    )


def _evidence(
    on: date | None = None,
    start: date | None = None,
    end: date | None = None,
    evidence_type: EvidenceType = EvidenceType.DOCUMENTATION,
) -> Evidence:
    return Evidence(
        id=uuid4(),
        user_id="u",
        type=evidence_type,
        date_represented=on,
        date_range_start=start,
        date_range_end=end,
    )


def test_point_date_match():
    claim = _claim(date(2024, 5, 1))
    assert evidence_covers_claim(_evidence(date(2024, 5, 1)), claim)
    assert not evidence_covers_claim(_evidence(date(2024, 5, 2)), claim)


def test_range_match_is_inclusive():
    evidence = _evidence(start=date(2024, 5, 1), end=date(2024, 5, 15))
    assert evidence_covers_claim(evidence, _claim(date(2024, 5, 10)))
    assert evidence_covers_claim(evidence, _claim(date(2024, 5, 1)))
    assert evidence_covers_claim(evidence, _claim(date(2024, 5, 15)))
    assert not evidence_covers_claim(evidence, _claim(date(2024, 5, 20)))


def test_half_open_evidence_range_does_not_match():
    evidence = _evidence(start=date(2024, 5, 1))
    assert not evidence_covers_claim(evidence, _claim(date(2024, 5, 10)))


def test_undated_records_never_match():
    assert not evidence_covers_claim(_evidence(None), _claim(None))
    assert not evidence_covers_claim(_evidence(date(2024, 5, 1)), _claim(None))
    assert not evidence_covers_claim(_evidence(None), _claim(date(2024, 5, 1)))


def test_coverage_is_zero_without_claims():
    assert compute_coverage_percentage([], [_evidence(date(2024, 5, 1))]) == 0


def test_claim_without_evidence_counts_toward_total():
    claims = [_claim(date(2024, 5, 1)), _claim(date(2024, 5, 2)), _claim(date(2024, 5, 3))]
    evidence = [_evidence(date(2024, 5, 1))]
    assert compute_coverage_percentage(claims, evidence) == 33


def test_coverage_is_order_independent():
    claims = [_claim(date(2024, 5, day)) for day in range(1, 8)]
    evidence = [
        _evidence(date(2024, 5, 2)),
        _evidence(start=date(2024, 5, 4), end=date(2024, 5, 5)),
        _evidence(date(2024, 6, 1)),
    ]
    expected = compute_coverage_percentage(claims, evidence)
    rng = random.Random(7)
    for _ in range(10):
        shuffled_claims = claims[:]
        shuffled_evidence = evidence[:]
        rng.shuffle(shuffled_claims)
        rng.shuffle(shuffled_evidence)
        assert compute_coverage_percentage(shuffled_claims, shuffled_evidence) == expected
    assert expected == 43


@pytest.mark.parametrize(
    "part,whole,expected",
    [(0, 0, 0), (1, 2, 50), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 8, 38)],
)
def test_percent_rounds_halves_up(part, whole, expected):
    assert percent(part, whole) == expected


def test_point_claim_completion_is_all_or_nothing():
    claim = _claim(date(2024, 5, 1))
    assert compute_completion_percentage(claim, [], proven=True) == 100
    assert compute_completion_percentage(claim, [], proven=False) == 0


def test_range_claim_completion_counts_covered_days():
    claim = _claim(date(2024, 5, 1), start=date(2024, 5, 1), end=date(2024, 5, 10))
    linked = [
        _evidence(start=date(2024, 4, 28), end=date(2024, 5, 3)),
        _evidence(date(2024, 5, 3)),
        _evidence(date(2024, 5, 8)),
        _evidence(date(2024, 6, 1)),
    ]
    # May 1-3 and May 8 covered out of 10 days
    assert compute_completion_percentage(claim, linked, proven=True) == 40


def test_range_claim_without_linked_evidence_is_zero():
    claim = _claim(date(2024, 5, 1), start=date(2024, 5, 1), end=date(2024, 5, 31))
    assert compute_completion_percentage(claim, [], proven=True) == 0


def test_evidence_type_breakdown():
    evidence = [
        _evidence(evidence_type=EvidenceType.VISUAL_PROOF),
        _evidence(evidence_type=EvidenceType.VISUAL_PROOF),
        _evidence(evidence_type=EvidenceType.FINANCIALS),
    ]
    stats = summarize_evidence_types(evidence)

    assert [s.type for s in stats] == ["visual_proof", "financials"]
    assert [s.count for s in stats] == [2, 1]
    assert [s.percentage for s in stats] == [67, 33]
    assert stats[0].label == "Visual Proof"
    assert evidence_type_label("documentation") == "Documentation"


def test_build_kpi_coverage_report():
    kpi_id = uuid4()
    proven = _claim(date(2024, 5, 1), value=40)
    unproven = _claim(date(2024, 5, 20), value=60)
    evidence = [_evidence(start=date(2024, 5, 1), end=date(2024, 5, 15))]

    report = build_kpi_coverage(kpi_id, [unproven, proven], evidence)

    assert report.kpi_id == kpi_id
    assert report.total_claims == 2
    assert report.proven_claims == 1
    assert report.evidence_percentage == 50
    assert report.total_value == 100
    assert report.evidence_count == 1
    by_claim = {c.claim_id: c for c in report.claims}
    assert by_claim[proven.id].evidence_ids == [evidence[0].id]
    assert by_claim[unproven.id].proven is False


def _shuffled_inputs():
    claims = [_claim(date(2024, 5, day), value=day) for day in range(1, 8)]
    claims.append(_claim(date(2024, 5, 3), start=date(2024, 5, 1), end=date(2024, 5, 4)))
    evidence = [
        _evidence(date(2024, 5, 2)),
        _evidence(start=date(2024, 5, 4), end=date(2024, 5, 5), evidence_type=EvidenceType.VISUAL_PROOF),
        _evidence(date(2024, 6, 1), evidence_type=EvidenceType.FINANCIALS),
        _evidence(date(2024, 5, 3), evidence_type=EvidenceType.VISUAL_PROOF),
    ]
    rng = random.Random(11)
    for _ in range(10):
        shuffled_claims = claims[:]
        shuffled_evidence = evidence[:]
        rng.shuffle(shuffled_claims)
        rng.shuffle(shuffled_evidence)
        yield shuffled_claims, shuffled_evidence
    yield claims, evidence


def test_kpi_report_is_order_independent():
    kpi_id = uuid4()
    reports = [build_kpi_coverage(kpi_id, claims, evidence) for claims, evidence in _shuffled_inputs()]

    expected = reports[-1]
    assert expected.proven_claims == 5
    assert expected.evidence_percentage == 63
    for report in reports:
        assert report == expected


@pytest.mark.asyncio
async def test_served_coverage_is_order_independent():
    kpi_id = uuid4()
    reports = []
    for claims, evidence in _shuffled_inputs():
        claim_store = AsyncMock()
        claim_store.get_kpi.return_value = object()
        claim_store.list_claims_for_kpi.return_value = claims
        evidence_store = AsyncMock()
        evidence_store.list_evidence_for_kpi.return_value = evidence
        evidence_store.list_evidence_for_claim.return_value = list(reversed(evidence))
        service = CoverageService(claim_store, evidence_store)
        reports.append(await service.get_kpi_coverage("u", kpi_id))

    assert all(report == reports[-1] for report in reports)
    assert reports[-1].proven_claims == 5
    assert reports[-1].evidence_percentage == 63
