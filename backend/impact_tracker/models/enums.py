"""
Enum definitions for the application.

Values are the wire strings the presentation layer already uses.
"""

from enum import Enum


class KpiCategory(str, Enum):
    """Where a KPI sits in the results chain."""

    INPUT = "input"
    OUTPUT = "output"
    IMPACT = "impact"


class EvidenceType(str, Enum):
    """Kind of proof attached to claims."""

    VISUAL_PROOF = "visual_proof"
    DOCUMENTATION = "documentation"
    TESTIMONY = "testimony"
    FINANCIALS = "financials"


class CreditScope(str, Enum):
    """
    Attribution granularity of a donor credit.

    METRIC = credited against the KPI's measured total
    CLAIM = credited against one claim's value
    """

    METRIC = "metric"
    CLAIM = "claim"
