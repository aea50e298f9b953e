"""API routers."""

from impact_tracker.api import donor_credits, donors, kpis

__all__ = [
    "donor_credits",
    "donors",
    "kpis",
]
