"""
SQLite implementation of the claim store.

Reads KPIs and their claims (kpi_updates). Never writes.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, select

from impact_tracker.infrastructure.local.database import KpiORM, KpiUpdateORM, get_session_factory
from impact_tracker.interfaces.claim_store import IClaimStore
from impact_tracker.models.kpi import Claim, Kpi


class SqliteClaimStore(IClaimStore):
    """SQLite implementation of the claim store."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def get_kpi(self, user_id: str, kpi_id: UUID) -> Kpi | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(KpiORM).where(and_(KpiORM.id == str(kpi_id), KpiORM.user_id == user_id))
            )
            orm = result.scalar_one_or_none()
            return Kpi.model_validate(orm, from_attributes=True) if orm else None

    async def list_kpis_for_initiative(self, user_id: str, initiative_id: UUID) -> list[Kpi]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(KpiORM)
                .where(and_(KpiORM.initiative_id == str(initiative_id), KpiORM.user_id == user_id))
                .order_by(KpiORM.created_at)
            )
            return [Kpi.model_validate(orm, from_attributes=True) for orm in result.scalars().all()]

    async def list_claims_for_kpi(self, user_id: str, kpi_id: UUID) -> list[Claim]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(KpiUpdateORM)
                .where(and_(KpiUpdateORM.kpi_id == str(kpi_id), KpiUpdateORM.user_id == user_id))
                .order_by(KpiUpdateORM.date_represented, KpiUpdateORM.created_at)
            )
            return [Claim.model_validate(orm, from_attributes=True) for orm in result.scalars().all()]

    async def get_claim(self, user_id: str, claim_id: UUID) -> Claim | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(KpiUpdateORM).where(
                    and_(KpiUpdateORM.id == str(claim_id), KpiUpdateORM.user_id == user_id)
                )
            )
            orm = result.scalar_one_or_none()
            return Claim.model_validate(orm, from_attributes=True) if orm else None
