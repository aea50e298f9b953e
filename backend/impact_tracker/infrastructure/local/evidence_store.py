"""
SQLite implementation of the evidence store.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, or_, select

from impact_tracker.infrastructure.local.database import (
    EvidenceKpiORM,
    EvidenceKpiUpdateORM,
    EvidenceORM,
    KpiUpdateORM,
    get_session_factory,
)
from impact_tracker.interfaces.evidence_store import IEvidenceStore
from impact_tracker.models.evidence import Evidence


class SqliteEvidenceStore(IEvidenceStore):
    """SQLite implementation of the evidence store."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def list_evidence_for_kpi(self, user_id: str, kpi_id: UUID) -> list[Evidence]:
        kpi_link = select(EvidenceKpiORM.evidence_id).where(EvidenceKpiORM.kpi_id == str(kpi_id))
        claim_link = (
            select(EvidenceKpiUpdateORM.evidence_id)
            .join(KpiUpdateORM, KpiUpdateORM.id == EvidenceKpiUpdateORM.kpi_update_id)
            .where(KpiUpdateORM.kpi_id == str(kpi_id))
        )
        async with self._session_factory() as session:
            # IN over both link tables returns each evidence row once
            result = await session.execute(
                select(EvidenceORM)
                .where(
                    and_(
                        EvidenceORM.user_id == user_id,
                        or_(EvidenceORM.id.in_(kpi_link), EvidenceORM.id.in_(claim_link)),
                    )
                )
                .order_by(EvidenceORM.created_at)
            )
            return [Evidence.model_validate(orm, from_attributes=True) for orm in result.scalars().all()]

    async def list_evidence_for_claim(self, user_id: str, claim_id: UUID) -> list[Evidence]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EvidenceORM)
                .join(EvidenceKpiUpdateORM, EvidenceKpiUpdateORM.evidence_id == EvidenceORM.id)
                .where(
                    and_(
                        EvidenceKpiUpdateORM.kpi_update_id == str(claim_id),
                        EvidenceORM.user_id == user_id,
                    )
                )
                .order_by(EvidenceORM.created_at)
            )
            return [Evidence.model_validate(orm, from_attributes=True) for orm in result.scalars().unique().all()]
