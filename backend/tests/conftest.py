"""
Shared fixtures.

Each test gets its own SQLite file so that several sessions can run at once
against the same data (the credit ledger opens nested sessions and the
concurrency tests run writers in parallel).
"""

from datetime import date
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from impact_tracker.infrastructure.local.database import (
    Base,
    DonorORM,
    EvidenceKpiORM,
    EvidenceKpiUpdateORM,
    EvidenceORM,
    KpiORM,
    KpiUpdateORM,
)


@pytest.fixture
async def session_factory(tmp_path):
    """Create a file-backed database with all tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'impact.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def test_user_id():
    return "test_user_123"


class Seeder:
    """Writes upstream rows (KPIs, claims, evidence, donors) the way the CRUD layer would."""

    def __init__(self, session_factory, user_id: str):
        self._session_factory = session_factory
        self.user_id = user_id

    async def _add(self, *rows):
        async with self._session_factory() as session:
            session.add_all(rows)
            await session.commit()

    async def kpi(self, initiative_id: UUID | None = None, title: str = "Meals served", user_id: str | None = None) -> UUID:
        kpi_id = uuid4()
        await self._add(
            KpiORM(
                id=str(kpi_id),
                user_id=user_id or self.user_id,
                initiative_id=str(initiative_id or uuid4()),
                title=title,
                unit_of_measurement="meals",
                category="output",
            )
        )
        return kpi_id

    async def claim(
        self,
        kpi_id: UUID,
        value: float,
        date_represented: date | None = date(2024, 5, 1),
        date_range_start: date | None = None,
        date_range_end: date | None = None,
        user_id: str | None = None,
    ) -> UUID:
        claim_id = uuid4()
        await self._add(
            KpiUpdateORM(
                id=str(claim_id),
                user_id=user_id or self.user_id,
                kpi_id=str(kpi_id),
                value=value,
                date_represented=date_represented,
                date_range_start=date_range_start,
                date_range_end=date_range_end,
            )
        )
        return claim_id

    async def set_claim_value(self, claim_id: UUID, value: float) -> None:
        async with self._session_factory() as session:
            orm = await session.get(KpiUpdateORM, str(claim_id))
            orm.value = value
            await session.commit()

    async def delete_claim(self, claim_id: UUID) -> None:
        async with self._session_factory() as session:
            orm = await session.get(KpiUpdateORM, str(claim_id))
            await session.delete(orm)
            await session.commit()

    async def evidence(
        self,
        evidence_type: str = "documentation",
        date_represented: date | None = None,
        date_range_start: date | None = None,
        date_range_end: date | None = None,
        kpi_id: UUID | None = None,
        claim_ids: tuple[UUID, ...] = (),
    ) -> UUID:
        evidence_id = uuid4()
        rows = [
            EvidenceORM(
                id=str(evidence_id),
                user_id=self.user_id,
                type=evidence_type,
                date_represented=date_represented,
                date_range_start=date_range_start,
                date_range_end=date_range_end,
            )
        ]
        if kpi_id:
            rows.append(EvidenceKpiORM(evidence_id=str(evidence_id), kpi_id=str(kpi_id)))
        for claim_id in claim_ids:
            rows.append(EvidenceKpiUpdateORM(evidence_id=str(evidence_id), kpi_update_id=str(claim_id)))
        await self._add(*rows)
        return evidence_id

    async def donor(
        self,
        initiative_id: UUID,
        name: str = "Ada Donor",
        email: str | None = None,
        user_id: str | None = None,
    ) -> UUID:
        donor_id = uuid4()
        await self._add(
            DonorORM(
                id=str(donor_id),
                user_id=user_id or self.user_id,
                initiative_id=str(initiative_id),
                name=name,
                email=email or f"{donor_id.hex[:8]}@example.org",
            )
        )
        return donor_id


@pytest.fixture
def seed(session_factory, test_user_id):
    return Seeder(session_factory, test_user_id)
