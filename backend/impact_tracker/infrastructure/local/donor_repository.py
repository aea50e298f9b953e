"""
SQLite implementation of Donor repository.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError

from impact_tracker.core.exceptions import NotFoundError, ValidationError
from impact_tracker.infrastructure.local.database import DonorCreditORM, DonorORM, get_session_factory
from impact_tracker.interfaces.donor_repository import IDonorRepository
from impact_tracker.models.donor import Donor, DonorCreate, DonorUpdate


class SqliteDonorRepository(IDonorRepository):
    """SQLite implementation of donor repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: DonorORM) -> Donor:
        """Convert ORM object to Pydantic model."""
        return Donor.model_validate(orm, from_attributes=True)

    async def _get_orm(self, session, user_id: str, donor_id: UUID) -> DonorORM | None:
        result = await session.execute(
            select(DonorORM).where(and_(DonorORM.id == str(donor_id), DonorORM.user_id == user_id))
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: str, donor: DonorCreate) -> Donor:
        """Create a new donor."""
        async with self._session_factory() as session:
            orm = DonorORM(
                id=str(uuid4()),
                user_id=user_id,
                initiative_id=str(donor.initiative_id),
                name=donor.name,
                email=donor.email,
                organization=donor.organization,
                notes=donor.notes,
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ValidationError(
                    f"A donor with email {donor.email} already exists for this initiative"
                ) from e
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, user_id: str, donor_id: UUID) -> Donor | None:
        """Get a donor by ID."""
        async with self._session_factory() as session:
            orm = await self._get_orm(session, user_id, donor_id)
            return self._orm_to_model(orm) if orm else None

    async def list_by_initiative(self, user_id: str, initiative_id: UUID) -> list[Donor]:
        """List donors of an initiative."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DonorORM)
                .where(and_(DonorORM.initiative_id == str(initiative_id), DonorORM.user_id == user_id))
                .order_by(DonorORM.created_at.desc())
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def update(self, user_id: str, donor_id: UUID, update: DonorUpdate) -> Donor:
        """Update a donor."""
        async with self._session_factory() as session:
            orm = await self._get_orm(session, user_id, donor_id)
            if not orm:
                raise NotFoundError(f"Donor {donor_id} not found")

            update_data = update.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                setattr(orm, field, value)
            orm.updated_at = datetime.utcnow()

            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ValidationError(
                    f"A donor with email {update.email} already exists for this initiative"
                ) from e
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, user_id: str, donor_id: UUID) -> bool:
        """Delete a donor together with its credits."""
        async with self._session_factory() as session:
            orm = await self._get_orm(session, user_id, donor_id)
            if not orm:
                return False

            # SQLite only cascades when foreign keys are switched on
            await session.execute(
                delete(DonorCreditORM).where(
                    and_(DonorCreditORM.donor_id == str(donor_id), DonorCreditORM.user_id == user_id)
                )
            )
            await session.delete(orm)
            await session.commit()
            return True
