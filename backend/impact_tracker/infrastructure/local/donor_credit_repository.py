"""
SQLite implementation of the donor credit ledger.

Writers serialise per scope on a row of credit_scopes: the row is upserted and
its version bumped as the first statement of the transaction, so the scope
total read afterwards cannot change until the transaction ends. On SQLite the
first write takes the database write lock; on PostgreSQL the UPDATE takes the
row lock.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, Iterable
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from impact_tracker.core.exceptions import ConcurrencyConflictError, InfrastructureError, NotFoundError
from impact_tracker.core.logger import setup_logger
from impact_tracker.infrastructure.local.database import (
    CreditScopeORM,
    DonorCreditORM,
    DonorORM,
    KpiORM,
    KpiUpdateORM,
    get_session_factory,
)
from impact_tracker.interfaces.donor_credit_repository import ICreditLedgerTransaction, IDonorCreditRepository
from impact_tracker.models.donor_credit import (
    ClaimSummary,
    CreditScopeRef,
    DonorCredit,
    DonorCreditCreate,
    DonorCreditDetail,
    DonorCreditUpdate,
    DonorSummary,
    KpiSummary,
)

logger = setup_logger(__name__)

_LOCK_ERROR_MARKERS = ("locked", "could not obtain lock", "deadlock", "could not serialize")


def _to_store_error(exc: SQLAlchemyError) -> InfrastructureError:
    """Map a SQLAlchemy failure onto the domain error taxonomy."""
    message = str(exc.orig if getattr(exc, "orig", None) is not None else exc).lower()
    if isinstance(exc, OperationalError) and any(marker in message for marker in _LOCK_ERROR_MARKERS):
        logger.warning(f"Credit scope lock not acquired: {message}")
        return ConcurrencyConflictError("Credit scope is being modified by another request; retry")
    return InfrastructureError("Credit ledger store failure", details=str(exc))


def _credit_fields(orm: DonorCreditORM) -> dict:
    return {
        "id": orm.id,
        "user_id": orm.user_id,
        "donor_id": orm.donor_id,
        "kpi_id": orm.kpi_id,
        "kpi_update_id": orm.kpi_update_id,
        "credited_value": float(orm.credited_value),
        "credited_percentage": (
            float(orm.credited_percentage) if orm.credited_percentage is not None else None
        ),
        "date_range_start": orm.date_range_start,
        "date_range_end": orm.date_range_end,
        "notes": orm.notes,
        "needs_review": bool(orm.needs_review),
        "created_at": orm.created_at,
        "updated_at": orm.updated_at,
    }


def _orm_to_model(orm: DonorCreditORM) -> DonorCredit:
    """Convert ORM object to Pydantic model."""
    return DonorCredit.model_validate(_credit_fields(orm))


def _row_to_detail(
    credit: DonorCreditORM,
    donor: DonorORM | None,
    kpi: KpiORM | None,
    claim: KpiUpdateORM | None,
) -> DonorCreditDetail:
    fields = _credit_fields(credit)
    if donor is not None:
        fields["donor"] = DonorSummary(
            id=donor.id, name=donor.name, email=donor.email, organization=donor.organization
        )
    if kpi is not None:
        fields["kpi"] = KpiSummary(
            id=kpi.id,
            title=kpi.title,
            unit_of_measurement=kpi.unit_of_measurement or "",
            initiative_id=kpi.initiative_id,
        )
    if claim is not None:
        fields["kpi_update"] = ClaimSummary(
            id=claim.id,
            value=claim.value,
            date_represented=claim.date_represented,
            date_range_start=claim.date_range_start,
            date_range_end=claim.date_range_end,
        )
    return DonorCreditDetail.model_validate(fields)


def _scope_total_query(
    user_id: str,
    scope: CreditScopeRef,
    excluding_credit_id: UUID | None = None,
    donor_id: UUID | None = None,
):
    """The one aggregate both availability and allocation checks read."""
    conditions = [DonorCreditORM.user_id == user_id, DonorCreditORM.scope_key == scope.key]
    if excluding_credit_id is not None:
        conditions.append(DonorCreditORM.id != str(excluding_credit_id))
    if donor_id is not None:
        conditions.append(DonorCreditORM.donor_id == str(donor_id))
    return select(func.coalesce(func.sum(DonorCreditORM.credited_value), 0)).where(and_(*conditions))


def _as_decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def _detail_query():
    return (
        select(DonorCreditORM, DonorORM, KpiORM, KpiUpdateORM)
        .outerjoin(DonorORM, DonorORM.id == DonorCreditORM.donor_id)
        .outerjoin(KpiORM, KpiORM.id == DonorCreditORM.kpi_id)
        .outerjoin(KpiUpdateORM, KpiUpdateORM.id == DonorCreditORM.kpi_update_id)
    )


class SqliteCreditLedgerTransaction(ICreditLedgerTransaction):
    """Ledger operations inside a locked scope transaction."""

    def __init__(self, session, user_id: str):
        self._session = session
        self._user_id = user_id

    async def _get_orm(self, credit_id: UUID) -> DonorCreditORM | None:
        result = await self._session.execute(
            select(DonorCreditORM).where(
                and_(DonorCreditORM.id == str(credit_id), DonorCreditORM.user_id == self._user_id)
            )
        )
        return result.scalar_one_or_none()

    async def total_for_scope(
        self,
        scope: CreditScopeRef,
        excluding_credit_id: UUID | None = None,
        donor_id: UUID | None = None,
    ) -> Decimal:
        result = await self._session.execute(
            _scope_total_query(self._user_id, scope, excluding_credit_id, donor_id)
        )
        return _as_decimal(result.scalar_one())

    async def get(self, credit_id: UUID) -> DonorCredit | None:
        orm = await self._get_orm(credit_id)
        return _orm_to_model(orm) if orm else None

    async def find_for_donor(self, donor_id: UUID, scope: CreditScopeRef) -> DonorCredit | None:
        result = await self._session.execute(
            select(DonorCreditORM).where(
                and_(
                    DonorCreditORM.user_id == self._user_id,
                    DonorCreditORM.donor_id == str(donor_id),
                    DonorCreditORM.scope_key == scope.key,
                )
            )
        )
        orm = result.scalar_one_or_none()
        return _orm_to_model(orm) if orm else None

    async def list_for_scope(self, scope: CreditScopeRef) -> list[DonorCredit]:
        result = await self._session.execute(
            select(DonorCreditORM)
            .where(and_(DonorCreditORM.user_id == self._user_id, DonorCreditORM.scope_key == scope.key))
            .order_by(DonorCreditORM.created_at)
        )
        return [_orm_to_model(orm) for orm in result.scalars().all()]

    async def insert(self, credit: DonorCreditCreate) -> DonorCredit:
        now = datetime.utcnow()
        orm = DonorCreditORM(
            id=str(uuid4()),
            user_id=self._user_id,
            donor_id=str(credit.donor_id),
            kpi_id=str(credit.kpi_id),
            kpi_update_id=str(credit.kpi_update_id) if credit.kpi_update_id else None,
            scope_key=credit.scope_ref.key,
            credited_value=_as_decimal(credit.credited_value),
            credited_percentage=(
                _as_decimal(credit.credited_percentage) if credit.credited_percentage is not None else None
            ),
            date_range_start=credit.date_range_start,
            date_range_end=credit.date_range_end,
            notes=credit.notes,
            needs_review=False,
            created_at=now,
            updated_at=now,
        )
        self._session.add(orm)
        await self._session.flush()
        return _orm_to_model(orm)

    async def update(self, credit_id: UUID, update: DonorCreditUpdate) -> DonorCredit:
        orm = await self._get_orm(credit_id)
        if not orm:
            raise NotFoundError(f"Donor credit {credit_id} not found")

        update_data = update.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field in ("kpi_id", "kpi_update_id"):
                value = str(value) if value is not None else None
            elif field in ("credited_value", "credited_percentage") and value is not None:
                value = _as_decimal(value)
            setattr(orm, field, value)
        orm.scope_key = CreditScopeRef(
            UUID(orm.kpi_id), UUID(orm.kpi_update_id) if orm.kpi_update_id else None
        ).key
        orm.updated_at = datetime.utcnow()

        await self._session.flush()
        return _orm_to_model(orm)

    async def set_needs_review(self, credit_ids: Iterable[UUID], flagged: bool) -> None:
        ids = [str(credit_id) for credit_id in credit_ids]
        if not ids:
            return
        await self._session.execute(
            update(DonorCreditORM)
            .where(and_(DonorCreditORM.id.in_(ids), DonorCreditORM.user_id == self._user_id))
            .values(needs_review=flagged)
        )

    async def delete_many(self, credit_ids: Iterable[UUID]) -> int:
        ids = [str(credit_id) for credit_id in credit_ids]
        if not ids:
            return 0
        result = await self._session.execute(
            delete(DonorCreditORM)
            .where(and_(DonorCreditORM.id.in_(ids), DonorCreditORM.user_id == self._user_id))
        )
        return result.rowcount or 0


class SqliteDonorCreditRepository(IDonorCreditRepository):
    """SQLite implementation of the donor credit ledger."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator:
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                raise _to_store_error(e) from e

    async def _lock_scope(self, session, user_id: str, scope: CreditScopeRef) -> None:
        dialect = session.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        await session.execute(
            insert(CreditScopeORM)
            .values(
                scope_key=scope.key,
                user_id=user_id,
                kpi_id=str(scope.kpi_id),
                kpi_update_id=str(scope.kpi_update_id) if scope.kpi_update_id else None,
                version=0,
                updated_at=datetime.utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["scope_key"])
        )
        # The version bump is the write that holds the lock until commit
        await session.execute(
            update(CreditScopeORM)
            .where(CreditScopeORM.scope_key == scope.key)
            .values(version=CreditScopeORM.version + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )

    @asynccontextmanager
    async def locked_scopes(
        self, user_id: str, scopes: Iterable[CreditScopeRef]
    ) -> AsyncIterator[ICreditLedgerTransaction]:
        # Sorted acquisition keeps two multi-scope writers from deadlocking
        ordered = sorted({scope.key: scope for scope in scopes}.items())
        async with self._session_factory() as session:
            try:
                for _, scope in ordered:
                    await self._lock_scope(session, user_id, scope)
                yield SqliteCreditLedgerTransaction(session, user_id)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise _to_store_error(e) from e

    async def get(self, user_id: str, credit_id: UUID) -> DonorCredit | None:
        async with self._session() as session:
            result = await session.execute(
                select(DonorCreditORM).where(
                    and_(DonorCreditORM.id == str(credit_id), DonorCreditORM.user_id == user_id)
                )
            )
            orm = result.scalar_one_or_none()
            return _orm_to_model(orm) if orm else None

    async def get_detail(self, user_id: str, credit_id: UUID) -> DonorCreditDetail | None:
        async with self._session() as session:
            result = await session.execute(
                _detail_query().where(
                    and_(DonorCreditORM.id == str(credit_id), DonorCreditORM.user_id == user_id)
                )
            )
            row = result.one_or_none()
            return _row_to_detail(*row) if row else None

    async def list_for_donor(self, user_id: str, donor_id: UUID) -> list[DonorCreditDetail]:
        async with self._session() as session:
            result = await session.execute(
                _detail_query()
                .where(and_(DonorCreditORM.donor_id == str(donor_id), DonorCreditORM.user_id == user_id))
                .order_by(DonorCreditORM.created_at.desc())
            )
            return [_row_to_detail(*row) for row in result.all()]

    async def list_for_kpi(self, user_id: str, kpi_id: UUID) -> list[DonorCreditDetail]:
        async with self._session() as session:
            result = await session.execute(
                _detail_query()
                .where(and_(DonorCreditORM.kpi_id == str(kpi_id), DonorCreditORM.user_id == user_id))
                .order_by(DonorCreditORM.created_at.desc())
            )
            return [_row_to_detail(*row) for row in result.all()]

    async def list_for_initiative(
        self, user_id: str, initiative_id: UUID, donor_id: UUID | None = None
    ) -> list[DonorCreditDetail]:
        conditions = [DonorCreditORM.user_id == user_id, KpiORM.initiative_id == str(initiative_id)]
        if donor_id is not None:
            conditions.append(DonorCreditORM.donor_id == str(donor_id))
        async with self._session() as session:
            result = await session.execute(
                _detail_query().where(and_(*conditions)).order_by(DonorCreditORM.created_at.desc())
            )
            return [_row_to_detail(*row) for row in result.all()]

    async def total_for_scope(
        self,
        user_id: str,
        scope: CreditScopeRef,
        excluding_credit_id: UUID | None = None,
        donor_id: UUID | None = None,
    ) -> Decimal:
        async with self._session() as session:
            result = await session.execute(_scope_total_query(user_id, scope, excluding_credit_id, donor_id))
            return _as_decimal(result.scalar_one())

    async def delete(self, user_id: str, credit_id: UUID) -> bool:
        async with self._session() as session:
            result = await session.execute(
                delete(DonorCreditORM).where(
                    and_(DonorCreditORM.id == str(credit_id), DonorCreditORM.user_id == user_id)
                )
            )
            await session.commit()
            return (result.rowcount or 0) > 0
