"""
SQLAlchemy database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from datetime import datetime
from functools import lru_cache
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from impact_tracker.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# Upstream records (owned by the KPI/evidence CRUD layer)
# ===========================================


class KpiORM(Base):
    """KPI ORM model."""

    __tablename__ = "kpis"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    initiative_id = Column(String(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    unit_of_measurement = Column(String(100), default="")
    category = Column(String(20), default="output")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class KpiUpdateORM(Base):
    """Claim (KPI update) ORM model."""

    __tablename__ = "kpi_updates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    kpi_id = Column(String(36), ForeignKey("kpis.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Float, nullable=False, default=0)
    date_represented = Column(Date, nullable=True, index=True)
    date_range_start = Column(Date, nullable=True)
    date_range_end = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class EvidenceORM(Base):
    """Evidence ORM model."""

    __tablename__ = "evidence"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    initiative_id = Column(String(36), nullable=True, index=True)
    title = Column(String(255), default="")
    type = Column(String(30), nullable=False, default="documentation")
    date_represented = Column(Date, nullable=True)
    date_range_start = Column(Date, nullable=True)
    date_range_end = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class EvidenceKpiORM(Base):
    """Legacy evidence-to-KPI link."""

    __tablename__ = "evidence_kpis"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    evidence_id = Column(String(36), ForeignKey("evidence.id", ondelete="CASCADE"), nullable=False, index=True)
    kpi_id = Column(String(36), ForeignKey("kpis.id", ondelete="CASCADE"), nullable=False, index=True)


class EvidenceKpiUpdateORM(Base):
    """Precise evidence-to-claim link."""

    __tablename__ = "evidence_kpi_updates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    evidence_id = Column(String(36), ForeignKey("evidence.id", ondelete="CASCADE"), nullable=False, index=True)
    kpi_update_id = Column(
        String(36), ForeignKey("kpi_updates.id", ondelete="CASCADE"), nullable=False, index=True
    )


# ===========================================
# Donors and credits
# ===========================================


class DonorORM(Base):
    """Donor ORM model."""

    __tablename__ = "donors"
    __table_args__ = (UniqueConstraint("initiative_id", "email", name="unique_donor_email_per_initiative"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    initiative_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    organization = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DonorCreditORM(Base):
    """Donor credit ORM model."""

    __tablename__ = "donor_credits"
    __table_args__ = (
        # One row per donor and scope; edits update the existing row
        UniqueConstraint("donor_id", "scope_key", name="unique_donor_credit_per_scope"),
        CheckConstraint("credited_value >= 0", name="non_negative_credited_value"),
        CheckConstraint(
            "date_range_end IS NULL OR date_range_start IS NULL OR date_range_end >= date_range_start",
            name="valid_date_range",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    donor_id = Column(String(36), ForeignKey("donors.id", ondelete="CASCADE"), nullable=False, index=True)
    kpi_id = Column(String(36), ForeignKey("kpis.id", ondelete="CASCADE"), nullable=False, index=True)
    kpi_update_id = Column(
        String(36), ForeignKey("kpi_updates.id", ondelete="CASCADE"), nullable=True, index=True
    )
    # "<kpi_id>:<kpi_update_id>" or "<kpi_id>:*" for metric-level credits
    scope_key = Column(String(80), nullable=False, index=True)
    credited_value = Column(Numeric(15, 2), nullable=False)
    credited_percentage = Column(Numeric(5, 2), nullable=True)
    date_range_start = Column(Date, nullable=True)
    date_range_end = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    needs_review = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CreditScopeORM(Base):
    """Per-scope lock row; writers bump version before reading scope totals."""

    __tablename__ = "credit_scopes"

    scope_key = Column(String(80), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    kpi_id = Column(String(36), nullable=False, index=True)
    kpi_update_id = Column(String(36), nullable=True)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ===========================================
# Database Session Management
# ===========================================


@lru_cache()
def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG and settings.LOG_LEVEL == "DEBUG")


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    """Initialize database tables."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
