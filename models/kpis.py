from __future__ import annotations

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from models import Base
from utils.time_utils import utcnow_sa_default

KPI_UNITS = (
    "usd",
    "users",
    "percent",
    "count",
    "months",
    "days",
    "score",
    "ratio",
    "other",
)


class Kpi(Base):
    """A tracked metric for one company (label is unique per company)."""

    __tablename__ = "kpis"
    __table_args__ = (
        UniqueConstraint("company_id", "label", name="uq_kpis_company_label"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label = Column(String, nullable=False)
    unit = Column(String, nullable=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )

    company = relationship("Company")


class KpiValue(Base):
    __tablename__ = "kpi_values"
    __table_args__ = (
        UniqueConstraint("kpi_id", "period_date", name="uq_kpi_values_kpi_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    kpi_id = Column(
        Integer,
        ForeignKey("kpis.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period_date = Column(Date, nullable=False)
    value = Column(Float, nullable=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )

    kpi = relationship("Kpi")
