from __future__ import annotations

from sqlalchemy import (
    Boolean,
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


class CompanyVc(Base):
    """Company-to-investor edge with per-deal investment tracking."""

    __tablename__ = "company_vcs"
    __table_args__ = (
        UniqueConstraint("company_id", "vc_id", name="uq_company_vcs_company_vc"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    vc_id = Column(
        Integer,
        ForeignKey("vcs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    episode_season = Column(String, nullable=True)
    episode_number = Column(String, nullable=True)
    episode_url = Column(String, nullable=True)

    # Restricted deal terms.
    is_invested = Column(Boolean, nullable=False, default=False)
    investment_amount = Column(Float, nullable=True)
    investment_date = Column(Date, nullable=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )

    company = relationship("Company")
    vc = relationship("Vc")
