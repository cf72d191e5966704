from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from models import Base
from utils.time_utils import utcnow_sa_default


class CompanyFounder(Base):
    """Company-to-founder edge.

    One row per (company, founder) pair; `role` is the founder's role at this
    company, which may differ from `Founder.role`.
    """

    __tablename__ = "company_founders"
    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "founder_id",
            name="uq_company_founders_company_founder",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    founder_id = Column(
        Integer,
        ForeignKey("founders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    joined_date = Column(Date, nullable=True)
    left_date = Column(Date, nullable=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )

    company = relationship("Company")
    founder = relationship("Founder")
