from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from models import Base
from utils.time_utils import utcnow_sa_default

UPDATE_TYPES = ("monthly", "quarterly", "milestone", "annual", "ad_hoc", "other")


class FounderUpdate(Base):
    """Periodic founder update plus the AI-derived analysis of its text.

    `sentiment_score` is in [-1, 1]; 0 is a real reading, NULL means "not scored".
    """

    __tablename__ = "founder_updates"
    __table_args__ = (
        CheckConstraint(
            "sentiment_score IS NULL OR (sentiment_score >= -1 AND sentiment_score <= 1)",
            name="ck_founder_updates_sentiment_range",
        ),
        Index("ix_founder_updates_period", "period_start", "period_end"),
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
        ForeignKey("founders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)
    update_type = Column(String, nullable=True)

    update_text = Column(Text, nullable=True)
    ai_summary = Column(Text, nullable=True)
    sentiment_score = Column(Float, nullable=True)
    topics_extracted = Column(JSON(none_as_null=True), nullable=True)
    key_metrics_mentioned = Column(JSON(none_as_null=True), nullable=True)
    action_items = Column(JSON(none_as_null=True), nullable=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )

    company = relationship("Company")
    founder = relationship("Founder")
