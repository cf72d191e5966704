from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    JSON,
    String,
    Text,
)

from models import Base
from utils.time_utils import utcnow_sa_default


class Company(Base):
    """Portfolio company.

    Field groups (see `api.services.authorization`):
    - public: identity, marketing copy, tag arrays, episode info
    - restricted: investment terms and internal notes

    Tag arrays hold canonical vocabulary keys (never display labels). They are
    stored as JSON lists; NULL and [] both mean "no tags".
    """

    __tablename__ = "companies"
    __table_args__ = (
        Index("ix_companies_status", "status"),
        Index("ix_companies_pitch_season", "pitch_season"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)

    # --- public ---
    tagline = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    website_url = Column(String, nullable=True)
    status = Column(String, nullable=False, default="active")
    founded_year = Column(Integer, nullable=True)
    fund = Column(String, nullable=False, default="fund_i")
    stage_at_investment = Column(String, nullable=False, default="pre_seed")
    pitch_season = Column(Integer, nullable=True)
    country = Column(String(2), nullable=True)
    pitch_episode_url = Column(String, nullable=True)
    episode_publish_date = Column(Date, nullable=True)

    industry_tags = Column(JSON(none_as_null=True), nullable=True)
    business_model_tags = Column(JSON(none_as_null=True), nullable=True)
    keywords = Column(JSON(none_as_null=True), nullable=True)
    co_investors = Column(JSON(none_as_null=True), nullable=True)

    # --- restricted ---
    investment_amount = Column(Float, nullable=True)
    post_money_valuation = Column(Float, nullable=True)
    instrument = Column(String, nullable=True)
    conversion_cap_usd = Column(Float, nullable=True)
    discount_percent = Column(Float, nullable=True)
    round_size_usd = Column(Float, nullable=True)
    has_pro_rata_rights = Column(Boolean, nullable=False, default=False)
    reason_for_investing = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    description_raw = Column(Text, nullable=True)

    # Bumped on every write; callers may pass it back for optimistic checks.
    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )
