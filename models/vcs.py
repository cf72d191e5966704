from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text

from models import Base
from utils.time_utils import utcnow_sa_default


class Vc(Base):
    """Investor appearing alongside portfolio companies (public profile data only)."""

    __tablename__ = "vcs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    firm_name = Column(String, nullable=True, index=True)
    role_title = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    profile_image_url = Column(String, nullable=True)
    linkedin_url = Column(String, nullable=True)
    website_url = Column(String, nullable=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )
