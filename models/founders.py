from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text

from models import Base
from utils.time_utils import utcnow_sa_default


class Founder(Base):
    __tablename__ = "founders"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String, nullable=True, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    title = Column(String, nullable=True)
    linkedin_url = Column(String, nullable=True)
    # founder | cofounder
    role = Column(String, nullable=True)

    # Contact and demographic data; admin-only.
    email = Column(String, unique=True, nullable=True)
    bio = Column(Text, nullable=True)
    sex = Column(String, nullable=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )
