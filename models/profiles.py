from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String

from models import Base
from utils.time_utils import utcnow_sa_default

ROLE_PUBLIC = "public"
ROLE_LP = "lp"
ROLE_ADMIN = "admin"

ROLES = (ROLE_PUBLIC, ROLE_LP, ROLE_ADMIN)


class Profile(Base):
    """Authenticated principal and its single role.

    Profiles are never deleted; `is_active=False` makes the principal resolve to
    the public role. Unauthenticated callers have no row at all.
    """

    __tablename__ = "profiles"
    __table_args__ = (Index("ix_profiles_role", "role"),)

    id = Column(Integer, primary_key=True, autoincrement=True)

    email = Column(String, unique=True, nullable=True)
    display_name = Column(String, nullable=True)

    # One of ROLES. Invited users start as LPs.
    role = Column(String, nullable=False, default=ROLE_LP)
    is_active = Column(Boolean, nullable=False, default=True)

    row_version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )
