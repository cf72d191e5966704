from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from models import Base
from utils.time_utils import utcnow_sa_default

TERM_PROPOSED = "proposed"
TERM_ACTIVE = "active"
TERM_RETIRED = "retired"


class VocabularyTerm(Base):
    """One canonical key in a taxonomy field's controlled vocabulary.

    Lifecycle: proposed -> active -> (renamed -> active | retired).
    Only `active` terms are members of the current vocabulary. Rows are never
    deleted, so a retired value keeps its history (`retired_version`,
    `renamed_to`).
    """

    __tablename__ = "vocabulary_terms"
    __table_args__ = (
        UniqueConstraint("field", "value", name="uq_vocabulary_terms_field_value"),
        Index("ix_vocabulary_terms_field_status", "field", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Taxonomy field name (industry, business_model, keyword, co_investor).
    field = Column(String, nullable=False)
    value = Column(String, nullable=False)

    status = Column(String, nullable=False, default=TERM_ACTIVE)
    added_version = Column(Integer, nullable=False)
    retired_version = Column(Integer, nullable=True)
    renamed_to = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
    updated_at = Column(
        DateTime, nullable=False, default=utcnow_sa_default, onupdate=utcnow_sa_default
    )


class VocabularyVersion(Base):
    """Append-only log of vocabulary changes; max(version) per field is current."""

    __tablename__ = "vocabulary_versions"
    __table_args__ = (
        UniqueConstraint("field", "version", name="uq_vocabulary_versions_field_version"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    field = Column(String, nullable=False, index=True)
    version = Column(Integer, nullable=False)

    # seed | propose | add | activate | rename | merge | retire | grow
    operation = Column(String, nullable=False)
    detail = Column(Text, nullable=True)
    actor_id = Column(Integer, nullable=True)
    # Number of entity attachments rewritten by this change.
    rewritten = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow_sa_default)
