"""SQLAlchemy models package.

Important: This project uses a single declarative Base defined in `db.py`.
Import `Base` from this package in all model modules.

Example:

    Base.metadata.create_all(...)

This keeps `Base.metadata` consistent across the app.
"""

from db import Base  # re-export a single shared Base

# Import models so they are registered with SQLAlchemy metadata on startup.
# This makes `Base.metadata.create_all()` create all tables for a fresh DB.
#
# Keep imports local to this package to avoid circular dependencies in app code.
from models.profiles import Profile  # noqa: F401
from models.companies import Company  # noqa: F401
from models.founders import Founder  # noqa: F401
from models.vcs import Vc  # noqa: F401
from models.company_founders import CompanyFounder  # noqa: F401
from models.company_vcs import CompanyVc  # noqa: F401
from models.founder_updates import FounderUpdate  # noqa: F401
from models.kpis import Kpi, KpiValue  # noqa: F401
from models.vocabulary import VocabularyTerm, VocabularyVersion  # noqa: F401
