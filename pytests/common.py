"""Shared helpers for tests.

Intended usage:
- spin up a temporary SQLite database (same pragmas as the app engine)
- create all SQLAlchemy tables and seed the default vocabularies
- point the app's `db` module at it
- insert a small, known portfolio

These utilities keep tests small and consistent.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

import db
import models  # noqa: F401
from api.services.vocabulary_service import seed_default_vocabularies
from models import Base
from models.companies import Company
from models.company_founders import CompanyFounder
from models.company_vcs import CompanyVc
from models.founder_updates import FounderUpdate
from models.founders import Founder
from models.kpis import Kpi, KpiValue
from models.profiles import ROLE_ADMIN, ROLE_LP, Profile
from models.vcs import Vc
from utils.identity import Principal, issue_token

__all__ = [
    "make_sqlite_engine",
    "create_empty_sqlite_db",
    "patch_app_db",
    "add_dicts",
    "seed_profiles",
    "seed_portfolio",
    "Profiles",
    "Portfolio",
]


def make_sqlite_engine(db_path: Path | str) -> Engine:
    """Create a SQLite engine suitable for tests."""

    if isinstance(db_path, Path):
        db_path = str(db_path)
    engine = create_engine(
        f"sqlite:///{db_path}", connect_args={"check_same_thread": False}
    )
    db.install_sqlite_pragmas(engine)
    return engine


def create_empty_sqlite_db(db_path: Path, *, seed: bool = True) -> tuple[Session, Engine]:
    """Create a SQLite DB file, initialize all models and seed vocabularies.

    Returns (session, engine).
    """

    engine = make_sqlite_engine(db_path)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = SessionLocal()
    if seed:
        seed_default_vocabularies(session)
    return session, engine


def patch_app_db(monkeypatch, engine: Engine) -> None:
    """Point `db.engine` / `db.SessionLocal` at a test engine."""

    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(
        db, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )


def add_dicts(session: Session, model, rows: Iterable[dict[str, Any]]) -> None:
    """Bulk insert a list of dicts into a SQLAlchemy model table."""

    objs = [model(**row) for row in rows]
    session.add_all(objs)
    session.commit()


@dataclass(frozen=True)
class Profiles:
    admin: Principal
    lp: Principal
    inactive: Principal
    admin_token: str
    lp_token: str
    inactive_token: str


def seed_profiles(session: Session) -> Profiles:
    admin = Profile(email="admin@example.com", display_name="Admin", role=ROLE_ADMIN)
    lp = Profile(email="lp@example.com", display_name="Limited Partner", role=ROLE_LP)
    inactive = Profile(
        email="gone@example.com", display_name="Former LP", role=ROLE_LP, is_active=False
    )
    session.add_all([admin, lp, inactive])
    session.commit()
    return Profiles(
        admin=Principal(role=ROLE_ADMIN, profile_id=admin.id),
        lp=Principal(role=ROLE_LP, profile_id=lp.id),
        inactive=Principal(role=ROLE_LP, profile_id=inactive.id),
        admin_token=issue_token(admin.id),
        lp_token=issue_token(lp.id),
        inactive_token=issue_token(inactive.id),
    )


@dataclass(frozen=True)
class Portfolio:
    acme_id: int
    bolt_id: int
    ada_id: int
    ben_id: int
    vc_id: int
    kpi_id: int


def seed_portfolio(session: Session) -> Portfolio:
    """Two companies, two founders, one VC and a handful of updates."""

    acme = Company(
        slug="acme",
        name="Acme",
        tagline="Rockets for everyone",
        status="active",
        pitch_season=2,
        stage_at_investment="pre_seed",
        country="US",
        industry_tags=["fintech", "cloud"],
        business_model_tags=["saas"],
        keywords=["ai_powered", "mvp"],
        co_investors=["sequoia"],
        investment_amount=100000.0,
        post_money_valuation=5000000.0,
        reason_for_investing="Strong team",
        notes="Internal only",
    )
    bolt = Company(
        slug="bolt",
        name="Bolt",
        status="exited",
        pitch_season=1,
        stage_at_investment="seed",
        country="GB",
        industry_tags=["fintech"],
        keywords=["ai_powered"],
        investment_amount=50000.0,
    )
    ada = Founder(name="Ada Lovelace", email="ada@acme.test", role="founder", sex="female")
    ben = Founder(name="Ben Franklin", email="ben@bolt.test", role="cofounder", sex="male")
    vc = Vc(name="Vera Capital", firm_name="Vera Ventures")
    session.add_all([acme, bolt, ada, ben, vc])
    session.flush()

    session.add_all(
        [
            CompanyFounder(company_id=acme.id, founder_id=ada.id, role="ceo"),
            CompanyFounder(company_id=bolt.id, founder_id=ben.id, role="cto"),
            CompanyVc(
                company_id=acme.id,
                vc_id=vc.id,
                episode_season="2",
                is_invested=True,
                investment_amount=25000.0,
                investment_date=dt.date(2024, 2, 1),
            ),
            CompanyVc(company_id=bolt.id, vc_id=vc.id, episode_season="1"),
        ]
    )
    session.add_all(
        [
            FounderUpdate(
                company_id=acme.id,
                founder_id=ada.id,
                period_start=dt.date(2024, 1, 1),
                period_end=dt.date(2024, 3, 31),
                update_type="quarterly",
                sentiment_score=0.2,
                ai_summary="Q1 slow",
                topics_extracted=["hiring", "fundraising"],
            ),
            FounderUpdate(
                company_id=acme.id,
                founder_id=ada.id,
                period_start=dt.date(2024, 4, 1),
                period_end=dt.date(2024, 6, 30),
                update_type="quarterly",
                sentiment_score=0.7,
                ai_summary="Q2 strong",
                topics_extracted=["hiring", "revenue"],
            ),
            FounderUpdate(
                company_id=acme.id,
                founder_id=ada.id,
                period_start=None,
                update_type="ad_hoc",
                sentiment_score=-0.5,
                ai_summary="Undated note",
                topics_extracted=["hiring"],
            ),
            FounderUpdate(
                company_id=bolt.id,
                founder_id=ben.id,
                period_start=dt.date(2023, 7, 1),
                period_end=dt.date(2023, 9, 30),
                update_type="quarterly",
                sentiment_score=None,
                ai_summary="Exit closed",
                topics_extracted=["exit"],
            ),
        ]
    )
    kpi = Kpi(company_id=acme.id, label="MRR", unit="usd")
    session.add(kpi)
    session.flush()
    session.add(KpiValue(kpi_id=kpi.id, period_date=dt.date(2024, 3, 31), value=12000.0))
    session.commit()

    return Portfolio(
        acme_id=acme.id,
        bolt_id=bolt.id,
        ada_id=ada.id,
        ben_id=ben.id,
        vc_id=vc.id,
        kpi_id=kpi.id,
    )
