from __future__ import annotations

import os

# Keep test runs on stderr only; must be set before any logger is created.
os.environ.setdefault("PORTFOLIO_LOG_TO_FILES", "0")

import pytest  # noqa: E402

from api.services.vocabulary_service import clear_snapshot_cache  # noqa: E402
from pytests.common import (  # noqa: E402
    create_empty_sqlite_db,
    seed_portfolio,
    seed_profiles,
)


@pytest.fixture(autouse=True)
def _fresh_vocabulary_cache():
    clear_snapshot_cache()
    yield
    clear_snapshot_cache()


@pytest.fixture()
def db_env(tmp_path):
    """Temp SQLite DB with default vocabularies; yields (session, engine)."""

    session, engine = create_empty_sqlite_db(tmp_path / "test.sqlite")
    try:
        yield session, engine
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def session(db_env):
    return db_env[0]


@pytest.fixture()
def profiles(session):
    return seed_profiles(session)


@pytest.fixture()
def portfolio(session):
    return seed_portfolio(session)
