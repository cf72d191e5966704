from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.orm import sessionmaker

import app as app_module
from models.profiles import Profile
from models.vocabulary import VocabularyVersion
from pytests.common import make_sqlite_engine, patch_app_db
from utils import recreate_sqlite_db
from utils.grant_role import grant_role
from utils.identity import issue_token, resolve_role


def test_recreate_builds_schema_and_seeds(tmp_path):
    db_path = tmp_path / "fresh.sqlite"
    seeded = recreate_sqlite_db.recreate(str(db_path))
    assert seeded["industry"] > 0
    assert seeded["co_investor"] == 0

    engine = make_sqlite_engine(db_path)
    try:
        tables = set(inspect(engine).get_table_names())
        assert {"companies", "founders", "founder_updates", "vocabulary_terms"} <= tables
    finally:
        engine.dispose()


def test_recreate_cli_with_backup(tmp_path, capsys):
    db_path = tmp_path / "cli.sqlite"
    recreate_sqlite_db.main(["--yes", "--db-path", str(db_path)])
    recreate_sqlite_db.main(["--yes", "--backup", "--db-path", str(db_path)])
    out = capsys.readouterr().out
    assert "Backup created" in out
    assert list(tmp_path.glob("cli.sqlite.backup_*"))


def test_init_db_creates_and_seeds(tmp_path, monkeypatch):
    engine = make_sqlite_engine(tmp_path / "init.sqlite")
    patch_app_db(monkeypatch, engine)
    try:
        app_module.init_db()
        app_module.init_db()

        session = sessionmaker(bind=engine)()
        try:
            seeds = session.query(VocabularyVersion).filter_by(operation="seed").count()
            assert seeds == 4
        finally:
            session.close()
    finally:
        engine.dispose()


def test_grant_role_creates_or_promotes(session):
    profile = grant_role(session, "New.Admin@Example.com")
    assert profile.email == "new.admin@example.com"
    assert profile.role == "admin"

    again = grant_role(session, "new.admin@example.com", "lp")
    assert again.id == profile.id
    assert session.query(Profile).count() == 1

    assert resolve_role(session, issue_token(profile.id)) == "lp"
