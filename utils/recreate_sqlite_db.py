"""Delete and recreate the local SQLite DB.

This is a destructive helper for local development.
It drops every table of the portfolio database, recreates them from the
SQLAlchemy models and loads the default tag vocabularies as version 1.

Usage:
    python utils/recreate_sqlite_db.py          # with confirmation prompt
    python utils/recreate_sqlite_db.py --yes    # skip confirmation
    python utils/recreate_sqlite_db.py --backup # create backup before reset
"""

from __future__ import annotations

import argparse
import os
import shutil
import sys
from datetime import datetime

# Allow running as: `python utils/recreate_sqlite_db.py`
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker

import db
import models  # noqa: F401  (registers every table on Base.metadata)
from api.services.vocabulary_service import clear_snapshot_cache, seed_default_vocabularies
from models import Base


def _confirm_or_exit(db_path: str, assume_yes: bool) -> None:
    if assume_yes:
        return

    if os.path.exists(db_path):
        size_mb = os.path.getsize(db_path) / (1024 * 1024)
        print(f"\nWARNING: Database exists ({size_mb:.2f} MB)")

    resp = input(
        f"\nThis will DROP and RECREATE ALL TABLES in:\n  {db_path}\n\n"
        "ALL DATA WILL BE LOST!\n\n"
        "Continue? [y/N]: "
    ).strip()
    if resp.lower() not in {"y", "yes"}:
        print("Aborted.")
        raise SystemExit(1)


def _create_backup(db_path: str) -> str | None:
    """Copy the database file aside with a timestamp suffix."""
    if not os.path.exists(db_path):
        return None

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = f"{db_path}.backup_{timestamp}"
    shutil.copy2(db_path, backup_path)
    print(f"Backup created: {backup_path}")
    return backup_path


def _remove_stale_sidecars(db_path: str) -> None:
    # Left behind by a crashed process; they can block the reset.
    for suffix in ("-wal", "-shm"):
        p = db_path + suffix
        if os.path.exists(p):
            try:
                os.remove(p)
            except OSError:
                print(f"Could not remove {p}; SQLite will reuse it.")


def recreate(db_path: str) -> dict:
    """Drop, recreate and seed the database at `db_path`.

    Returns the per-field counts of seeded vocabulary values.
    """

    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    _remove_stale_sidecars(db_path)

    engine = create_engine(f"sqlite:///{db_path}")
    db.install_sqlite_pragmas(engine)
    try:
        Base.metadata.drop_all(engine)
        clear_snapshot_cache()
        Base.metadata.create_all(engine)

        session = sessionmaker(bind=engine)()
        try:
            seeded = seed_default_vocabularies(session)
        finally:
            session.close()

        tables = inspect(engine).get_table_names()
        print(f"Recreated tables ({len(tables)}): {', '.join(sorted(tables))}")
        return seeded
    finally:
        engine.dispose()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Reset the portfolio SQLite database and seed default vocabularies."
    )
    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not prompt for confirmation.",
    )
    parser.add_argument(
        "--backup",
        "-b",
        action="store_true",
        help="Create a timestamped backup before resetting.",
    )
    parser.add_argument(
        "--db-path",
        default=db.DB_PATH,
        help="SQLite file to reset (default: $PORTFOLIO_DB_PATH or data/portfolio.db).",
    )
    args = parser.parse_args(argv)

    _confirm_or_exit(args.db_path, args.yes)
    if args.backup:
        _create_backup(args.db_path)

    seeded = recreate(args.db_path)
    print(f"Seeded vocabularies: {seeded}")
    print(f"Database location: {args.db_path}")


if __name__ == "__main__":
    main()
