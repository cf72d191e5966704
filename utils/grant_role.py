"""Grant a role to a profile (creating it if needed) and print a bearer token.

Usage:
    python utils/grant_role.py admin@example.com              # admin
    python utils/grant_role.py lp@example.com --role lp
"""

from __future__ import annotations

import argparse
import os
import sys

# Allow running as: `python utils/grant_role.py`
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from sqlalchemy.orm import Session

import db
from logging_utils import get_logger
from models.profiles import ROLE_ADMIN, ROLES, Profile
from utils.identity import issue_token

logger = get_logger(__name__)


def grant_role(session: Session, email: str, role: str = ROLE_ADMIN) -> Profile:
    """Set `role` on the profile with `email`, creating an active one if missing."""

    if role not in ROLES:
        raise ValueError(f"unknown role: {role}")
    email = (email or "").strip().lower()
    if not email:
        raise ValueError("email is required")

    profile = session.query(Profile).filter(Profile.email == email).one_or_none()
    if profile is None:
        profile = Profile(email=email, role=role, is_active=True)
        session.add(profile)
    else:
        profile.role = role
        profile.is_active = True
        profile.row_version = (profile.row_version or 0) + 1
    session.commit()
    logger.info("Granted role=%s to profile=%s", role, profile.id)
    return profile


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("--role", default=ROLE_ADMIN, choices=ROLES)
    args = parser.parse_args(argv)

    session = db.SessionLocal()
    try:
        profile = grant_role(session, args.email, args.role)
        print(f"profile_id={profile.id} role={profile.role}")
        print(f"token={issue_token(profile.id)}")
    finally:
        session.close()


if __name__ == "__main__":
    main()
