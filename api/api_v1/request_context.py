"""Per-request database session and resolved caller for /api/v1 handlers."""

from __future__ import annotations

from typing import Optional

from flask import g, request
from sqlalchemy.orm import Session

import db
from utils.identity import PUBLIC_PRINCIPAL, Principal, resolve_principal


def bearer_token() -> Optional[str]:
    """Return the token from `Authorization: Bearer ...`, or None."""

    header = (request.headers.get("Authorization") or "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def open_request_session() -> None:
    session = db.SessionLocal()
    g.db_session = session
    g.principal = resolve_principal(session, bearer_token())
    # End the lookup's read transaction; handlers start their own.
    session.rollback()


def close_request_session(_exc: Optional[BaseException] = None) -> None:
    session = g.pop("db_session", None)
    if session is not None:
        session.close()


def current_session() -> Session:
    return g.db_session


def current_principal() -> Principal:
    return g.get("principal", PUBLIC_PRINCIPAL)
