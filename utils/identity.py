"""Identity resolution: bearer token -> exactly one role.

Tokens are `itsdangerous` timed signatures over the profile id. Anything that
cannot be verified (missing, anonymous, bad signature, expired, unknown or
deactivated profile, unexpected role) resolves to the public role. Resolution
never raises for bad credentials, so every caller gets the least-privileged
path by default.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from flask import current_app, has_app_context
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session

from config import Config
from logging_utils import get_logger
from models.profiles import ROLE_ADMIN, ROLE_LP, ROLE_PUBLIC, ROLES, Profile

logger = get_logger(__name__)

_TOKEN_SALT = "portfolio-principal"
ANONYMOUS = "anonymous"

# public < lp < admin
ROLE_RANK = {ROLE_PUBLIC: 0, ROLE_LP: 1, ROLE_ADMIN: 2}


@dataclass(frozen=True)
class Principal:
    """A resolved caller. `profile_id` is None for anonymous/public callers."""

    role: str
    profile_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.profile_id is not None


PUBLIC_PRINCIPAL = Principal(role=ROLE_PUBLIC)


def _signing_settings() -> Tuple[str, int]:
    if has_app_context():
        cfg = current_app.config
        return str(cfg.get("SECRET_KEY") or Config.SECRET_KEY), int(
            cfg.get("TOKEN_MAX_AGE_SECONDS") or Config.TOKEN_MAX_AGE_SECONDS
        )
    return Config.SECRET_KEY, Config.TOKEN_MAX_AGE_SECONDS


def _serializer(secret_key: Optional[str] = None) -> URLSafeTimedSerializer:
    secret, _max_age = _signing_settings()
    return URLSafeTimedSerializer(secret_key or secret, salt=_TOKEN_SALT)


def issue_token(profile_id: int, *, secret_key: Optional[str] = None) -> str:
    """Sign a bearer token for a profile (used by the login flow and tests)."""

    return _serializer(secret_key).dumps({"pid": int(profile_id)})


def _profile_id_from_token(
    token: str, *, secret_key: Optional[str], max_age: Optional[int]
) -> Optional[int]:
    _secret, default_max_age = _signing_settings()
    try:
        payload = _serializer(secret_key).loads(
            token, max_age=max_age if max_age is not None else default_max_age
        )
    except SignatureExpired:
        logger.info("Expired principal token; resolving to public")
        return None
    except BadSignature:
        logger.warning("Invalid principal token signature; resolving to public")
        return None

    pid = payload.get("pid") if isinstance(payload, dict) else None
    if isinstance(pid, bool) or not isinstance(pid, int):
        logger.warning("Malformed principal token payload; resolving to public")
        return None
    return pid


def resolve_principal(
    session: Session,
    principal_token: Optional[str],
    *,
    secret_key: Optional[str] = None,
    max_age: Optional[int] = None,
) -> Principal:
    """Resolve a token to a `Principal`. Never raises for bad credentials."""

    token = (principal_token or "").strip()
    if not token or token.lower() == ANONYMOUS:
        return PUBLIC_PRINCIPAL

    pid = _profile_id_from_token(token, secret_key=secret_key, max_age=max_age)
    if pid is None:
        return PUBLIC_PRINCIPAL

    profile = session.get(Profile, pid)
    if profile is None or not profile.is_active:
        logger.info("Token for unknown or inactive profile; resolving to public")
        return PUBLIC_PRINCIPAL

    role = profile.role if profile.role in ROLES else ROLE_PUBLIC
    return Principal(role=role, profile_id=profile.id)


def resolve_role(
    session: Session,
    principal_token: Optional[str],
    *,
    secret_key: Optional[str] = None,
    max_age: Optional[int] = None,
) -> str:
    """Return exactly one of public / lp / admin for a caller."""

    return resolve_principal(
        session, principal_token, secret_key=secret_key, max_age=max_age
    ).role


def role_at_least(role: str, minimum: str) -> bool:
    return ROLE_RANK.get(role, -1) >= ROLE_RANK[minimum]


def stricter_role(a: str, b: str) -> str:
    return a if ROLE_RANK[a] >= ROLE_RANK[b] else b
