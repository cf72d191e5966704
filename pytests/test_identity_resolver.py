from __future__ import annotations

import pytest

from models.profiles import Profile
from utils.identity import (
    PUBLIC_PRINCIPAL,
    issue_token,
    resolve_principal,
    resolve_role,
    role_at_least,
    stricter_role,
)


def test_admin_and_lp_tokens_resolve(session, profiles):
    assert resolve_role(session, profiles.admin_token) == "admin"
    assert resolve_role(session, profiles.lp_token) == "lp"

    principal = resolve_principal(session, profiles.lp_token)
    assert principal.profile_id == profiles.lp.profile_id
    assert principal.is_authenticated


@pytest.mark.parametrize("token", [None, "", "   ", "anonymous", "not-a-token"])
def test_missing_or_garbage_tokens_are_public(session, token):
    assert resolve_principal(session, token) == PUBLIC_PRINCIPAL


def test_inactive_profile_is_public(session, profiles):
    assert resolve_role(session, profiles.inactive_token) == "public"


def test_unknown_profile_is_public(session, profiles):
    assert resolve_role(session, issue_token(987654)) == "public"


def test_token_signed_with_other_key_is_public(session, profiles):
    forged = issue_token(profiles.admin.profile_id, secret_key="someone-elses-key")
    assert resolve_role(session, forged) == "public"


def test_expired_token_is_public(session, profiles):
    assert resolve_role(session, profiles.admin_token, max_age=-1) == "public"


def test_unexpected_stored_role_is_public(session, profiles):
    p = session.get(Profile, profiles.lp.profile_id)
    p.role = "superuser"
    session.commit()
    assert resolve_role(session, profiles.lp_token) == "public"


def test_role_ordering():
    assert role_at_least("admin", "lp")
    assert role_at_least("lp", "lp")
    assert not role_at_least("public", "lp")
    assert not role_at_least("bogus", "public")
    assert stricter_role("public", "lp") == "lp"
    assert stricter_role("admin", "lp") == "admin"
