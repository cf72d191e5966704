from __future__ import annotations

import pytest

from api.services import authorization as authz
from utils.identity import PUBLIC_PRINCIPAL, Principal


@pytest.mark.parametrize(
    "entity_type,group,role,allowed",
    [
        ("company", "public", "public", True),
        ("company", "restricted", "public", False),
        ("company", "restricted", "lp", True),
        ("founder", "public", "public", False),
        ("founder", "public", "lp", False),
        ("founder", "public", "admin", True),
        ("founder", "restricted", "lp", False),
        ("founder", "restricted", "admin", True),
        ("founder_update", "public", "public", False),
        ("founder_update", "restricted", "lp", True),
        ("company_founder", "public", "lp", False),
        ("company_founder", "public", "admin", True),
        ("kpi_value", "restricted", "public", False),
        ("company_vc", "public", "public", True),
        ("company_vc", "restricted", "public", False),
        ("profile", "public", "lp", False),
        ("nope", "public", "admin", False),
        ("company", "secret", "admin", False),
    ],
)
def test_read_policy(entity_type, group, role, allowed):
    assert authz.can_read(role, entity_type, group) is allowed


def test_relationship_is_never_looser_than_its_sides():
    # company_founder declares public, but founders are admin-only.
    assert authz.min_read_role("company_founder", "public") == "admin"
    assert authz.min_read_role("company_vc", "public") == "public"
    for entity_type, policy in authz.POLICIES.items():
        for group in policy.groups:
            effective = authz.min_read_role(entity_type, group)
            for side in policy.sides:
                side_floor = min(
                    (authz.min_read_role(side, g) for g in authz.POLICIES[side].groups),
                    key=lambda r: authz.ROLE_RANK[r],
                )
                assert authz.ROLE_RANK[effective] >= authz.ROLE_RANK[side_floor]


@pytest.mark.parametrize("entity_type", authz.ENTITY_TYPES)
def test_only_admin_writes(entity_type):
    assert authz.can_write("admin", entity_type)
    assert not authz.can_write("lp", entity_type)
    assert not authz.can_write("public", entity_type)


def test_self_profile_exception():
    me = Principal(role="lp", profile_id=7)
    assert authz.readable_groups(me, "profile", authz.FIELD_GROUPS, record_id=7) == [
        "public",
        "restricted",
    ]
    assert authz.readable_groups(me, "profile", authz.FIELD_GROUPS, record_id=8) == []
    assert authz.writable_fields(me, "profile", record_id=7) == ("display_name",)
    assert authz.writable_fields(me, "profile", record_id=8) == ()
    assert authz.writable_fields(PUBLIC_PRINCIPAL, "profile", record_id=None) == ()


def test_admin_writes_every_field():
    admin = Principal(role="admin", profile_id=1)
    assert authz.writable_fields(admin, "company") is None


@pytest.mark.parametrize("entity_type", authz.ENTITY_TYPES)
def test_public_never_sees_restricted_fields(entity_type):
    groups = authz.readable_groups(PUBLIC_PRINCIPAL, entity_type, authz.FIELD_GROUPS)
    assert "restricted" not in groups
