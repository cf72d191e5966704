from __future__ import annotations

import pytest

from api.services import entity_service as svc
from api.services.authorization import ENTITY_TYPES, restricted_fields
from api.services.vocabulary_service import get_vocabulary
from models.companies import Company
from utils.errors import AccessDenied, ConflictError, NotFound, ValidationError
from utils.identity import PUBLIC_PRINCIPAL


def test_public_read_omits_restricted_fields(session, portfolio):
    row = svc.read_entity(
        session, PUBLIC_PRINCIPAL, "company", portfolio.acme_id, ["public", "restricted"]
    )
    assert row["name"] == "Acme"
    assert row["keywords"] == ["ai_powered", "mvp"]
    for name in restricted_fields("company"):
        assert name not in row


def test_public_read_of_only_restricted_group_returns_bare_record(session, portfolio):
    row = svc.read_entity(session, PUBLIC_PRINCIPAL, "company", portfolio.acme_id, ["restricted"])
    assert row == {"id": portfolio.acme_id}


def test_lp_reads_restricted_company_fields(session, profiles, portfolio):
    row = svc.read_entity(session, profiles.lp, "company", portfolio.acme_id)
    assert row["investment_amount"] == 100000.0
    assert row["notes"] == "Internal only"


@pytest.mark.parametrize("entity_type", ["founder", "founder_update", "kpi", "kpi_value"])
def test_member_only_types_are_not_found_for_public(session, portfolio, entity_type):
    with pytest.raises(NotFound):
        svc.read_entity(session, PUBLIC_PRINCIPAL, entity_type, 1)


def test_missing_and_forbidden_look_the_same(session, profiles, portfolio):
    with pytest.raises(NotFound) as missing:
        svc.read_entity(session, profiles.admin, "founder", 999999)
    with pytest.raises(NotFound) as hidden:
        svc.read_entity(session, PUBLIC_PRINCIPAL, "founder", portfolio.ada_id)
    assert str(missing.value) == str(hidden.value)


def test_founders_are_admin_read(session, profiles, portfolio):
    with pytest.raises(NotFound):
        svc.read_entity(session, profiles.lp, "founder", portfolio.ada_id)
    with pytest.raises(NotFound):
        svc.read_entity(session, profiles.lp, "company_founder", 1)
    # Updates stay lp-readable even though they name a founder.
    row = svc.read_entity(session, profiles.lp, "founder_update", 1)
    assert row["founder_id"] == portfolio.ada_id
    admin_row = svc.read_entity(session, profiles.admin, "founder", portfolio.ada_id)
    assert admin_row["email"] == "ada@acme.test"


def test_lp_write_is_denied_before_lookup(session, profiles, portfolio):
    with pytest.raises(AccessDenied) as exc:
        svc.write_entity(session, profiles.lp, "company", portfolio.acme_id, {"notes": "x"})
    assert str(exc.value) == "Access denied."
    # Even a record that does not exist is denied rather than reported missing.
    with pytest.raises(AccessDenied):
        svc.write_entity(session, profiles.lp, "company", 999999, {"notes": "x"})
    session.expire_all()
    assert session.get(Company, portfolio.acme_id).notes == "Internal only"


def test_public_write_is_denied(session, portfolio):
    with pytest.raises(AccessDenied):
        svc.write_entity(session, PUBLIC_PRINCIPAL, "company", portfolio.acme_id, {"name": "x"})


def test_admin_write_updates_only_patched_fields(session, profiles, portfolio):
    row = svc.write_entity(
        session, profiles.admin, "company", portfolio.acme_id, {"tagline": "New tagline"}
    )
    assert row["tagline"] == "New tagline"
    assert row["name"] == "Acme"
    assert row["notes"] == "Internal only"
    assert session.get(Company, portfolio.acme_id).row_version == 2


def test_write_normalizes_tags(session, profiles, portfolio):
    row = svc.write_entity(
        session,
        profiles.admin,
        "company",
        portfolio.acme_id,
        {"keywords": ["  Venture-Capital  ", "AI Powered"]},
    )
    assert row["keywords"] == ["venture_capital", "ai_powered"]
    assert "venture_capital" in get_vocabulary(session, "keyword")


def test_over_limit_keywords_rejected_and_nothing_written(session, profiles, portfolio):
    keywords = [f"keyword_{chr(ord('a') + i)}" for i in range(21)]
    with pytest.raises(ValidationError) as exc:
        svc.write_entity(
            session, profiles.admin, "company", portfolio.acme_id, {"keywords": keywords}
        )
    assert exc.value.field == "keywords"
    session.expire_all()
    assert session.get(Company, portfolio.acme_id).keywords == ["ai_powered", "mvp"]
    assert "keyword_a" not in get_vocabulary(session, "keyword")


def test_closed_field_rejects_unknown_value(session, profiles, portfolio):
    with pytest.raises(ValidationError) as exc:
        svc.write_entity(
            session,
            profiles.admin,
            "company",
            portfolio.acme_id,
            {"industry_tags": ["fintech", "space_lasers"]},
        )
    assert exc.value.field == "industry_tags"


def test_empty_tag_array_stored_as_null(session, profiles, portfolio):
    row = svc.write_entity(
        session, profiles.admin, "company", portfolio.acme_id, {"co_investors": []}
    )
    assert row["co_investors"] is None


def test_unknown_patch_field_is_validation_error(session, profiles, portfolio):
    with pytest.raises(ValidationError) as exc:
        svc.write_entity(session, profiles.admin, "company", portfolio.acme_id, {"bogus": 1})
    assert exc.value.field == "bogus"


def test_expected_version_conflict(session, profiles, portfolio):
    svc.write_entity(
        session, profiles.admin, "company", portfolio.acme_id, {"tagline": "a"}, expected_version=1
    )
    with pytest.raises(ConflictError):
        svc.write_entity(
            session,
            profiles.admin,
            "company",
            portfolio.acme_id,
            {"tagline": "b"},
            expected_version=1,
        )
    session.expire_all()
    assert session.get(Company, portfolio.acme_id).tagline == "a"


def test_missing_record_for_admin_is_not_found(session, profiles, portfolio):
    with pytest.raises(NotFound):
        svc.write_entity(session, profiles.admin, "company", 999999, {"name": "x"})


def test_profile_self_service(session, profiles):
    me = profiles.lp
    row = svc.read_entity(session, me, "profile", me.profile_id)
    assert row["email"] == "lp@example.com"

    row = svc.write_entity(session, me, "profile", me.profile_id, {"display_name": "New"})
    assert row["display_name"] == "New"

    with pytest.raises(AccessDenied):
        svc.write_entity(session, me, "profile", me.profile_id, {"role": "admin"})
    with pytest.raises(NotFound):
        svc.read_entity(session, me, "profile", profiles.admin.profile_id)


def test_create_requires_admin_and_required_fields(session, profiles):
    with pytest.raises(AccessDenied):
        svc.create_entity(session, profiles.lp, "company", {"slug": "new", "name": "New"})
    with pytest.raises(ValidationError) as exc:
        svc.create_entity(session, profiles.admin, "company", {"slug": "new"})
    assert exc.value.field == "name"

    row = svc.create_entity(
        session,
        profiles.admin,
        "company",
        {"slug": "new", "name": "New Co", "industry_tags": ["FinTech"]},
    )
    assert row["industry_tags"] == ["fintech"]


def test_create_checks_references(session, profiles, portfolio):
    with pytest.raises(ValidationError) as exc:
        svc.create_entity(
            session, profiles.admin, "company_founder", {"company_id": 999999, "founder_id": 1}
        )
    assert exc.value.field == "company_id"


def test_create_duplicate_slug_conflicts(session, profiles, portfolio):
    with pytest.raises(ConflictError):
        svc.create_entity(session, profiles.admin, "company", {"slug": "acme", "name": "Again"})


def test_list_entities_respects_roles(session, profiles, portfolio):
    public_rows = svc.list_entities(session, PUBLIC_PRINCIPAL, "company")
    assert [r["slug"] for r in public_rows] == ["acme", "bolt"]
    assert all("investment_amount" not in r for r in public_rows)

    assert svc.list_entities(session, PUBLIC_PRINCIPAL, "founder") == []
    assert svc.list_entities(session, profiles.lp, "founder") == []
    assert len(svc.list_entities(session, profiles.admin, "founder")) == 2

    own = svc.list_entities(session, profiles.lp, "profile")
    assert [r["id"] for r in own] == [profiles.lp.profile_id]


@pytest.mark.parametrize("entity_type", ENTITY_TYPES)
def test_no_restricted_leakage_for_public(session, profiles, portfolio, entity_type):
    for row in svc.list_entities(session, PUBLIC_PRINCIPAL, entity_type):
        for name in restricted_fields(entity_type):
            assert name not in row


def test_unknown_entity_type_is_not_found(session, profiles):
    with pytest.raises(NotFound):
        svc.read_entity(session, profiles.admin, "spaceship", 1)
