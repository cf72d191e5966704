from __future__ import annotations

import pytest

from api.services import entity_service as svc
from api.services import vocabulary_service as vocab
from models.companies import Company
from models.vocabulary import VocabularyTerm
from utils.errors import AccessDenied, ValidationError, VocabularyInUse
from utils.identity import PUBLIC_PRINCIPAL


def _keywords(session, company_id):
    session.expire_all()
    return session.get(Company, company_id).keywords


def test_seed_is_idempotent(session):
    assert vocab.seed_default_vocabularies(session) == {}
    assert vocab.current_version(session, vocab.get_field("industry")) == 1


def test_list_vocabulary_orders_by_usage_then_value(session, portfolio):
    rows = vocab.list_vocabulary(session, "keyword")
    assert rows[0] == {"value": "ai_powered", "label": "Ai Powered", "usage_count": 2}
    assert rows[1]["value"] == "mvp" and rows[1]["usage_count"] == 1
    rest = [r["value"] for r in rows[2:]]
    assert rest == sorted(rest)


def test_validate_tags_is_a_dry_run(session):
    assert vocab.validate_tags(session, "industry", ["fintech"]) == {"ok": True}
    result = vocab.validate_tags(session, "industry", ["not_a_real_industry"])
    assert result["ok"] is False and "not_a_real_industry" in result["reason"]
    assert vocab.validate_tags(session, "colour", ["red"])["ok"] is False


def test_rename_rewrites_every_attachment(session, profiles, portfolio):
    before = vocab.get_vocabulary(session, "keyword")

    result = vocab.rename_term(session, profiles.admin, "keyword", "ai_powered", "AI")

    assert result["target"] == "ai"
    assert result["operation"] == "rename"
    assert result["rewritten"] == 2
    assert _keywords(session, portfolio.acme_id) == ["ai", "mvp"]
    assert _keywords(session, portfolio.bolt_id) == ["ai"]

    after = vocab.get_vocabulary(session, "keyword")
    assert after.version == before.version + 1
    assert "ai" in after and "ai_powered" not in after
    # A snapshot taken earlier never changes.
    assert "ai_powered" in before and "ai" not in before

    old = (
        session.query(VocabularyTerm)
        .filter_by(field="keyword", value="ai_powered")
        .one()
    )
    assert old.status == "retired" and old.renamed_to == "ai"
    assert vocab.version_history(session, "keyword")[-1]["operation"] == "rename"


def test_rename_to_existing_value_is_merge(session, profiles, portfolio):
    result = vocab.rename_term(session, profiles.admin, "keyword", "mvp", "ai_powered")
    assert result["operation"] == "merge"
    assert _keywords(session, portfolio.acme_id) == ["ai_powered"]


def test_merge_many_into_one(session, profiles, portfolio):
    result = vocab.merge_terms(
        session, profiles.admin, "industry", ["fintech", "cloud"], "enterprise"
    )
    assert result["rewritten"] == 2
    session.expire_all()
    assert session.get(Company, portfolio.acme_id).industry_tags == ["enterprise"]
    assert session.get(Company, portfolio.bolt_id).industry_tags == ["enterprise"]


def test_retire_in_use_requires_a_choice(session, profiles, portfolio):
    version = vocab.current_version(session, vocab.get_field("keyword"))
    with pytest.raises(VocabularyInUse):
        vocab.retire_term(session, profiles.admin, "keyword", "mvp")
    assert vocab.current_version(session, vocab.get_field("keyword")) == version
    assert "mvp" in vocab.get_vocabulary(session, "keyword")


def test_retire_with_null_out(session, profiles, portfolio):
    result = vocab.retire_term(session, profiles.admin, "keyword", "mvp", null_out=True)
    assert result["rewritten"] == 1
    assert _keywords(session, portfolio.acme_id) == ["ai_powered"]
    assert "mvp" not in vocab.get_vocabulary(session, "keyword")


def test_retire_last_value_leaves_null(session, profiles, portfolio):
    vocab.retire_term(session, profiles.admin, "business_model", "saas", null_out=True)
    session.expire_all()
    assert session.get(Company, portfolio.acme_id).business_model_tags is None


def test_retire_with_remap(session, profiles, portfolio):
    vocab.retire_term(session, profiles.admin, "industry", "cloud", remap_to="fintech")
    session.expire_all()
    assert session.get(Company, portfolio.acme_id).industry_tags == ["fintech"]


def test_retire_unused_value(session, profiles):
    result = vocab.retire_term(session, profiles.admin, "industry", "space")
    assert result["rewritten"] == 0
    assert "space" not in vocab.get_vocabulary(session, "industry")


def test_failed_migration_changes_nothing(session, profiles, portfolio, monkeypatch):
    version = vocab.current_version(session, vocab.get_field("keyword"))
    monkeypatch.setattr(vocab, "count_attachments", lambda *_a, **_k: 1)

    with pytest.raises(VocabularyInUse):
        vocab.rename_term(session, profiles.admin, "keyword", "ai_powered", "ai")

    assert _keywords(session, portfolio.acme_id) == ["ai_powered", "mvp"]
    assert _keywords(session, portfolio.bolt_id) == ["ai_powered"]
    assert vocab.current_version(session, vocab.get_field("keyword")) == version
    snap = vocab.get_vocabulary(session, "keyword")
    assert "ai_powered" in snap and "ai" not in snap


@pytest.mark.parametrize(
    "op",
    [
        lambda s, p: vocab.add_term(s, p, "industry", "quantum"),
        lambda s, p: vocab.propose_term(s, p, "industry", "quantum"),
        lambda s, p: vocab.rename_term(s, p, "keyword", "mvp", "minimum_product"),
        lambda s, p: vocab.retire_term(s, p, "keyword", "mvp", null_out=True),
    ],
)
def test_migrations_are_admin_only(session, profiles, portfolio, op):
    for principal in (PUBLIC_PRINCIPAL, profiles.lp):
        with pytest.raises(AccessDenied):
            op(session, principal)


def test_propose_then_activate(session, profiles):
    vocab.propose_term(session, profiles.admin, "industry", "Quantum Computing")
    assert "quantum_computing" not in vocab.get_vocabulary(session, "industry")

    term = vocab.activate_term(session, profiles.admin, "industry", "quantum_computing")
    assert term["status"] == "active"
    assert "quantum_computing" in vocab.get_vocabulary(session, "industry")


def test_activate_requires_proposal(session, profiles):
    with pytest.raises(ValidationError):
        vocab.activate_term(session, profiles.admin, "industry", "never_proposed")


def test_add_term_rejects_keys_that_do_not_normalize(session, profiles):
    with pytest.raises(ValidationError):
        vocab.add_term(session, profiles.admin, "industry", "7")


def test_add_existing_term_is_a_no_op(session, profiles):
    field = vocab.get_field("industry")
    version = vocab.current_version(session, field)
    vocab.add_term(session, profiles.admin, "industry", "FinTech")
    assert vocab.current_version(session, field) == version


def test_rename_check_runs_after_admin_check(session, profiles):
    with pytest.raises(AccessDenied):
        vocab.rename_term(session, profiles.lp, "keyword", "mvp", "MVP")
    with pytest.raises(ValidationError):
        vocab.rename_term(session, profiles.admin, "keyword", "mvp", "MVP")


def test_write_after_rename_uses_the_new_value(session, profiles, portfolio):
    vocab.rename_term(session, profiles.admin, "keyword", "ai_powered", "ai")

    row = svc.write_entity(
        session, profiles.admin, "company", portfolio.acme_id, {"keywords": ["AI Powered", "mvp"]}
    )

    assert row["keywords"] == ["ai", "mvp"]
    assert "ai_powered" not in vocab.get_vocabulary(session, "keyword")
    assert "ai_powered" not in [r["value"] for r in vocab.list_vocabulary(session, "keyword")]
    old = session.query(VocabularyTerm).filter_by(field="keyword", value="ai_powered").one()
    assert old.status == "retired"


def test_write_follows_rename_chains(session, profiles, portfolio):
    vocab.rename_term(session, profiles.admin, "keyword", "mvp", "prototype")
    vocab.rename_term(session, profiles.admin, "keyword", "prototype", "beta_product")

    row = svc.write_entity(
        session, profiles.admin, "company", portfolio.bolt_id, {"keywords": ["MVP", "prototype"]}
    )
    assert row["keywords"] == ["beta_product"]


def test_retired_value_needs_an_admin_to_come_back(session, profiles, portfolio):
    vocab.retire_term(session, profiles.admin, "keyword", "mvp", null_out=True)
    version = vocab.current_version(session, vocab.get_field("keyword"))

    with pytest.raises(ValidationError) as exc:
        svc.write_entity(session, profiles.admin, "company", portfolio.acme_id, {"keywords": ["mvp"]})
    assert exc.value.field == "keywords"
    assert vocab.current_version(session, vocab.get_field("keyword")) == version
    assert vocab.validate_tags(session, "keyword", ["mvp"])["ok"] is False

    vocab.add_term(session, profiles.admin, "keyword", "mvp")
    row = svc.write_entity(
        session, profiles.admin, "company", portfolio.acme_id, {"keywords": ["mvp"]}
    )
    assert row["keywords"] == ["mvp"]


def test_snapshot_cache_keeps_only_the_newest_version(session, profiles, portfolio):
    field = vocab.get_field("keyword")
    for suffix in "abcdef":
        svc.write_entity(
            session, profiles.admin, "company", portfolio.acme_id, {"keywords": [f"fresh_{suffix}"]}
        )
        vocab.get_vocabulary(session, "keyword")

    cached = [snap for key, snap in vocab._snapshot_cache.items() if key[1] == "keyword"]
    assert len(cached) == 1
    assert cached[0].version == vocab.current_version(session, field)
    assert "fresh_f" in cached[0]


@pytest.mark.parametrize(
    "raw,value,match",
    [
        ("Sequoia", "sequoia", "exact"),
        ("Sequoia Capital", "sequoia", "partial"),
        ("  Benchmark ", "benchmark", "none"),
    ],
)
def test_suggest_value(session, portfolio, raw, value, match):
    result = vocab.suggest_value(session, "co_investor", raw)
    assert (result["value"], result["match"]) == (value, match)
    assert result["label"] == value.title()


def test_suggest_value_needs_input(session):
    with pytest.raises(ValidationError) as exc:
        vocab.suggest_value(session, "co_investor", "  !! ")
    assert exc.value.field == "q"
