from __future__ import annotations

import pytest

from app import create_app
from utils.errors import ValidationError
from utils.taxonomy import (
    BUSINESS_MODEL,
    CO_INVESTOR,
    INDUSTRY,
    KEYWORD,
    check_tags,
    get_field,
    is_canonical_key,
    label_for,
    normalize,
    normalize_tags,
    require_valid_tags,
    validate,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("  Venture-Capital  ", "venture_capital"),
        ("AI", "ai"),
        ("Machine Learning", "machine_learning"),
        ("b2b--SaaS", "b2b_saas"),
        ("__edge__case__", "edge_case"),
        ("Café & Bar!", "caf_bar"),
        ("a \t\n b", "a_b"),
        ("", ""),
        ("   ", ""),
        ("!!!", ""),
    ],
)
def test_normalize(raw: str, expected: str) -> None:
    assert normalize(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["  Venture-Capital  ", "Hello__World", "-x-", "3D Printing", "already_ok", "A-b C_d"],
)
def test_normalize_is_idempotent(raw: str) -> None:
    once = normalize(raw)
    assert normalize(once) == once


def test_normalize_none_is_blank() -> None:
    assert normalize(None) == ""


@pytest.mark.parametrize(
    "value",
    ["ai", "fintech", "b2b2c", "ai_powered", "x" * 100, "e_commerce"],
)
def test_canonical_keys_accepted(value: str) -> None:
    assert is_canonical_key(value)


@pytest.mark.parametrize(
    "value",
    [
        "a",  # too short
        "x" * 101,  # too long
        "AI",  # uppercase
        "3d_printing",  # leading digit
        "_ai",
        "ai_",
        "ai__ml",
        "ai-ml",
        "ai ml",
        None,
        42,
    ],
)
def test_canonical_keys_rejected(value) -> None:
    assert not is_canonical_key(value)


def test_label_is_derived_from_key() -> None:
    assert label_for("ai_powered") == "Ai Powered"
    assert label_for("b2b") == "B2b"


def test_normalize_tags_dedupes_and_drops_blanks() -> None:
    assert normalize_tags(["AI", " ai ", "", None, "Deep Tech"]) == ["ai", "deep_tech"]
    assert normalize_tags(None) == []


def test_get_field_accepts_name_or_attribute() -> None:
    assert get_field("keyword") is KEYWORD
    assert get_field("keywords") is KEYWORD
    with pytest.raises(ValidationError) as exc:
        get_field("colour")
    assert exc.value.field == "field"


@pytest.mark.parametrize("tags", [None, []])
def test_null_and_empty_are_valid(tags) -> None:
    assert validate(INDUSTRY, tags, set())


@pytest.mark.parametrize(
    "field,limit",
    [(INDUSTRY, 10), (BUSINESS_MODEL, 10), (KEYWORD, 20), (CO_INVESTOR, 15)],
)
def test_cardinality_limit_is_inclusive(field, limit) -> None:
    values = [f"tag_{chr(ord('a') + i // 26)}{chr(ord('a') + i % 26)}" for i in range(limit + 1)]
    vocab = set(values)
    assert validate(field, values[:limit], vocab)
    assert not validate(field, values, vocab)


def test_cardinality_limit_env_override(monkeypatch) -> None:
    monkeypatch.setenv("TAG_LIMIT_KEYWORD", "2")
    assert validate(KEYWORD, ["aa", "bb"], set())
    assert not validate(KEYWORD, ["aa", "bb", "cc"], set())


def test_closed_field_requires_membership() -> None:
    result = check_tags(INDUSTRY, ["fintech", "space_lasers"], {"fintech"})
    assert not result.ok
    assert result.offending == "space_lasers"


def test_open_field_accepts_new_values() -> None:
    assert validate(KEYWORD, ["brand_new_idea"], set())


@pytest.mark.parametrize(
    "tags",
    [["AI"], ["has space"], "fintech", [1, 2]],
)
def test_malformed_arrays_rejected(tags) -> None:
    assert not validate(KEYWORD, tags, set())


def test_require_valid_tags_names_the_attribute() -> None:
    too_many = [f"kw_{chr(ord('a') + i)}" for i in range(21)]
    with pytest.raises(ValidationError) as exc:
        require_valid_tags(KEYWORD, too_many, set())
    assert exc.value.field == "keywords"


def test_repeated_values_are_not_a_validation_failure() -> None:
    assert validate(KEYWORD, ["ok_tag", "ok_tag"], set())
    assert validate(INDUSTRY, ["fintech", "fintech"], {"fintech"})


def test_cardinality_limit_follows_app_config(monkeypatch) -> None:
    monkeypatch.delenv("TAG_LIMIT_KEYWORD", raising=False)
    app = create_app({"TAG_LIMITS": {"keyword": 2}})

    with app.app_context():
        assert KEYWORD.max_items == 2
        assert not validate(KEYWORD, ["aa", "bb", "cc"], set())
        # Fields the override does not name keep their settings value.
        assert INDUSTRY.max_items == 10

        monkeypatch.setenv("TAG_LIMIT_KEYWORD", "3")
        assert validate(KEYWORD, ["aa", "bb", "cc"], set())

    monkeypatch.delenv("TAG_LIMIT_KEYWORD")
    assert KEYWORD.max_items == 20
