"""Tag taxonomy: normalization, canonical-key grammar, and array validation.

Two vocabulary regimes share one engine:

- closed: values must be members of the curated vocabulary (industry,
  business_model). Used for filtering, so the set stays small and reviewed.
- open: values only need to be well-formed canonical keys (keyword,
  co_investor). New values grow the vocabulary on write.

Everything in this module is pure; persistence of vocabularies lives in
`api.services.vocabulary_service`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from config import tag_limit
from utils.errors import ValidationError

MODE_CLOSED = "closed"
MODE_OPEN = "open"

MIN_KEY_LENGTH = 2
MAX_KEY_LENGTH = 100

_WS_OR_HYPHEN = re.compile(r"[\s\-]+")
_NOT_KEY_CHAR = re.compile(r"[^a-z0-9_]")
_UNDERSCORE_RUN = re.compile(r"_+")
_CANONICAL_KEY = re.compile(r"^[a-z][a-z0-9_]*[a-z0-9]$")


def normalize(text: Optional[str]) -> str:
    """Turn free text into a canonical key candidate.

    Steps: lowercase; whitespace/hyphen runs -> "_"; drop chars outside
    [a-z0-9_]; collapse "_" runs; trim leading/trailing "_".

    Idempotent: normalize(normalize(x)) == normalize(x). Blank input gives "".
    The result is not guaranteed to be a valid key (e.g. "7" or "x"); use
    `is_canonical_key` for that.
    """

    if text is None:
        return ""
    s = str(text).strip().lower()
    s = _WS_OR_HYPHEN.sub("_", s)
    s = _NOT_KEY_CHAR.sub("", s)
    s = _UNDERSCORE_RUN.sub("_", s)
    return s.strip("_")


def is_canonical_key(value: object) -> bool:
    """True iff `value` is a lowercase snake_case key of length 2..100.

    Must start with a letter, end with a letter or digit, and contain no "__".
    """

    if not isinstance(value, str):
        return False
    if not (MIN_KEY_LENGTH <= len(value) <= MAX_KEY_LENGTH):
        return False
    if "__" in value:
        return False
    return _CANONICAL_KEY.match(value) is not None


def label_for(value: str) -> str:
    """Display label derived from a key: "ai_powered" -> "Ai Powered".

    Labels are never stored, so relabeling needs no data migration.
    """

    return " ".join(w[:1].upper() + w[1:] for w in value.replace("_", " ").split())


def normalize_tags(values: Optional[Iterable[object]]) -> List[str]:
    """Normalize each value, drop blanks, dedupe keeping first occurrence."""

    out: List[str] = []
    seen = set()
    for v in values or ():
        key = normalize(None if v is None else str(v))
        if key and key not in seen:
            seen.add(key)
            out.append(key)
    return out


@dataclass(frozen=True)
class TaxonomyField:
    """A tag-array attribute governed by one vocabulary."""

    name: str
    attribute: str
    mode: str

    @property
    def max_items(self) -> int:
        # Read per call so env overrides apply without a restart of the registry.
        return tag_limit(self.name)

    @property
    def is_open(self) -> bool:
        return self.mode == MODE_OPEN


INDUSTRY = TaxonomyField("industry", "industry_tags", MODE_CLOSED)
BUSINESS_MODEL = TaxonomyField("business_model", "business_model_tags", MODE_CLOSED)
KEYWORD = TaxonomyField("keyword", "keywords", MODE_OPEN)
CO_INVESTOR = TaxonomyField("co_investor", "co_investors", MODE_OPEN)

TAXONOMY_FIELDS = (INDUSTRY, BUSINESS_MODEL, KEYWORD, CO_INVESTOR)

_BY_NAME = {f.name: f for f in TAXONOMY_FIELDS}
_BY_ATTRIBUTE = {f.attribute: f for f in TAXONOMY_FIELDS}


def get_field(name: str) -> TaxonomyField:
    """Look up a field by taxonomy name ("keyword") or entity attribute ("keywords").

    Raises:
        ValidationError: unknown field name.
    """

    key = (name or "").strip()
    field = _BY_NAME.get(key) or _BY_ATTRIBUTE.get(key)
    if field is None:
        raise ValidationError("field", f"unknown taxonomy field {name!r}")
    return field


def field_for_attribute(attribute: str) -> Optional[TaxonomyField]:
    return _BY_ATTRIBUTE.get(attribute)


@dataclass(frozen=True)
class TagCheck:
    ok: bool
    reason: Optional[str] = None
    offending: Optional[str] = None


def check_tags(
    field: TaxonomyField,
    tags: Optional[Sequence[object]],
    vocabulary: Iterable[str],
) -> TagCheck:
    """Validate a proposed tag array; the first failure wins.

    Accepts null/empty. Otherwise requires len <= max_items, every element a
    canonical key, and (closed fields only) vocabulary membership. Repeated
    values are not an error; write paths dedupe with `normalize_tags`.
    """

    if tags is None:
        return TagCheck(ok=True)
    if isinstance(tags, (str, bytes)) or not isinstance(tags, Sequence):
        return TagCheck(ok=False, reason="must be a list of strings")
    if len(tags) == 0:
        return TagCheck(ok=True)

    limit = field.max_items
    if len(tags) > limit:
        return TagCheck(ok=False, reason=f"at most {limit} values allowed, got {len(tags)}")

    members = vocabulary if isinstance(vocabulary, (set, frozenset)) else set(vocabulary)
    for tag in tags:
        if not is_canonical_key(tag):
            return TagCheck(
                ok=False,
                reason=f"{tag!r} is not a lowercase snake_case key (2-{MAX_KEY_LENGTH} chars)",
                offending=str(tag),
            )
        if not field.is_open and tag not in members:
            return TagCheck(
                ok=False,
                reason=f"{tag!r} is not in the {field.name} vocabulary",
                offending=tag,
            )
    return TagCheck(ok=True)


def validate(
    field: TaxonomyField,
    tags: Optional[Sequence[object]],
    vocabulary: Iterable[str],
) -> bool:
    return check_tags(field, tags, vocabulary).ok


def require_valid_tags(
    field: TaxonomyField,
    tags: Optional[Sequence[object]],
    vocabulary: Iterable[str],
) -> None:
    """Raise `ValidationError(field=<entity attribute>)` if the array is invalid."""

    result = check_tags(field, tags, vocabulary)
    if not result.ok:
        raise ValidationError(field.attribute, result.reason or "invalid", value=result.offending)
