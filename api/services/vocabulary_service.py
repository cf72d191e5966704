"""Versioned vocabularies and their migrations.

Each taxonomy field has an append-only version log (`vocabulary_versions`).
Readers get an immutable `VocabularySnapshot` for the field's current version.
Only the newest committed snapshot per (database, field) is cached, and a
snapshot is never mutated, so a reader holding one cannot observe a
half-applied change.

Migrations (add / propose / activate / rename / merge / retire) are admin-only.
Each one runs as a single database transaction under the process-wide
`exclusive_write()` lock and appends exactly one version row. Rename and merge
rewrite every attachment before the old term is retired; a term with
attachments is never retired unless the caller remaps or nulls them.
"""

from __future__ import annotations

import threading
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from logging_utils import get_logger
from models.companies import Company
from models.profiles import ROLE_ADMIN
from models.vocabulary import (
    TERM_ACTIVE,
    TERM_PROPOSED,
    TERM_RETIRED,
    VocabularyTerm,
    VocabularyVersion,
)
from utils.default_vocabularies import DEFAULT_VOCABULARIES
from utils.errors import AccessDenied, ValidationError, VocabularyInUse
from utils.identity import Principal
from utils.time_utils import iso_or_none
from utils.taxonomy import (
    TAXONOMY_FIELDS,
    TaxonomyField,
    check_tags,
    get_field,
    is_canonical_key,
    label_for,
    normalize,
)

logger = get_logger(__name__)

# Serializes vocabulary migrations and tag-attachment writes within a process.
# Readers never take it.
_WRITE_LOCK = threading.RLock()
_lock_depth = threading.local()

_snapshot_cache: Dict[Tuple[str, str], "VocabularySnapshot"] = {}
_snapshot_cache_lock = threading.Lock()

_PENDING_VERSION_KEY = "vocabulary_version_pending"


@contextmanager
def exclusive_write(session: Optional[Session] = None) -> Iterator[None]:
    """Hold the process-wide write lock.

    With a session, a read-only transaction opened before the lock is ended
    first: it pins an older WAL snapshot, and SQLite refuses to turn such a
    reader into a writer once another writer has committed.
    """

    with _WRITE_LOCK:
        depth = getattr(_lock_depth, "value", 0)
        _lock_depth.value = depth + 1
        try:
            # Only the outermost holder may reset; a nested one is mid-write.
            if depth == 0 and session is not None and session.in_transaction():
                if not (session.new or session.dirty or session.deleted):
                    session.rollback()
            yield
        finally:
            _lock_depth.value = depth


@dataclass(frozen=True)
class VocabularySnapshot:
    field: str
    version: int
    values: frozenset

    def __contains__(self, value: object) -> bool:
        return value in self.values

    def __len__(self) -> int:
        return len(self.values)


def _db_key(session: Session) -> str:
    bind = session.get_bind()
    return str(bind.url)


def current_version(session: Session, field: TaxonomyField) -> int:
    v = (
        session.query(func.max(VocabularyVersion.version))
        .filter(VocabularyVersion.field == field.name)
        .scalar()
    )
    return int(v or 0)


def _active_values(session: Session, field: TaxonomyField) -> frozenset:
    rows = (
        session.query(VocabularyTerm.value)
        .filter(VocabularyTerm.field == field.name)
        .filter(VocabularyTerm.status == TERM_ACTIVE)
        .all()
    )
    return frozenset(r[0] for r in rows)


def get_vocabulary(session: Session, field_name: str) -> VocabularySnapshot:
    """Return the current vocabulary of a field as an immutable snapshot."""

    field = get_field(field_name)
    version = current_version(session, field)
    key = (_db_key(session), field.name)

    with _snapshot_cache_lock:
        cached = _snapshot_cache.get(key)
    if cached is not None and cached.version == version:
        return cached

    snap = VocabularySnapshot(field.name, version, _active_values(session, field))
    # Uncommitted versions (inside a migration) must not leak into the cache,
    # and a reader on an older transaction must not replace a newer entry.
    if not session.info.get(_PENDING_VERSION_KEY):
        with _snapshot_cache_lock:
            latest = _snapshot_cache.get(key)
            if latest is None or latest.version < version:
                _snapshot_cache[key] = snap
    return snap


def end_vocabulary_write(session: Session) -> None:
    """Forget the pending-version marker once the caller committed or rolled back."""

    session.info.pop(_PENDING_VERSION_KEY, None)


def clear_snapshot_cache() -> None:
    with _snapshot_cache_lock:
        _snapshot_cache.clear()


# ----------------------------------------------------------------------------
# Read side
# ----------------------------------------------------------------------------


def usage_counts(session: Session, field_name: str) -> Counter:
    """Count companies carrying each value of a field."""

    field = get_field(field_name)
    column = getattr(Company, field.attribute)
    counts: Counter = Counter()
    for (tags,) in session.query(column).filter(column.isnot(None)):
        for tag in set(tags or ()):
            counts[tag] += 1
    return counts


def list_vocabulary(session: Session, field_name: str) -> List[Dict[str, object]]:
    """Active values with display label and usage, by usage desc then value asc."""

    snap = get_vocabulary(session, field_name)
    counts = usage_counts(session, field_name)
    rows = [
        {"value": v, "label": label_for(v), "usage_count": int(counts.get(v, 0))}
        for v in snap.values
    ]
    rows.sort(key=lambda r: (-r["usage_count"], r["value"]))
    return rows


def validate_tags(
    session: Session, field_name: str, values: Optional[Sequence[object]]
) -> Dict[str, object]:
    """Check values against the field's current vocabulary without writing."""

    try:
        field = get_field(field_name)
    except ValidationError as exc:
        return {"ok": False, "reason": exc.message}

    result = check_tags(field, values, get_vocabulary(session, field.name).values)
    if not result.ok:
        return {"ok": False, "reason": result.reason}
    try:
        resolve_renamed(session, field, list(values or ()))
    except ValidationError as exc:
        return {"ok": False, "reason": exc.message}
    return {"ok": True}


def suggest_value(
    session: Session, field_name: str, raw: Optional[object]
) -> Dict[str, object]:
    """Closest existing value of a field for free-text input.

    The input is normalized first. An exact match wins; otherwise the shortest
    existing value that contains the key, or is contained in it. With no match
    the normalized key itself is suggested as a new value.
    """

    field = get_field(field_name)
    key = normalize(None if raw is None else str(raw))
    if not key:
        raise ValidationError("q", "nothing to look up")

    known = set(get_vocabulary(session, field.name).values) | set(usage_counts(session, field.name))
    if key in known:
        match, value = "exact", key
    else:
        partial = sorted((v for v in known if key in v or v in key), key=lambda v: (len(v), v))
        match, value = ("partial", partial[0]) if partial else ("none", key)
    return {"input": raw, "value": value, "label": label_for(value), "match": match}


def version_history(session: Session, field_name: str) -> List[Dict[str, object]]:
    field = get_field(field_name)
    rows = (
        session.query(VocabularyVersion)
        .filter(VocabularyVersion.field == field.name)
        .order_by(VocabularyVersion.version)
        .all()
    )
    return [
        {
            "version": r.version,
            "operation": r.operation,
            "detail": r.detail,
            "actor_id": r.actor_id,
            "rewritten": r.rewritten,
            "created_at": iso_or_none(r.created_at),
        }
        for r in rows
    ]


# ----------------------------------------------------------------------------
# Write side helpers (caller owns the transaction)
# ----------------------------------------------------------------------------


def _require_admin(principal: Principal, operation: str, field: TaxonomyField) -> None:
    if principal.role != ROLE_ADMIN:
        logger.warning(
            "Vocabulary %s denied field=%s role=%s", operation, field.name, principal.role
        )
        raise AccessDenied()


def _canonical_or_raise(raw: object, *, param: str = "value") -> str:
    key = normalize(None if raw is None else str(raw))
    if not is_canonical_key(key):
        raise ValidationError(param, f"{raw!r} does not normalize to a valid key")
    return key


def _bump_version(
    session: Session,
    field: TaxonomyField,
    operation: str,
    *,
    detail: Optional[str] = None,
    actor_id: Optional[int] = None,
    rewritten: int = 0,
) -> int:
    version = current_version(session, field) + 1
    session.info[_PENDING_VERSION_KEY] = True
    session.add(
        VocabularyVersion(
            field=field.name,
            version=version,
            operation=operation,
            detail=detail,
            actor_id=actor_id,
            rewritten=rewritten,
        )
    )
    session.flush()
    return version


def _get_term(session: Session, field: TaxonomyField, value: str) -> Optional[VocabularyTerm]:
    return (
        session.query(VocabularyTerm)
        .filter(VocabularyTerm.field == field.name)
        .filter(VocabularyTerm.value == value)
        .one_or_none()
    )


def _activate(
    session: Session, field: TaxonomyField, value: str, version: int
) -> VocabularyTerm:
    term = _get_term(session, field, value)
    if term is None:
        term = VocabularyTerm(
            field=field.name, value=value, status=TERM_ACTIVE, added_version=version
        )
        session.add(term)
    elif term.status != TERM_ACTIVE:
        term.status = TERM_ACTIVE
        term.added_version = version
        term.retired_version = None
        term.renamed_to = None
    return term


def count_attachments(session: Session, field: TaxonomyField, value: str) -> int:
    column = getattr(Company, field.attribute)
    return sum(
        1 for (tags,) in session.query(column).filter(column.isnot(None)) if value in (tags or ())
    )


def _rewrite_attachments(
    session: Session, field: TaxonomyField, mapping: Dict[str, Optional[str]]
) -> int:
    """Apply old->new (or old->None to drop) to every company; return rows changed."""

    changed = 0
    column = getattr(Company, field.attribute)
    for company in session.query(Company).filter(column.isnot(None)).order_by(Company.id):
        tags = list(getattr(company, field.attribute) or ())
        if not any(t in mapping for t in tags):
            continue
        out: List[str] = []
        for t in tags:
            target = mapping.get(t, t) if t in mapping else t
            if target is not None and target not in out:
                out.append(target)
        # Assign a new list so the JSON column is marked dirty.
        setattr(company, field.attribute, out or None)
        company.row_version = (company.row_version or 0) + 1
        changed += 1
    session.flush()
    return changed


def record_open_values(
    session: Session,
    field: TaxonomyField,
    values: Iterable[str],
    *,
    actor_id: Optional[int] = None,
) -> List[str]:
    """Grow an open vocabulary with newly written values (no commit).

    Returns the values that were added.
    """

    if not field.is_open:
        return []
    existing = _active_values(session, field)
    new_values = [v for v in dict.fromkeys(values) if v not in existing]
    if not new_values:
        return []
    version = _bump_version(
        session, field, "grow", detail=",".join(new_values), actor_id=actor_id
    )
    for v in new_values:
        _activate(session, field, v, version)
    session.flush()
    logger.info("Vocabulary %s grew by %d value(s) to v%d", field.name, len(new_values), version)
    return new_values


def resolve_renamed(
    session: Session, field: TaxonomyField, values: Sequence[str]
) -> List[str]:
    """Map values a rename or merge retired onto their surviving term.

    `renamed_to` is followed through chains (a->b, then b->c). A value that
    was retired outright is rejected; only an admin migration can bring it
    back. Order is kept and repeats collapse.

    Raises:
        ValidationError: naming the entity attribute of the field.
    """

    out: List[str] = []
    for value in values:
        current = value
        seen = set()
        term = _get_term(session, field, current)
        while term is not None and term.status == TERM_RETIRED:
            if term.renamed_to is None or current in seen:
                raise ValidationError(
                    field.attribute,
                    f"{value!r} was retired from the {field.name} vocabulary",
                    value=value,
                )
            seen.add(current)
            current = term.renamed_to
            term = _get_term(session, field, current)
        if current not in out:
            out.append(current)
    return out


@contextmanager
def _migration(session: Session) -> Iterator[None]:
    """One atomic transaction under the exclusive write lock."""

    with exclusive_write(session):
        try:
            yield
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            end_vocabulary_write(session)


# ----------------------------------------------------------------------------
# Migrations (admin only; each commits or rolls back as a unit)
# ----------------------------------------------------------------------------


def propose_term(
    session: Session, principal: Principal, field_name: str, value: object
) -> Dict[str, object]:
    field = get_field(field_name)
    _require_admin(principal, "propose", field)
    key = _canonical_or_raise(value)
    with _migration(session):
        term = _get_term(session, field, key)
        if term is not None and term.status == TERM_ACTIVE:
            return _term_dict(term)
        version = _bump_version(session, field, "propose", detail=key, actor_id=principal.profile_id)
        if term is None:
            term = VocabularyTerm(
                field=field.name, value=key, status=TERM_PROPOSED, added_version=version
            )
            session.add(term)
        else:
            term.status = TERM_PROPOSED
            term.retired_version = None
            term.renamed_to = None
        session.flush()
        result = _term_dict(term)
    logger.info("Vocabulary %s: proposed %s (v%d)", field.name, key, version)
    return result


def add_term(
    session: Session, principal: Principal, field_name: str, value: object
) -> Dict[str, object]:
    """Add (or reactivate) a value as an active member of the vocabulary."""

    field = get_field(field_name)
    _require_admin(principal, "add", field)
    key = _canonical_or_raise(value)
    with _migration(session):
        term = _get_term(session, field, key)
        if term is not None and term.status == TERM_ACTIVE:
            return _term_dict(term)
        version = _bump_version(session, field, "add", detail=key, actor_id=principal.profile_id)
        term = _activate(session, field, key, version)
        session.flush()
        result = _term_dict(term)
    logger.info("Vocabulary %s: added %s (v%d)", field.name, key, version)
    return result


def activate_term(
    session: Session, principal: Principal, field_name: str, value: object
) -> Dict[str, object]:
    """Promote a proposed value to active."""

    field = get_field(field_name)
    _require_admin(principal, "activate", field)
    key = _canonical_or_raise(value)
    with _migration(session):
        term = _get_term(session, field, key)
        if term is None or term.status != TERM_PROPOSED:
            raise ValidationError("value", f"{key!r} is not a proposed {field.name} value")
        version = _bump_version(session, field, "activate", detail=key, actor_id=principal.profile_id)
        term = _activate(session, field, key, version)
        session.flush()
        result = _term_dict(term)
    logger.info("Vocabulary %s: activated %s (v%d)", field.name, key, version)
    return result


def merge_terms(
    session: Session,
    principal: Principal,
    field_name: str,
    sources: Sequence[object],
    target: object,
) -> Dict[str, object]:
    """Fold one or more active values into `target` and retire them.

    The target is created (or reactivated) if needed. All attachments are
    rewritten in the same transaction that retires the sources.
    """

    field = get_field(field_name)
    _require_admin(principal, "merge", field)
    target_key = _canonical_or_raise(target, param="target")
    source_keys = []
    for s in sources:
        key = normalize(None if s is None else str(s))
        if key and key != target_key and key not in source_keys:
            source_keys.append(key)
    if not source_keys:
        raise ValidationError("sources", "nothing to merge into the target")

    with _migration(session):
        for key in source_keys:
            term = _get_term(session, field, key)
            if term is None or term.status != TERM_ACTIVE:
                raise ValidationError("sources", f"{key!r} is not an active {field.name} value")

        target_existed = _get_term(session, field, target_key)
        operation = (
            "merge"
            if len(source_keys) > 1
            or (target_existed is not None and target_existed.status == TERM_ACTIVE)
            else "rename"
        )
        version = _bump_version(
            session,
            field,
            operation,
            detail=f"{','.join(source_keys)}->{target_key}",
            actor_id=principal.profile_id,
        )

        # 1. target becomes a member
        _activate(session, field, target_key, version)
        # 2. rewrite attachments
        rewritten = _rewrite_attachments(session, field, {k: target_key for k in source_keys})
        # 3. retire sources only once nothing references them
        for key in source_keys:
            if count_attachments(session, field, key):
                raise VocabularyInUse("value", f"{key!r} still has attachments")
            term = _get_term(session, field, key)
            term.status = TERM_RETIRED
            term.retired_version = version
            term.renamed_to = target_key

        session.query(VocabularyVersion).filter(
            VocabularyVersion.field == field.name, VocabularyVersion.version == version
        ).update({"rewritten": rewritten})
        session.flush()

    logger.info(
        "Vocabulary %s: %s %s -> %s (v%d, %d companies rewritten)",
        field.name,
        operation,
        ",".join(source_keys),
        target_key,
        version,
        rewritten,
    )
    return {
        "field": field.name,
        "operation": operation,
        "sources": source_keys,
        "target": target_key,
        "version": version,
        "rewritten": rewritten,
    }


def rename_term(
    session: Session, principal: Principal, field_name: str, old: object, new: object
) -> Dict[str, object]:
    """Rename `old` to `new`; becomes a merge when `new` already exists."""

    _require_admin(principal, "rename", get_field(field_name))
    old_key = normalize(None if old is None else str(old))
    new_key = normalize(None if new is None else str(new))
    if old_key and old_key == new_key:
        raise ValidationError("target", "new value equals the old value")
    return merge_terms(session, principal, field_name, [old_key], new)


def retire_term(
    session: Session,
    principal: Principal,
    field_name: str,
    value: object,
    *,
    remap_to: Optional[object] = None,
    null_out: bool = False,
) -> Dict[str, object]:
    """Retire a value.

    With attachments present the caller must choose: `remap_to` (merge into
    another value) or `null_out=True` (drop the value from every array).
    Otherwise `VocabularyInUse` is raised and nothing changes.
    """

    if remap_to is not None:
        return merge_terms(session, principal, field_name, [value], remap_to)

    field = get_field(field_name)
    _require_admin(principal, "retire", field)
    key = normalize(None if value is None else str(value))

    with _migration(session):
        term = _get_term(session, field, key)
        if term is None or term.status == TERM_RETIRED:
            raise ValidationError("value", f"{key!r} is not a current {field.name} value")

        in_use = count_attachments(session, field, key)
        if in_use and not null_out:
            raise VocabularyInUse(
                "value", f"{key!r} is attached to {in_use} compan{'y' if in_use == 1 else 'ies'}"
            )

        version = _bump_version(session, field, "retire", detail=key, actor_id=principal.profile_id)
        rewritten = _rewrite_attachments(session, field, {key: None}) if in_use else 0
        term.status = TERM_RETIRED
        term.retired_version = version
        term.renamed_to = None
        session.query(VocabularyVersion).filter(
            VocabularyVersion.field == field.name, VocabularyVersion.version == version
        ).update({"rewritten": rewritten})
        session.flush()

    logger.info(
        "Vocabulary %s: retired %s (v%d, %d companies nulled)", field.name, key, version, rewritten
    )
    return {
        "field": field.name,
        "operation": "retire",
        "value": key,
        "version": version,
        "rewritten": rewritten,
    }


def seed_default_vocabularies(session: Session) -> Dict[str, int]:
    """Load the default vocabularies as version 1 of each empty field (idempotent).

    Runs at provisioning time (no principal); commits.
    """

    seeded: Dict[str, int] = {}
    with _migration(session):
        for field in TAXONOMY_FIELDS:
            if current_version(session, field) > 0:
                continue
            values = [v for v in dict.fromkeys(DEFAULT_VOCABULARIES.get(field.name, ())) if is_canonical_key(v)]
            version = _bump_version(
                session, field, "seed", detail=f"{len(values)} values"
            )
            for v in values:
                session.add(
                    VocabularyTerm(
                        field=field.name, value=v, status=TERM_ACTIVE, added_version=version
                    )
                )
            seeded[field.name] = len(values)
        session.flush()
    if seeded:
        logger.info("Seeded default vocabularies: %s", seeded)
    return seeded


def _term_dict(term: VocabularyTerm) -> Dict[str, object]:
    return {
        "field": term.field,
        "value": term.value,
        "label": label_for(term.value),
        "status": term.status,
        "added_version": term.added_version,
        "retired_version": term.retired_version,
        "renamed_to": term.renamed_to,
    }
