"""Authorized reads and writes of portfolio records.

Every read or write of an entity goes through here; routes never query the
models directly. Reads project the record down to the field groups the caller
may see. A record the caller cannot see at all is reported as not found, so
its existence is not disclosed. Writes are checked before anything else is
looked up.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.schemas.entity_patches import REQUIRED_ON_CREATE, parse_patch
from api.services import authorization as authz
from api.services.vocabulary_service import (
    end_vocabulary_write,
    exclusive_write,
    get_vocabulary,
    record_open_values,
    resolve_renamed,
)
from logging_utils import get_logger
from models.companies import Company
from models.company_founders import CompanyFounder
from models.company_vcs import CompanyVc
from models.founder_updates import FounderUpdate
from models.founders import Founder
from models.kpis import Kpi, KpiValue
from models.profiles import ROLE_ADMIN, Profile
from models.vcs import Vc
from utils.errors import AccessDenied, ConflictError, NotFound, ValidationError
from utils.identity import Principal
from utils.taxonomy import TAXONOMY_FIELDS, normalize_tags, require_valid_tags

logger = get_logger(__name__)

ENTITY_MODELS = {
    "company": Company,
    "founder": Founder,
    "vc": Vc,
    "company_founder": CompanyFounder,
    "company_vc": CompanyVc,
    "founder_update": FounderUpdate,
    "kpi": Kpi,
    "kpi_value": KpiValue,
    "profile": Profile,
}

# Foreign keys checked up front so the error names the offending field.
REFERENCES = {
    "company_founder": {"company_id": Company, "founder_id": Founder},
    "company_vc": {"company_id": Company, "vc_id": Vc},
    "founder_update": {"company_id": Company, "founder_id": Founder},
    "kpi": {"company_id": Company},
    "kpi_value": {"kpi_id": Kpi},
}

_TAG_FIELDS = {f.attribute: f for f in TAXONOMY_FIELDS}


def _model_for(entity_type: str):
    model = ENTITY_MODELS.get(entity_type)
    if model is None:
        raise NotFound()
    return model


def _groups(field_groups: Optional[Iterable[str]]) -> Sequence[str]:
    if field_groups is None:
        return authz.FIELD_GROUPS
    return [g for g in field_groups if g in authz.FIELD_GROUPS]


def read_entity(
    session: Session,
    principal: Principal,
    entity_type: str,
    entity_id: int,
    field_groups: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Return the record projected to the requested groups the caller may read.

    Groups the caller may not read are omitted, not errors. Raises NotFound
    when the record does not exist or the caller may read none of its groups.
    """

    model = _model_for(entity_type)
    if not authz.can_see_record(principal, entity_type, record_id=entity_id):
        raise NotFound()

    record = session.get(model, entity_id)
    if record is None:
        raise NotFound()

    groups = authz.readable_groups(
        principal, entity_type, _groups(field_groups), record_id=entity_id
    )
    return authz.project(record, entity_type, groups)


def list_entities(
    session: Session,
    principal: Principal,
    entity_type: str,
    field_groups: Optional[Iterable[str]] = None,
    *,
    offset: int = 0,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    """One page of records of a type, each projected like `read_entity`.

    A caller who cannot see the type at all gets an empty list.
    """

    model = _model_for(entity_type)
    offset = max(0, int(offset))
    limit = min(max(1, int(limit)), 500)

    query = session.query(model)
    if entity_type == "profile" and principal.role != ROLE_ADMIN:
        if principal.profile_id is None:
            return []
        query = query.filter(Profile.id == principal.profile_id)
    elif not authz.can_see_record(principal, entity_type):
        return []

    requested = _groups(field_groups)
    out = []
    for record in query.order_by(model.id).offset(offset).limit(limit):
        groups = authz.readable_groups(principal, entity_type, requested, record_id=record.id)
        out.append(authz.project(record, entity_type, groups))
    return out


def _check_references(session: Session, entity_type: str, data: Dict[str, Any]) -> None:
    for column, target in REFERENCES.get(entity_type, {}).items():
        value = data.get(column)
        if value is not None and session.get(target, value) is None:
            raise ValidationError(column, f"no such record: {value}")


def _prepare_tags(session: Session, data: Dict[str, Any]) -> Dict[str, List[str]]:
    """Normalize and validate tag arrays in place; return open values to record.

    Values a rename or merge retired are written as their surviving term.
    """

    grown: Dict[str, List[str]] = {}
    for attribute, field in _TAG_FIELDS.items():
        if attribute not in data:
            continue
        tags = resolve_renamed(session, field, normalize_tags(data[attribute]))
        require_valid_tags(field, tags, get_vocabulary(session, field.name).values)
        data[attribute] = tags or None
        if field.is_open and tags:
            grown[field.name] = tags
    return grown


def _grow_open_vocabularies(
    session: Session, grown: Dict[str, List[str]], principal: Principal
) -> None:
    for field in TAXONOMY_FIELDS:
        if field.name in grown:
            record_open_values(session, field, grown[field.name], actor_id=principal.profile_id)


def _deny_write(principal: Principal, entity_type: str, entity_id: Optional[int]) -> None:
    logger.warning(
        "Write denied entity=%s id=%s role=%s profile=%s",
        entity_type,
        entity_id,
        principal.role,
        principal.profile_id,
    )
    raise AccessDenied()


def write_entity(
    session: Session,
    principal: Principal,
    entity_type: str,
    entity_id: int,
    patch: Dict[str, Any],
    expected_version: Optional[int] = None,
) -> Dict[str, Any]:
    """Apply a partial update and return the record as the caller may see it.

    Only the fields named in `patch` are written. When `expected_version` is
    given the update applies only if the stored `row_version` still matches;
    otherwise the last writer wins field by field.

    Raises:
        AccessDenied: the caller may not write this record (checked first).
        ValidationError: the patch is malformed or a tag array is invalid.
        NotFound: the record does not exist.
        ConflictError: `expected_version` no longer matches.
    """

    model = _model_for(entity_type)
    allowed = authz.writable_fields(principal, entity_type, record_id=entity_id)
    if allowed == ():
        _deny_write(principal, entity_type, entity_id)

    data = parse_patch(entity_type, patch)
    if allowed is not None:
        extra = sorted(set(data) - set(allowed))
        if extra:
            _deny_write(principal, entity_type, entity_id)
    if not data:
        raise ValidationError("patch", "no fields to update")

    with exclusive_write(session):
        try:
            record = session.get(model, entity_id)
            if record is None:
                raise NotFound()
            _check_references(session, entity_type, data)
            grown = _prepare_tags(session, data)

            current = record.row_version or 1
            if expected_version is not None and int(expected_version) != current:
                raise ConflictError(
                    f"{entity_type} {entity_id} is at version {current}, not {expected_version}"
                )

            values = {getattr(model, k): v for k, v in data.items()}
            values[model.row_version] = current + 1
            updated = (
                session.query(model)
                .filter(model.id == entity_id, model.row_version == current)
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                raise ConflictError(f"{entity_type} {entity_id} changed during the update")

            _grow_open_vocabularies(session, grown, principal)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError(f"{entity_type} {entity_id} conflicts with an existing record") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            end_vocabulary_write(session)

    session.expire_all()
    record = session.get(model, entity_id)
    logger.info(
        "Updated %s %s fields=%s by profile=%s",
        entity_type,
        entity_id,
        ",".join(sorted(data)),
        principal.profile_id,
    )
    groups = authz.readable_groups(principal, entity_type, authz.FIELD_GROUPS, record_id=entity_id)
    return authz.project(record, entity_type, groups)


def create_entity(
    session: Session,
    principal: Principal,
    entity_type: str,
    payload: Dict[str, Any],
) -> Dict[str, Any]:
    """Insert a new record (admin only) and return its projection."""

    model = _model_for(entity_type)
    if not authz.can_write(principal.role, entity_type):
        _deny_write(principal, entity_type, None)

    data = parse_patch(entity_type, payload)
    for name in REQUIRED_ON_CREATE.get(entity_type, ()):
        if data.get(name) in (None, ""):
            raise ValidationError(name, "is required")

    with exclusive_write(session):
        try:
            _check_references(session, entity_type, data)
            grown = _prepare_tags(session, data)
            record = model(**data)
            session.add(record)
            session.flush()
            _grow_open_vocabularies(session, grown, principal)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError(f"{entity_type} conflicts with an existing record") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            end_vocabulary_write(session)

    logger.info("Created %s %s by profile=%s", entity_type, record.id, principal.profile_id)
    groups = authz.readable_groups(principal, entity_type, authz.FIELD_GROUPS, record_id=record.id)
    return authz.project(record, entity_type, groups)
