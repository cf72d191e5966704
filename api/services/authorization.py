"""Row authorization: who may read which field group, and who may write.

The policy is a fixed table keyed by (entity type, field group) giving the
minimum role that may read the group. Writes are admin-only for every entity
type. The one exception is the caller's own profile, which the caller may
always read and (partially) edit.

Relationship types (company_founder, company_vc) never declare a visibility
looser than either side they connect: their effective minimum role is the
stricter of their own declaration and each side's base visibility. Owned
records (founder updates, KPIs) are capped by their company the same way.

Founder records are admin-read. LPs see founder data only through the secure
aggregations in `api.services.aggregation_service`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models.profiles import ROLE_ADMIN, ROLE_LP, ROLE_PUBLIC
from utils.identity import ROLE_RANK, Principal, role_at_least, stricter_role

GROUP_PUBLIC = "public"
GROUP_RESTRICTED = "restricted"
FIELD_GROUPS = (GROUP_PUBLIC, GROUP_RESTRICTED)


@dataclass(frozen=True)
class FieldGroup:
    min_role: str
    fields: Tuple[str, ...]


@dataclass(frozen=True)
class EntityPolicy:
    groups: Dict[str, FieldGroup]
    # Entity types this one connects; their base visibility caps ours.
    sides: Tuple[str, ...] = ()
    write_role: str = ROLE_ADMIN
    # Fields a principal may change on its own record (profile only).
    self_writable: Tuple[str, ...] = field(default_factory=tuple)


POLICIES: Dict[str, EntityPolicy] = {
    "company": EntityPolicy(
        groups={
            GROUP_PUBLIC: FieldGroup(
                ROLE_PUBLIC,
                (
                    "slug",
                    "name",
                    "tagline",
                    "logo_url",
                    "website_url",
                    "status",
                    "founded_year",
                    "fund",
                    "stage_at_investment",
                    "pitch_season",
                    "country",
                    "pitch_episode_url",
                    "episode_publish_date",
                    "industry_tags",
                    "business_model_tags",
                    "keywords",
                    "co_investors",
                ),
            ),
            GROUP_RESTRICTED: FieldGroup(
                ROLE_LP,
                (
                    "investment_amount",
                    "post_money_valuation",
                    "instrument",
                    "conversion_cap_usd",
                    "discount_percent",
                    "round_size_usd",
                    "has_pro_rata_rights",
                    "reason_for_investing",
                    "notes",
                    "description_raw",
                ),
            ),
        }
    ),
    "founder": EntityPolicy(
        groups={
            GROUP_PUBLIC: FieldGroup(
                ROLE_ADMIN,
                ("name", "first_name", "last_name", "title", "linkedin_url", "role"),
            ),
            GROUP_RESTRICTED: FieldGroup(ROLE_ADMIN, ("email", "bio", "sex")),
        }
    ),
    "vc": EntityPolicy(
        groups={
            GROUP_PUBLIC: FieldGroup(
                ROLE_PUBLIC,
                (
                    "name",
                    "firm_name",
                    "role_title",
                    "bio",
                    "profile_image_url",
                    "linkedin_url",
                    "website_url",
                ),
            ),
        }
    ),
    "company_founder": EntityPolicy(
        groups={
            GROUP_PUBLIC: FieldGroup(
                ROLE_PUBLIC,
                ("company_id", "founder_id", "role", "is_active", "joined_date", "left_date"),
            ),
        },
        sides=("company", "founder"),
    ),
    "company_vc": EntityPolicy(
        groups={
            GROUP_PUBLIC: FieldGroup(
                ROLE_PUBLIC,
                ("company_id", "vc_id", "episode_season", "episode_number", "episode_url"),
            ),
            GROUP_RESTRICTED: FieldGroup(
                ROLE_LP, ("is_invested", "investment_amount", "investment_date")
            ),
        },
        sides=("company", "vc"),
    ),
    "founder_update": EntityPolicy(
        groups={
            GROUP_PUBLIC: FieldGroup(
                ROLE_LP,
                ("company_id", "founder_id", "period_start", "period_end", "update_type"),
            ),
            GROUP_RESTRICTED: FieldGroup(
                ROLE_LP,
                (
                    "update_text",
                    "ai_summary",
                    "sentiment_score",
                    "topics_extracted",
                    "key_metrics_mentioned",
                    "action_items",
                ),
            ),
        },
        sides=("company",),
    ),
    "kpi": EntityPolicy(
        groups={GROUP_PUBLIC: FieldGroup(ROLE_LP, ("company_id", "label", "unit"))},
        sides=("company",),
    ),
    "kpi_value": EntityPolicy(
        groups={
            GROUP_PUBLIC: FieldGroup(ROLE_LP, ("kpi_id", "period_date")),
            GROUP_RESTRICTED: FieldGroup(ROLE_LP, ("value",)),
        },
        sides=("kpi",),
    ),
    "profile": EntityPolicy(
        groups={
            GROUP_PUBLIC: FieldGroup(ROLE_ADMIN, ("display_name",)),
            GROUP_RESTRICTED: FieldGroup(ROLE_ADMIN, ("email", "role", "is_active")),
        },
        self_writable=("display_name",),
    ),
}

ENTITY_TYPES = tuple(POLICIES)


def _base_visibility(entity_type: str) -> str:
    """Least role that can see anything of this type (its loosest group, capped by sides)."""

    policy = POLICIES[entity_type]
    loosest = min((g.min_role for g in policy.groups.values()), key=ROLE_RANK.__getitem__)
    for side in policy.sides:
        loosest = stricter_role(loosest, _base_visibility(side))
    return loosest


def min_read_role(entity_type: str, field_group: str) -> Optional[str]:
    """Effective minimum role for a group, or None if the type/group does not exist."""

    policy = POLICIES.get(entity_type)
    if policy is None or field_group not in policy.groups:
        return None
    role = policy.groups[field_group].min_role
    for side in policy.sides:
        role = stricter_role(role, _base_visibility(side))
    return role


def can_read(role: str, entity_type: str, field_group: str) -> bool:
    minimum = min_read_role(entity_type, field_group)
    return minimum is not None and role_at_least(role, minimum)


def can_write(role: str, entity_type: str) -> bool:
    policy = POLICIES.get(entity_type)
    return policy is not None and role_at_least(role, policy.write_role)


def is_self(principal: Principal, entity_type: str, record_id: Optional[int]) -> bool:
    return (
        entity_type == "profile"
        and principal.profile_id is not None
        and record_id is not None
        and principal.profile_id == record_id
    )


def readable_groups(
    principal: Principal,
    entity_type: str,
    requested: Iterable[str],
    *,
    record_id: Optional[int] = None,
) -> List[str]:
    """Requested groups the principal may read, in canonical order."""

    policy = POLICIES.get(entity_type)
    if policy is None:
        return []
    wanted = set(requested)
    out = []
    for group in FIELD_GROUPS:
        if group not in wanted or group not in policy.groups:
            continue
        if is_self(principal, entity_type, record_id) or can_read(
            principal.role, entity_type, group
        ):
            out.append(group)
    return out


def can_see_record(
    principal: Principal, entity_type: str, *, record_id: Optional[int] = None
) -> bool:
    """True if the principal may read at least one group of this record."""

    return bool(readable_groups(principal, entity_type, FIELD_GROUPS, record_id=record_id))


def writable_fields(
    principal: Principal, entity_type: str, *, record_id: Optional[int] = None
) -> Optional[Tuple[str, ...]]:
    """Fields the principal may write on a record.

    Returns None for "all fields", () for nothing.
    """

    policy = POLICIES.get(entity_type)
    if policy is None:
        return ()
    if can_write(principal.role, entity_type):
        return None
    if is_self(principal, entity_type, record_id):
        return policy.self_writable
    return ()


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


def project(record: Any, entity_type: str, groups: Iterable[str]) -> Dict[str, Any]:
    """Copy only the fields of the given groups (plus `id`) into a dict."""

    policy = POLICIES[entity_type]
    out: Dict[str, Any] = {"id": record.id}
    for group in groups:
        for name in policy.groups[group].fields:
            out[name] = _jsonable(getattr(record, name))
    return out


def restricted_fields(entity_type: str) -> Tuple[str, ...]:
    policy = POLICIES[entity_type]
    group = policy.groups.get(GROUP_RESTRICTED)
    return group.fields if group else ()
