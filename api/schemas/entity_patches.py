"""Write payload schemas, one per entity type.

All fields are optional so the same model serves partial updates; required
fields on create are listed in `REQUIRED_ON_CREATE`. Unknown fields are
rejected rather than silently dropped. Tag arrays are only checked for shape
here; vocabulary rules are applied by the taxonomy engine.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from utils.errors import ValidationError

CompanyStatus = Literal["active", "acquihired", "exited", "dead"]
CompanyStage = Literal["pre_seed", "seed"]
FundNumber = Literal["fund_i", "fund_ii", "fund_iii"]
Instrument = Literal["safe_post", "safe_pre", "convertible_note", "equity"]
FounderRole = Literal["founder", "cofounder"]
FounderSex = Literal["male", "female"]
UpdateType = Literal["monthly", "quarterly", "milestone", "annual", "ad_hoc", "other"]
KpiUnit = Literal["usd", "users", "percent", "count", "months", "days", "score", "ratio", "other"]
Role = Literal["public", "lp", "admin"]


class _Patch(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class CompanyPatch(_Patch):
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    tagline: Optional[str] = Field(default=None, max_length=500)
    logo_url: Optional[str] = None
    website_url: Optional[str] = None
    status: Optional[CompanyStatus] = None
    founded_year: Optional[int] = Field(default=None, ge=1800, le=2100)
    fund: Optional[FundNumber] = None
    stage_at_investment: Optional[CompanyStage] = None
    pitch_season: Optional[int] = Field(default=None, ge=1)
    country: Optional[str] = Field(default=None, pattern=r"^[A-Z]{2}$")
    pitch_episode_url: Optional[str] = None
    episode_publish_date: Optional[date] = None

    industry_tags: Optional[List[str]] = None
    business_model_tags: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    co_investors: Optional[List[str]] = None

    investment_amount: Optional[float] = Field(default=None, ge=0)
    post_money_valuation: Optional[float] = Field(default=None, ge=0)
    instrument: Optional[Instrument] = None
    conversion_cap_usd: Optional[float] = Field(default=None, ge=0)
    discount_percent: Optional[float] = Field(default=None, ge=0, le=100)
    round_size_usd: Optional[float] = Field(default=None, ge=0)
    has_pro_rata_rights: Optional[bool] = None
    reason_for_investing: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    description_raw: Optional[str] = Field(default=None, max_length=5000)


class FounderPatch(_Patch):
    name: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    title: Optional[str] = None
    linkedin_url: Optional[str] = None
    role: Optional[FounderRole] = None
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    bio: Optional[str] = Field(default=None, max_length=1000)
    sex: Optional[FounderSex] = None


class VcPatch(_Patch):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    firm_name: Optional[str] = None
    role_title: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    website_url: Optional[str] = None


class CompanyFounderPatch(_Patch):
    company_id: Optional[int] = None
    founder_id: Optional[int] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
    joined_date: Optional[date] = None
    left_date: Optional[date] = None


class CompanyVcPatch(_Patch):
    company_id: Optional[int] = None
    vc_id: Optional[int] = None
    episode_season: Optional[str] = None
    episode_number: Optional[str] = None
    episode_url: Optional[str] = None
    is_invested: Optional[bool] = None
    investment_amount: Optional[float] = Field(default=None, ge=0)
    investment_date: Optional[date] = None


class FounderUpdatePatch(_Patch):
    company_id: Optional[int] = None
    founder_id: Optional[int] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    update_type: Optional[UpdateType] = None
    update_text: Optional[str] = None
    ai_summary: Optional[str] = None
    sentiment_score: Optional[float] = Field(default=None, ge=-1, le=1)
    topics_extracted: Optional[List[str]] = None
    key_metrics_mentioned: Optional[Dict[str, Any]] = None
    action_items: Optional[List[str]] = None


class KpiPatch(_Patch):
    company_id: Optional[int] = None
    label: Optional[str] = Field(default=None, min_length=1)
    unit: Optional[KpiUnit] = None


class KpiValuePatch(_Patch):
    kpi_id: Optional[int] = None
    period_date: Optional[date] = None
    value: Optional[float] = None


class ProfilePatch(_Patch):
    display_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None


PATCH_MODELS: Dict[str, Type[_Patch]] = {
    "company": CompanyPatch,
    "founder": FounderPatch,
    "vc": VcPatch,
    "company_founder": CompanyFounderPatch,
    "company_vc": CompanyVcPatch,
    "founder_update": FounderUpdatePatch,
    "kpi": KpiPatch,
    "kpi_value": KpiValuePatch,
    "profile": ProfilePatch,
}

REQUIRED_ON_CREATE: Dict[str, tuple] = {
    "company": ("slug", "name"),
    "founder": (),
    "vc": ("name",),
    "company_founder": ("company_id", "founder_id"),
    "company_vc": ("company_id", "vc_id"),
    "founder_update": ("company_id",),
    "kpi": ("company_id", "label"),
    "kpi_value": ("kpi_id", "period_date"),
    "profile": (),
}


def parse_patch(entity_type: str, payload: Any) -> Dict[str, Any]:
    """Validate a payload and return only the fields the caller actually sent.

    Raises:
        ValidationError: naming the first offending field.
    """

    if not isinstance(payload, dict):
        raise ValidationError("patch", "must be an object")
    model = PATCH_MODELS[entity_type]
    try:
        parsed = model.model_validate(payload)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = first.get("loc") or ("patch",)
        raise ValidationError(str(loc[0]), first.get("msg", "invalid value")) from exc
    return parsed.model_dump(exclude_unset=True)
