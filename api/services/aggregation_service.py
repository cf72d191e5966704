"""Cross-entity analytics that join public and restricted data.

These are deliberately plain functions rather than database views: each one
resolves the caller from the raw token itself, refuses anyone below `lp`
before any join runs, and only then composes its query. Nothing here is
persisted.

Every query is capped at `AGGREGATION_MAX_ROWS` input rows.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from api.services.authorization import can_read
from config import Config
from logging_utils import get_logger
from models.companies import Company
from models.company_founders import CompanyFounder
from models.company_vcs import CompanyVc
from models.founder_updates import FounderUpdate
from models.founders import Founder
from models.profiles import ROLE_LP
from models.vcs import Vc
from utils.errors import AccessDenied
from utils.identity import Principal, resolve_principal, role_at_least
from utils.taxonomy import TAXONOMY_FIELDS, label_for
from utils.time_utils import iso_or_none, quarter_of

logger = get_logger(__name__)

TOP_TOPICS = 5
SUCCESS_STATUSES = ("exited", "acquihired")


def _max_rows() -> int:
    if has_app_context():
        return int(current_app.config.get("AGGREGATION_MAX_ROWS") or Config.AGGREGATION_MAX_ROWS)
    return int(Config.AGGREGATION_MAX_ROWS)


def _require_lp(session: Session, principal_token: Optional[str], name: str) -> Principal:
    principal = resolve_principal(session, principal_token)
    if not role_at_least(principal.role, ROLE_LP):
        logger.warning("Aggregation %s denied role=%s", name, principal.role)
        raise AccessDenied()
    return principal


def _avg(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _percent(part: int, whole: int) -> Optional[float]:
    if not whole:
        return None
    return round(part * 100.0 / whole, 2)


def founder_timeline(session: Session, principal_token: Optional[str]) -> List[Dict[str, Any]]:
    """One row per founder update with the previous sentiment of the same pair.

    Rows are ordered by company name, founder, then period. `previous_sentiment`
    is None for a pair's first period; `sentiment_trend` is the difference when
    both readings exist.
    """

    principal = _require_lp(session, principal_token, "founder_timeline")
    with_contact = can_read(principal.role, "founder", "restricted")

    previous = (
        func.lag(FounderUpdate.sentiment_score)
        .over(
            partition_by=(Company.id, Founder.id),
            order_by=(FounderUpdate.period_start, FounderUpdate.id),
        )
        .label("previous_sentiment")
    )
    rows = (
        session.query(
            Company.name.label("company_name"),
            Company.slug.label("company_slug"),
            Founder.name.label("founder_name"),
            Founder.email.label("founder_email"),
            CompanyFounder.role.label("founder_role_at_company"),
            FounderUpdate.period_start,
            FounderUpdate.period_end,
            FounderUpdate.update_type,
            FounderUpdate.sentiment_score,
            FounderUpdate.key_metrics_mentioned,
            FounderUpdate.topics_extracted,
            FounderUpdate.ai_summary,
            FounderUpdate.created_at,
            previous,
        )
        .select_from(FounderUpdate)
        .join(Company, FounderUpdate.company_id == Company.id)
        .outerjoin(Founder, FounderUpdate.founder_id == Founder.id)
        .outerjoin(
            CompanyFounder,
            and_(
                CompanyFounder.company_id == Company.id,
                CompanyFounder.founder_id == Founder.id,
                CompanyFounder.is_active.is_(True),
            ),
        )
        .filter(FounderUpdate.period_start.isnot(None))
        .order_by(Company.name, Founder.email, Founder.name, FounderUpdate.period_start, FounderUpdate.id)
        .limit(_max_rows())
        .all()
    )

    out = []
    for r in rows:
        trend = None
        if r.sentiment_score is not None and r.previous_sentiment is not None:
            trend = round(r.sentiment_score - r.previous_sentiment, 4)
        item = {
            "company_name": r.company_name,
            "company_slug": r.company_slug,
            "founder_name": r.founder_name,
            "founder_role_at_company": r.founder_role_at_company,
            "period_start": iso_or_none(r.period_start),
            "period_end": iso_or_none(r.period_end),
            "update_type": r.update_type,
            "sentiment_score": r.sentiment_score,
            "previous_sentiment": r.previous_sentiment,
            "sentiment_trend": trend,
            "key_metrics_mentioned": r.key_metrics_mentioned,
            "topics_extracted": list(r.topics_extracted or []),
            "ai_summary": r.ai_summary,
            "created_at": iso_or_none(r.created_at),
            "update_year": r.period_start.year,
            "update_quarter": quarter_of(r.period_start),
        }
        if with_contact:
            item["founder_email"] = r.founder_email
        out.append(item)
    return out


def company_progress(session: Session, principal_token: Optional[str]) -> List[Dict[str, Any]]:
    """Per-company rollup of founder updates, ordered by company name."""

    _require_lp(session, principal_token, "company_progress")
    limit = _max_rows()

    companies = session.query(Company).order_by(Company.name, Company.id).limit(limit).all()
    updates = (
        session.query(FounderUpdate, Founder.name, CompanyFounder.role)
        .outerjoin(Founder, FounderUpdate.founder_id == Founder.id)
        .outerjoin(
            CompanyFounder,
            and_(
                CompanyFounder.company_id == FounderUpdate.company_id,
                CompanyFounder.founder_id == Founder.id,
                CompanyFounder.is_active.is_(True),
            ),
        )
        .order_by(FounderUpdate.company_id, FounderUpdate.id)
        .limit(limit)
        .all()
    )

    by_company: Dict[int, list] = {}
    for update, founder_name, role in updates:
        by_company.setdefault(update.company_id, []).append((update, founder_name, role))

    out = []
    for c in companies:
        entries = by_company.get(c.id, [])
        sentiments = [u.sentiment_score for u, _n, _r in entries if u.sentiment_score is not None]
        period_ends = [u.period_end for u, _n, _r in entries if u.period_end is not None]

        latest = None
        if entries:
            # period_end desc with NULLs last, then id desc
            latest = max(
                (u for u, _n, _r in entries),
                key=lambda u: (u.period_end is not None, u.period_end or date.min, u.id),
            )

        out.append(
            {
                "company_id": c.id,
                "company_name": c.name,
                "company_slug": c.slug,
                "status": c.status,
                "total_updates": len(entries),
                "avg_sentiment": _avg(sentiments),
                "founders": sorted({n for _u, n, _r in entries if n}),
                "founder_roles": sorted({r for _u, _n, r in entries if r}),
                "last_update_period": iso_or_none(max(period_ends)) if period_ends else None,
                "latest_summary": latest.ai_summary if latest is not None else None,
            }
        )
    return out


def founder_insights(session: Session, principal_token: Optional[str]) -> List[Dict[str, Any]]:
    """Per-founder rollup with the five most frequent extracted topics.

    Topic ties are broken by topic key ascending so results are stable.
    """

    principal = _require_lp(session, principal_token, "founder_insights")
    with_contact = can_read(principal.role, "founder", "restricted")
    limit = _max_rows()

    founders = session.query(Founder).order_by(Founder.name, Founder.id).limit(limit).all()
    updates = (
        session.query(FounderUpdate, Company.name)
        .join(Company, FounderUpdate.company_id == Company.id)
        .filter(FounderUpdate.founder_id.isnot(None))
        .order_by(FounderUpdate.founder_id, FounderUpdate.id)
        .limit(limit)
        .all()
    )

    by_founder: Dict[int, list] = {}
    for update, company_name in updates:
        by_founder.setdefault(update.founder_id, []).append((update, company_name))

    out = []
    for f in founders:
        entries = by_founder.get(f.id, [])
        sentiments = [u.sentiment_score for u, _c in entries if u.sentiment_score is not None]
        starts = [u.period_start for u, _c in entries if u.period_start is not None]
        ends = [u.period_end for u, _c in entries if u.period_end is not None]

        topics: Counter = Counter()
        for u, _c in entries:
            for topic in u.topics_extracted or ():
                if topic:
                    topics[topic] += 1
        top = sorted(topics.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_TOPICS]

        item = {
            "founder_id": f.id,
            "name": f.name,
            "primary_role": f.role,
            "linkedin_url": f.linkedin_url,
            "total_updates": len(entries),
            "avg_sentiment": _avg(sentiments),
            "companies_involved": sorted({u.company_id for u, _c in entries}),
            "company_names": sorted({c for _u, c in entries if c}),
            "top_topics": [t for t, _n in top],
            "first_update": iso_or_none(min(starts)) if starts else None,
            "last_update": iso_or_none(max(ends)) if ends else None,
        }
        if with_contact:
            item["email"] = f.email
        out.append(item)
    return out


def portfolio_demographics(
    session: Session, principal_token: Optional[str]
) -> List[Dict[str, Any]]:
    """Company and founder counts per (pitch season, stage, country)."""

    _require_lp(session, principal_token, "portfolio_demographics")

    rows = (
        session.query(
            Company.id,
            Company.pitch_season,
            Company.stage_at_investment,
            Company.country,
            Founder.id,
            Founder.sex,
        )
        .outerjoin(CompanyFounder, CompanyFounder.company_id == Company.id)
        .outerjoin(Founder, CompanyFounder.founder_id == Founder.id)
        .limit(_max_rows())
        .all()
    )

    groups: Dict[tuple, Dict[str, set]] = {}
    for company_id, season, stage, country, founder_id, sex in rows:
        g = groups.setdefault(
            (season, stage, country),
            {"companies": set(), "founders": set(), "male": set(), "female": set()},
        )
        g["companies"].add(company_id)
        if founder_id is not None:
            g["founders"].add(founder_id)
            if sex in ("male", "female"):
                g[sex].add(founder_id)

    def _order(key):
        season, stage, country = key
        # pitch_season desc (NULLs first, as in a DESC sort), then stage, country
        return (season is not None, -(season or 0), stage or "", country or "")

    out = []
    for key in sorted(groups, key=_order):
        g = groups[key]
        founder_count = len(g["founders"])
        out.append(
            {
                "pitch_season": key[0],
                "stage_at_investment": key[1],
                "country": key[2],
                "company_count": len(g["companies"]),
                "founder_count": founder_count,
                "male_founders": len(g["male"]),
                "female_founders": len(g["female"]),
                "female_founder_percentage": _percent(len(g["female"]), founder_count),
            }
        )
    return out


def season_performance(session: Session, principal_token: Optional[str]) -> List[Dict[str, Any]]:
    """Outcome counts and average terms per pitch season, newest season first."""

    _require_lp(session, principal_token, "season_performance")

    rows = (
        session.query(
            Company.pitch_season,
            Company.status,
            Company.investment_amount,
            Company.post_money_valuation,
        )
        .filter(Company.pitch_season.isnot(None))
        .limit(_max_rows())
        .all()
    )

    seasons: Dict[int, list] = {}
    for row in rows:
        seasons.setdefault(row.pitch_season, []).append(row)

    out = []
    for season in sorted(seasons, reverse=True):
        items = seasons[season]
        statuses = Counter(r.status for r in items)
        out.append(
            {
                "pitch_season": season,
                "companies_invested": len(items),
                "avg_investment": _avg(
                    [r.investment_amount for r in items if r.investment_amount is not None]
                ),
                "avg_valuation": _avg(
                    [r.post_money_valuation for r in items if r.post_money_valuation is not None]
                ),
                "still_active": statuses.get("active", 0),
                "successful_exits": statuses.get("exited", 0),
                "acquihires": statuses.get("acquihired", 0),
                "failed_companies": statuses.get("dead", 0),
                "success_rate_percentage": _percent(
                    sum(statuses.get(s, 0) for s in SUCCESS_STATUSES), len(items)
                ),
            }
        )
    return out


def _sum_or_none(values: List[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    return sum(present) if present else None


def _date_span(dates: List[date]) -> tuple:
    if not dates:
        return None, None
    return iso_or_none(min(dates)), iso_or_none(max(dates))


def _largest_first(total: Optional[float], name: Optional[str], ident: int) -> tuple:
    # total desc with NULLs last, then name and id for stable output
    return (total is None, -(total or 0), name or "", ident)


def vc_portfolio_summary(
    session: Session, principal_token: Optional[str]
) -> List[Dict[str, Any]]:
    """Per investor: invested deals, total invested and first/last deal dates.

    Episode appearances without an investment still count toward
    `total_episode_appearances`. Largest total invested first.
    """

    _require_lp(session, principal_token, "vc_portfolio_summary")

    rows = (
        session.query(
            Vc.id,
            Vc.name,
            Vc.firm_name,
            CompanyVc.id,
            CompanyVc.is_invested,
            CompanyVc.investment_amount,
            CompanyVc.investment_date,
        )
        .outerjoin(CompanyVc, CompanyVc.vc_id == Vc.id)
        .order_by(Vc.id, CompanyVc.id)
        .limit(_max_rows())
        .all()
    )

    investors: Dict[int, Dict[str, Any]] = {}
    for vc_id, name, firm_name, link_id, is_invested, amount, invested_on in rows:
        entry = investors.setdefault(
            vc_id,
            {
                "name": name,
                "firm_name": firm_name,
                "links": 0,
                "deals": 0,
                "amounts": [],
                "dates": [],
            },
        )
        if link_id is None:
            continue
        entry["links"] += 1
        if is_invested:
            entry["deals"] += 1
            entry["amounts"].append(amount)
            if invested_on is not None:
                entry["dates"].append(invested_on)

    out = []
    for vc_id, entry in investors.items():
        first_date, last_date = _date_span(entry["dates"])
        out.append(
            {
                "vc_id": vc_id,
                "vc_name": entry["name"],
                "firm_name": entry["firm_name"],
                "total_investments": entry["deals"],
                "total_invested": _sum_or_none(entry["amounts"]),
                "first_investment_date": first_date,
                "last_investment_date": last_date,
                "total_episode_appearances": entry["links"],
            }
        )
    out.sort(key=lambda r: _largest_first(r["total_invested"], r["vc_name"], r["vc_id"]))
    return out


def company_investment_summary(
    session: Session, principal_token: Optional[str]
) -> List[Dict[str, Any]]:
    """Per company: investors who invested, amount raised from them, VCs featured."""

    _require_lp(session, principal_token, "company_investment_summary")

    rows = (
        session.query(
            Company.id,
            Company.name,
            Company.slug,
            CompanyVc.id,
            CompanyVc.is_invested,
            CompanyVc.investment_amount,
            CompanyVc.investment_date,
            Vc.name,
        )
        .outerjoin(CompanyVc, CompanyVc.company_id == Company.id)
        .outerjoin(Vc, CompanyVc.vc_id == Vc.id)
        .order_by(Company.id, CompanyVc.id)
        .limit(_max_rows())
        .all()
    )

    companies: Dict[int, Dict[str, Any]] = {}
    for company_id, name, slug, link_id, is_invested, amount, invested_on, vc_name in rows:
        entry = companies.setdefault(
            company_id,
            {"name": name, "slug": slug, "links": 0, "amounts": [], "dates": [], "investors": []},
        )
        if link_id is None:
            continue
        entry["links"] += 1
        if is_invested:
            entry["amounts"].append(amount)
            entry["investors"].append(vc_name)
            if invested_on is not None:
                entry["dates"].append(invested_on)

    out = []
    for company_id, entry in companies.items():
        out.append(
            {
                "company_id": company_id,
                "company_name": entry["name"],
                "company_slug": entry["slug"],
                "total_investors": len(entry["investors"]),
                "total_raised_from_investors": _sum_or_none(entry["amounts"]),
                "investor_names": sorted(n for n in entry["investors"] if n),
                "first_investment_date": _date_span(entry["dates"])[0],
                "total_vcs_featured": entry["links"],
            }
        )
    out.sort(
        key=lambda r: _largest_first(
            r["total_raised_from_investors"], r["company_name"], r["company_id"]
        )
    )
    return out


def _companies_with_co_investors(session: Session) -> list:
    return (
        session.query(
            Company.id,
            Company.name,
            Company.slug,
            Company.co_investors,
            Company.industry_tags,
            Company.episode_publish_date,
            Company.investment_amount,
        )
        .filter(Company.co_investors.isnot(None))
        .order_by(Company.id)
        .limit(_max_rows())
        .all()
    )


def co_investor_analytics(
    session: Session, principal_token: Optional[str]
) -> List[Dict[str, Any]]:
    """Per co-investor: portfolio companies shared, their industries and our checks.

    `portfolio_percentage` is relative to companies that list any co-investor.
    Most companies first, then investor key.
    """

    _require_lp(session, principal_token, "co_investor_analytics")

    rows = [r for r in _companies_with_co_investors(session) if r.co_investors]
    investors: Dict[str, list] = {}
    for row in rows:
        for investor in dict.fromkeys(row.co_investors):
            investors.setdefault(investor, []).append(row)

    out = []
    for investor, companies in investors.items():
        first_published, last_published = _date_span(
            [c.episode_publish_date for c in companies if c.episode_publish_date]
        )
        amounts = [c.investment_amount for c in companies if c.investment_amount is not None]
        out.append(
            {
                "investor": investor,
                "label": label_for(investor),
                "portfolio_companies": len(companies),
                "portfolio_percentage": _percent(len(companies), len(rows)),
                "company_names": sorted({c.name for c in companies}),
                "industries_invested": sorted(
                    {tag for c in companies for tag in (c.industry_tags or ())}
                ),
                "first_episode_publish_date": first_published,
                "last_episode_publish_date": last_published,
                "avg_investment": _avg(amounts),
                "total_invested": _sum_or_none(amounts),
            }
        )
    out.sort(key=lambda r: (-r["portfolio_companies"], r["investor"]))
    return out


def syndication_opportunities(
    session: Session, principal_token: Optional[str]
) -> List[Dict[str, Any]]:
    """Pairs of companies that share at least one co-investor, most shared first."""

    _require_lp(session, principal_token, "syndication_opportunities")

    rows = [r for r in _companies_with_co_investors(session) if r.co_investors]
    out = []
    for i, first in enumerate(rows):
        for second in rows[i + 1 :]:
            shared = sorted(set(first.co_investors) & set(second.co_investors))
            if not shared:
                continue
            out.append(
                {
                    "company1": first.name,
                    "company1_slug": first.slug,
                    "company2": second.name,
                    "company2_slug": second.slug,
                    "shared_investors_count": len(shared),
                    "shared_investors": shared,
                }
            )
    out.sort(key=lambda r: (-r["shared_investors_count"], r["company1"], r["company2"]))
    return out


def tag_analytics(session: Session) -> Dict[str, List[Dict[str, Any]]]:
    """Usage counts for every tag field, read from public columns only.

    Open to every role; it never touches a restricted column.
    """

    limit = _max_rows()
    columns = [getattr(Company, f.attribute) for f in TAXONOMY_FIELDS]
    counters = {f.name: Counter() for f in TAXONOMY_FIELDS}

    for row in session.query(*columns).order_by(Company.id).limit(limit):
        for field, tags in zip(TAXONOMY_FIELDS, row):
            for tag in set(tags or ()):
                counters[field.name][tag] += 1

    return {
        name: [
            {"value": value, "label": label_for(value), "usage_count": count}
            for value, count in sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
        ]
        for name, counter in counters.items()
    }
