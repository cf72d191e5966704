from __future__ import annotations

from flask import Blueprint, abort, jsonify

from api.api_v1.request_context import bearer_token, current_session
from api.schemas.api_responses import ok
from api.services import aggregation_service

analytics_v1_bp = Blueprint("analytics_v1", __name__, url_prefix="/analytics")

# Each of these resolves the caller from the raw token on its own.
SECURE_AGGREGATIONS = {
    "founder_timeline": aggregation_service.founder_timeline,
    "company_progress": aggregation_service.company_progress,
    "founder_insights": aggregation_service.founder_insights,
    "portfolio_demographics": aggregation_service.portfolio_demographics,
    "season_performance": aggregation_service.season_performance,
    "vc_portfolio_summary": aggregation_service.vc_portfolio_summary,
    "company_investment_summary": aggregation_service.company_investment_summary,
    "co_investor_analytics": aggregation_service.co_investor_analytics,
    "syndication_opportunities": aggregation_service.syndication_opportunities,
}


@analytics_v1_bp.get("/tags")
def tag_usage():
    """Public tag usage rollup."""

    return jsonify(ok(aggregation_service.tag_analytics(current_session())))


@analytics_v1_bp.get("/<name>")
def run_aggregation(name: str):
    fn = SECURE_AGGREGATIONS.get(name)
    if fn is None:
        abort(404)
    return jsonify(ok(fn(current_session(), bearer_token())))
