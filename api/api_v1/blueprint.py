from flask import Blueprint

from api.api_v1.analytics import analytics_v1_bp
from api.api_v1.entities import entities_v1_bp
from api.api_v1.request_context import close_request_session, open_request_session
from api.api_v1.tags import tags_v1_bp


def create_api_v1_blueprint() -> Blueprint:
    """Create the /api/v1 blueprint and register sub-blueprints.

    The caller's role is resolved once per request before any handler runs.
    """

    v1_bp = Blueprint("api_v1", __name__, url_prefix="/api/v1")
    v1_bp.before_request(open_request_session)
    v1_bp.teardown_request(close_request_session)

    v1_bp.register_blueprint(entities_v1_bp)
    v1_bp.register_blueprint(tags_v1_bp)
    v1_bp.register_blueprint(analytics_v1_bp)
    return v1_bp
