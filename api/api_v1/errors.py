from __future__ import annotations

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from api.schemas.api_responses import fail
from logging_utils import get_logger
from utils.errors import PortfolioError

logger = get_logger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Render core errors and HTTP errors as JSON `fail(...)` envelopes."""

    @app.errorhandler(PortfolioError)
    def _portfolio_error(err: PortfolioError):
        return jsonify(fail(str(err), code=err.code, details=err.details())), err.http_status

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        code = (err.name or "error").lower().replace(" ", "_")
        return jsonify(fail(err.description or err.name, code=code)), err.code

    @app.errorhandler(500)
    def _server_error(_err):
        logger.exception("Unhandled server error")
        return jsonify(fail("Internal server error.", code="internal_error")), 500
