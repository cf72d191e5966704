import os
import time

from flask import Flask, request

import db
from api.api_v1.errors import register_error_handlers
from api.blueprint import create_api_blueprint
from config import Config, configure_logging
from logging_utils import configure_app_logging, get_logger


def init_db() -> None:
    """Create tables and seed the default vocabularies.

    Kept out of default startup path to minimize app spin-up time.
    """

    # Imported here so every model is registered on Base before create_all.
    import models  # noqa: F401
    from api.services.vocabulary_service import seed_default_vocabularies

    os.makedirs(db.DATA_DIR, exist_ok=True)
    db.Base.metadata.create_all(bind=db.engine)
    session = db.SessionLocal()
    try:
        seed_default_vocabularies(session)
    finally:
        session.close()


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__)

    # Defaults from file, then env overrides.
    app.config.from_pyfile("settings.py")
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Configure unified app logging (UTC timestamps, per-file logs, daily rotation)
    configure_app_logging(app.config.get("LOG_LEVEL", "INFO"))
    logger = get_logger(__name__)
    configure_logging(app.logger, app.config.get("LOG_LEVEL", "INFO"))

    # --- slow request logging (opt-in by threshold; default 250ms) ---
    # Set to "0" to disable.
    slow_ms = int(os.getenv("SLOW_REQUEST_MS", "250") or "250")

    @app.before_request
    def _start_timer():
        if slow_ms > 0:
            request.environ["_req_start_ns"] = time.perf_counter_ns()

    @app.after_request
    def _log_slow_requests(resp):
        if slow_ms <= 0:
            return resp

        start_ns = request.environ.get("_req_start_ns")
        if not start_ns:
            return resp

        elapsed_ms = (time.perf_counter_ns() - int(start_ns)) / 1_000_000.0
        if elapsed_ms >= slow_ms:
            # Keep it compact and stable for grepping.
            logger.warning(
                "SLOW_REQUEST ms=%.1f status=%s method=%s path=%s",
                elapsed_ms,
                getattr(resp, "status_code", "?"),
                request.method,
                request.path,
            )
        return resp

    app.register_blueprint(create_api_blueprint())
    register_error_handlers(app)

    # Optional: initialize tables on startup only when explicitly requested.
    if os.getenv("INIT_DB_ON_STARTUP", "0") == "1":
        logger.info("INIT_DB_ON_STARTUP=1; initializing database schema")
        init_db()

    return app


# NOTE: Do not instantiate the Flask app at import time.
# Tests patch the DB engine/sessionmaker before calling create_app().
app: Flask | None = None


if __name__ == "__main__":
    app = create_app()
    get_logger(__name__).info("Starting Flask app")
    app.run(debug=True, use_reloader=False)
