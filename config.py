import logging
import os

from flask import current_app, has_app_context

import settings


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    v = (os.getenv(name) or "").strip()
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        return default


class Config:
    """Runtime configuration: `settings.SETTINGS` defaults overridden by env vars."""

    SECRET_KEY = os.getenv("SECRET_KEY", str(settings.SECRET_KEY))
    TOKEN_MAX_AGE_SECONDS: int = _env_int(
        "TOKEN_MAX_AGE_SECONDS", int(settings.TOKEN_MAX_AGE_SECONDS)
    )

    # Feature flags
    ENABLE_VOCABULARY_ADMIN: bool = _env_bool(
        "ENABLE_VOCABULARY_ADMIN", bool(settings.ENABLE_VOCABULARY_ADMIN)
    )

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", str(settings.LOG_LEVEL)).upper()

    # Analytics
    AGGREGATION_MAX_ROWS: int = _env_int(
        "AGGREGATION_MAX_ROWS", int(settings.AGGREGATION_MAX_ROWS)
    )


def tag_limit(field_name: str) -> int:
    """Return the configured max cardinality for a taxonomy field.

    Inside an app context `app.config["TAG_LIMITS"]` replaces the settings
    value per field; `TAG_LIMIT_<FIELD>` (e.g. TAG_LIMIT_KEYWORD=25) overrides both.
    """

    limits = dict(settings.TAG_LIMITS)
    if has_app_context():
        limits.update(current_app.config.get("TAG_LIMITS") or {})
    default = int(limits.get(field_name, 20))
    return _env_int(f"TAG_LIMIT_{field_name.upper()}", default)


def configure_logging(app_logger: logging.Logger, level_name: str) -> None:
    """Route Flask's own logger through the portfolio handlers.

    Call after `logging_utils.configure_app_logging`; repeated calls are no-ops.
    """

    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    app_logger.setLevel(level)

    for handler in logging.getLogger("portfolio").handlers:
        if handler not in app_logger.handlers:
            app_logger.addHandler(handler)
    app_logger.propagate = False
