"""App settings.

Flask loads this module on startup via ``app.config.from_pyfile(...)``.

Environment overrides live in `config.Config`; this file is the single source of
defaults.
"""

# Single source of truth for app configuration.
SETTINGS: dict[str, object] = {
    # Flask / token signing
    "SECRET_KEY": "dev-not-secret",
    # Bearer tokens older than this resolve to the public role.
    "TOKEN_MAX_AGE_SECONDS": 60 * 60 * 24 * 7,
    # Feature flags
    "ENABLE_VOCABULARY_ADMIN": True,
    # Logging
    "LOG_LEVEL": "INFO",
    # Per-field cardinality caps for tag arrays. These bound UI rendering cost;
    # they are configuration, not domain rules.
    "TAG_LIMITS": {
        "industry": 10,
        "business_model": 10,
        "keyword": 20,
        "co_investor": 15,
    },
    # Upper bound on rows fed into a single analytics rollup.
    "AGGREGATION_MAX_ROWS": 5000,
}

# Optional convenience exports (mirrors earlier style).
SECRET_KEY = SETTINGS["SECRET_KEY"]
TOKEN_MAX_AGE_SECONDS = SETTINGS["TOKEN_MAX_AGE_SECONDS"]
ENABLE_VOCABULARY_ADMIN = SETTINGS["ENABLE_VOCABULARY_ADMIN"]
LOG_LEVEL = SETTINGS["LOG_LEVEL"]
TAG_LIMITS = SETTINGS["TAG_LIMITS"]
AGGREGATION_MAX_ROWS = SETTINGS["AGGREGATION_MAX_ROWS"]
