"""Application logging utilities.

Goals:
- Single, shared app logger used everywhere
- Logs written to per-module files under ./logs/ (or $PORTFOLIO_LOG_DIR)
- UTC timestamp at start of each log line
- Daily log rotation

Call `get_logger(__name__)` from any module to get a child logger.
Set PORTFOLIO_LOG_TO_FILES=0 to keep everything on stderr (CI, containers).
"""

from __future__ import annotations

import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler


class _UTCFormatter(logging.Formatter):
    """Formatter that forces UTC timestamps."""

    converter = staticmethod(time.gmtime)


_APP_LOGGER_NAME = "portfolio"

_FORMAT = "%(asctime)sZ %(levelname)s pid=%(process)d %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def _logs_dir() -> str:
    override = (os.getenv("PORTFOLIO_LOG_DIR") or "").strip()
    if override:
        return override
    return os.path.join(os.path.dirname(__file__), "logs")


def _file_logging_enabled() -> bool:
    return (os.getenv("PORTFOLIO_LOG_TO_FILES", "1").strip().lower()) not in {
        "0",
        "false",
        "no",
        "off",
    }


def _sanitize_filename(name: str) -> str:
    # Convert e.g. "api.services.entity_service" -> "api_services_entity_service"
    name = (name or "app").strip() or "app"
    return "".join(ch if (ch.isalnum() or ch in {"-", "_"}) else "_" for ch in name)


def _rotating_handler(file_name: str, level: int) -> TimedRotatingFileHandler:
    os.makedirs(_logs_dir(), exist_ok=True)
    fh = TimedRotatingFileHandler(
        os.path.join(_logs_dir(), file_name),
        when="midnight",
        interval=1,
        backupCount=14,
        utc=True,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(_UTCFormatter(fmt=_FORMAT, datefmt=_DATEFMT))
    return fh


def configure_app_logging(level_name: str = "INFO") -> logging.Logger:
    """Configure and return the root application logger.

    Safe to call multiple times; later calls only adjust the level.
    """

    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    app_logger = logging.getLogger(_APP_LOGGER_NAME)
    app_logger.setLevel(level)

    if getattr(app_logger, "_configured", False):
        return app_logger

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(_UTCFormatter(fmt=_FORMAT, datefmt=_DATEFMT))
    app_logger.addHandler(sh)

    if _file_logging_enabled():
        app_logger.addHandler(_rotating_handler("app.log", level))

    # Do not propagate to the global root logger (prevents double logging).
    app_logger.propagate = False

    app_logger._configured = True  # type: ignore[attr-defined]
    return app_logger


def get_logger(module_name: str | None = None) -> logging.Logger:
    """Get a module-specific child of the app logger.

    Children propagate to the app logger (console + app.log) and, when file
    logging is enabled, also write their own `<module>.log`.

    Example:
        logger = get_logger(__name__)
    """

    base = configure_app_logging(os.getenv("LOG_LEVEL", "INFO"))

    child_name = module_name or "app"
    logger = logging.getLogger(f"{_APP_LOGGER_NAME}.{child_name}")

    if not getattr(logger, "_file_configured", False):
        logger.setLevel(base.level)
        if _file_logging_enabled():
            logger.addHandler(
                _rotating_handler(_sanitize_filename(child_name) + ".log", base.level)
            )
        logger._file_configured = True  # type: ignore[attr-defined]

    return logger
