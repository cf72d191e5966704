"""Error types raised by the portfolio core.

Read paths never reveal *why* something is missing: `NotFound` is used both for
"does not exist" and "exists but you may not read it". Write paths and secure
aggregations raise `AccessDenied` with a constant message.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

ACCESS_DENIED_MESSAGE = "Access denied."
NOT_FOUND_MESSAGE = "Not found."


class PortfolioError(Exception):
    """Base class; `code` and `http_status` feed the JSON error envelope."""

    code = "error"
    http_status = 500

    def details(self) -> Optional[Dict[str, Any]]:
        return None


class ValidationError(PortfolioError):
    """Malformed input. Recoverable; always names the offending field."""

    code = "validation_error"
    http_status = 400

    def __init__(self, field: str, message: str, *, value: Any = None) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message
        self.value = value

    def details(self) -> Optional[Dict[str, Any]]:
        return {"field": self.field}


class VocabularyInUse(ValidationError):
    """A vocabulary term still has attachments and cannot be retired."""

    code = "vocabulary_in_use"
    http_status = 409


class AccessDenied(PortfolioError):
    code = "access_denied"
    http_status = 403

    def __init__(self) -> None:
        super().__init__(ACCESS_DENIED_MESSAGE)


class NotFound(PortfolioError):
    code = "not_found"
    http_status = 404

    def __init__(self) -> None:
        super().__init__(NOT_FOUND_MESSAGE)


class ConflictError(PortfolioError):
    """Optimistic row-version check failed."""

    code = "conflict"
    http_status = 409
