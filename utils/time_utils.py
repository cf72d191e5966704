"""Time helpers.

Stored timestamps are timezone-aware UTC; dates cross the API as ISO strings.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow_sa_default() -> datetime:
    """SQLAlchemy default/onupdate callable for UTC timestamps."""

    return datetime.now(timezone.utc)


def iso_or_none(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def quarter_of(d: date) -> int:
    """Calendar quarter (1-4) of a date."""

    return (d.month - 1) // 3 + 1
