"""
Domain time utilities (pure).

Centralized timestamp helpers shared by every aggregate.

All timestamps in the domain are timezone-aware UTC values. Aggregates stamp
their own lifecycle moments through `utc_now()` so tests can rely on a single
clock source.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import ValidationError


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValidationError(f"{name} must be a UTC timestamp (offset 0)")


def require_optional_utc_timestamp(name: str, value: Optional[datetime]) -> None:
    if value is not None:
        require_utc_timestamp(name, value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
