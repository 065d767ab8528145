"""
Row helpers shared by the Supabase adapters.

Timestamps are stored in `*_utc` columns as ISO-8601 strings; Supabase may
return them with a trailing 'Z' or without an offset.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from postgrest.exceptions import APIError  # type: ignore[import-not-found]

from domain.errors import DatabaseError
from domain.time import require_utc_timestamp


def to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def to_optional_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    if dt is None:
        return None
    return to_iso_utc(dt, name=name)


def parse_utc_datetime(value: Any) -> datetime:
    """Parse a Supabase timestamp into a timezone-aware UTC datetime."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_utc_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    return parse_utc_datetime(value)


def execute_rows(query: Any, action: str) -> List[Mapping[str, Any]]:
    """
    Execute a Supabase query builder and return its rows.

    supabase-py raises APIError for most PostgREST failures, while older
    clients report them on `response.error`. Both become DatabaseError.
    """

    try:
        response = query.execute()
    except APIError as exc:
        raise DatabaseError(f"Failed to {action}: {exc}", details=getattr(exc, "code", None)) from exc

    error = getattr(response, "error", None)
    if error:
        raise DatabaseError(f"Failed to {action}: {error}", details=error)
    return getattr(response, "data", None) or []


__all__ = [
    "to_iso_utc",
    "to_optional_iso_utc",
    "parse_utc_datetime",
    "parse_optional_utc_datetime",
    "execute_rows",
]
