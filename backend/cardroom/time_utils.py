from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

from .errors import ValidationError


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_date(value: Any = None, field: str = "session_date") -> date:
    """
    Resolve the business date a session belongs to.

    - None or "" -> today (UTC)
    - date -> unchanged
    - "YYYY-MM-DD" -> parsed
    - anything else -> ValidationError
    """
    if isinstance(value, str):
        value = value.strip() or None
    if value is None:
        return utcnow().date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be YYYY-MM-DD", field=field)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field} must be YYYY-MM-DD", field=field, value=value)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
