from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


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


def resolve_timezone(name: Optional[str]):
    """
    Resolve an IANA timezone name.

    UTC aliases never touch tzdata; unknown names raise ZoneInfoNotFoundError.
    """
    if not name or name in ("UTC", "Z", "Etc/UTC"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ZoneInfoNotFoundError(f"Unknown timezone: {name}") from exc


def business_date_for(timezone_name: Optional[str], at: Optional[datetime] = None) -> date:
    """
    The store-local calendar date for a UTC instant (default: now).

    A store in America/New_York closing at 22:30 local is still on the
    same business date even though UTC has already rolled over.
    """
    at = at or utcnow()
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    return at.astimezone(resolve_timezone(timezone_name)).date()
