"""
Time parsing and timezone normalization.

Feed timestamps come from Postgres `timestamptz` columns (ISO-8601 with offset), but
catalog files and CLI flags may carry naive values. Everything that is compared is made
timezone-aware first; naive values are read in the configured timezone (UTC by default).
"""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo


def ensure_tz(dt: datetime, timezone: str = "UTC") -> datetime:
    """Ensure `dt` has tzinfo; attach `timezone` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(timezone))
    return dt


def parse_datetime(value: str, timezone: str = "UTC") -> datetime:
    """Parse ISO-8601 datetime string and ensure tzinfo is present.

    Accepts a trailing `Z` (UTC) and converts it to `+00:00` for `fromisoformat`.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    return ensure_tz(dt, timezone)


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(dt_timezone.utc)
