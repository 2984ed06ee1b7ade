"""
Time helpers.

FairMeet treats all timestamps as timezone-aware datetimes. The quota day boundary is
the calendar date in the configured app timezone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def ensure_tz(dt: datetime, tz_name: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `tz_name` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(tz_name))
    return dt


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_date_key(dt: datetime, tz_name: str) -> str:
    """Return the `YYYY-MM-DD` calendar date of `dt` in `tz_name`."""
    return ensure_tz(dt, tz_name).astimezone(ZoneInfo(tz_name)).date().isoformat()
