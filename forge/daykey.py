"""Day-key resolution: which calendar day a moment belongs to.

A Forge day runs from 03:00 to 03:00 local wall-clock time, so finishing the
sleep ritual at 01:30 still counts toward the previous day.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

from forge.workspace import get_user_timezone, now_local

CUTOFF_HOUR = 3


def resolve_day_key(now: datetime, tz: ZoneInfo | None = None) -> str:
    """Map a moment to its day key (YYYY-MM-DD).

    Aware datetimes are converted into *tz* first; naive ones are taken as
    local wall-clock time. The cutoff is applied to the local hour, so it is
    stable across DST transitions.
    """
    local = now
    if tz is not None and now.tzinfo is not None:
        local = now.astimezone(tz)
    day = local.date()
    if local.hour < CUTOFF_HOUR:
        day -= timedelta(days=1)
    return day.isoformat()


def day_key_offset(key: str, days: int) -> str:
    return (date.fromisoformat(key) + timedelta(days=days)).isoformat()


def previous_day_key(key: str) -> str:
    return day_key_offset(key, -1)


def today_key(root: Path | None = None) -> str:
    """Current day key in the workspace timezone."""
    return resolve_day_key(now_local(root), get_user_timezone(root))
