"""Streak calculation over the local day records."""

from __future__ import annotations

from typing import Mapping

from forge.daykey import day_key_offset
from forge.models import DayRecord
from forge.progress import is_day_complete

MAX_LOOKBACK_DAYS = 365


def compute_streak(days: Mapping[str, DayRecord], today: str) -> int:
    """Count consecutive complete days ending at *today*.

    Today is still in progress: if it is incomplete it neither counts nor
    breaks the walk. Any earlier day that is missing or incomplete ends it.
    """
    streak = 0
    for i in range(MAX_LOOKBACK_DAYS):
        record = days.get(day_key_offset(today, -i))
        if record is not None and is_day_complete(record):
            streak += 1
        elif i > 0:
            break
    return streak
