"""Local cache: the whole ForgeData aggregate as one JSON blob.

The blob lives at a fixed storage key inside the workspace. A missing or
unreadable blob is treated as a fresh aggregate with default goals.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from pathlib import Path

from forge.errors import ErrorKind, StoreResult
from forge.fileio import read_json, write_json_atomic
from forge.models import DayRecord, ForgeData
from forge.progress import is_day_complete
from forge.streak import compute_streak
from forge.workspace import local_cache_path

logger = logging.getLogger(__name__)


class LocalCache:
    def __init__(self, path: Path | None = None):
        self.path = path if path is not None else local_cache_path()

    def load(self) -> StoreResult[ForgeData]:
        try:
            raw = read_json(self.path)
            return StoreResult.success(ForgeData.from_dict(raw))
        except (OSError, ValueError, TypeError) as e:
            return StoreResult.failure(ErrorKind.MALFORMED_CACHE, str(e))

    def data(self) -> ForgeData:
        """Load the aggregate, falling back to defaults on a bad blob."""
        result = self.load()
        if not result.ok:
            logger.warning("Ignoring unreadable local cache %s: %s", self.path, result.error)
            return ForgeData()
        return result.unwrap_or(ForgeData())

    def save(self, data: ForgeData) -> StoreResult[ForgeData]:
        try:
            write_json_atomic(self.path, data.to_dict())
        except OSError as e:
            logger.warning("Failed to write local cache %s: %s", self.path, e)
            return StoreResult.failure(ErrorKind.UNAVAILABLE, str(e))
        return StoreResult.success(data)

    # ── Day records ───────────────────────────────────────────

    def get_day(self, key: str) -> DayRecord | None:
        record = self.data().days.get(key)
        return copy.deepcopy(record) if record is not None else None

    def save_day(self, key: str, record: DayRecord, now: datetime) -> StoreResult[ForgeData]:
        """Store *record* under *key*, stamp first completion, recompute streak."""
        data = self.data()
        record = copy.deepcopy(record)
        existing = data.days.get(key)
        if existing is not None:
            if existing.completed_at and not record.completed_at:
                record.completed_at = existing.completed_at
            if existing.program_id:
                record.program_id = existing.program_id
                record.day_number = existing.day_number
        if is_day_complete(record) and not record.completed_at:
            record.completed_at = now.isoformat(timespec="seconds")
        data.days[key] = record
        data.streak = compute_streak(data.days, key)
        return self.save(data)

    def reset_day(self, key: str) -> StoreResult[ForgeData]:
        """Drop the record for *key* and recompute the streak."""
        data = self.data()
        data.days.pop(key, None)
        data.streak = compute_streak(data.days, key)
        return self.save(data)

    # ── Settings ──────────────────────────────────────────────

    def update_settings(self, water_goal: int, steps_goal: int) -> StoreResult[ForgeData]:
        if water_goal <= 0 or steps_goal <= 0:
            return StoreResult.failure(ErrorKind.SCHEMA, "goals must be positive")
        data = self.data()
        data.water_goal = int(water_goal)
        data.steps_goal = int(steps_goal)
        return self.save(data)
