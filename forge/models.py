"""Typed dataclasses for the Forge data model.

All models use from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

PROGRAM_LENGTH = 90
DEFAULT_WATER_GOAL = 128  # oz
DEFAULT_STEPS_GOAL = 10000

_DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_day_key(key: Any) -> bool:
    return isinstance(key, str) and bool(_DAY_KEY_RE.match(key))


def _str_map(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): str(v) for k, v in raw.items() if v}


def _bool_map(raw: Any) -> dict[str, bool]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): bool(v) for k, v in raw.items()}


def _opt_int(raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    return int(raw)


# ── Day Record ────────────────────────────────────────────────


@dataclass
class DayRecord:
    checks: dict[str, bool] = field(default_factory=dict)
    custom_tasks: dict[str, str] = field(default_factory=dict)  # task id -> replacement text
    steps_actual: int | None = None
    notes: str = ""
    completed_at: str | None = None  # stamped on first completion, never cleared
    # local running tallies; informational only
    water_oz: int = 0
    steps: int = 0
    strict_fasting: bool = True
    # set once when the record is created against a program
    program_id: str | None = None
    day_number: int | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DayRecord:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            checks=_bool_map(d.get("checks")),
            custom_tasks=_str_map(d.get("customTasks")),
            steps_actual=_opt_int(d.get("stepsActual")),
            notes=str(d.get("notes") or ""),
            completed_at=d.get("completedAt") or None,
            water_oz=int(d.get("waterOz", 0) or 0),
            steps=int(d.get("steps", 0) or 0),
            strict_fasting=bool(d.get("strictFasting", True)),
            program_id=d.get("programId") or None,
            day_number=_opt_int(d.get("dayNumber")),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "strictFasting": self.strict_fasting,
            "waterOz": self.water_oz,
            "steps": self.steps,
            "checks": dict(self.checks),
            "customTasks": dict(self.custom_tasks),
            "notes": self.notes,
        }
        if self.steps_actual is not None:
            d["stepsActual"] = self.steps_actual
        if self.completed_at:
            d["completedAt"] = self.completed_at
        if self.program_id:
            d["programId"] = self.program_id
        if self.day_number is not None:
            d["dayNumber"] = self.day_number
        return d


# ── Aggregate local store ─────────────────────────────────────


@dataclass
class ForgeData:
    streak: int = 0
    water_goal: int = DEFAULT_WATER_GOAL
    steps_goal: int = DEFAULT_STEPS_GOAL
    days: dict[str, DayRecord] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ForgeData:
        """Parse the cached blob.

        Older blobs kept day records as date keys next to the scalar fields;
        those are lifted into ``days``.
        """
        if not d or not isinstance(d, dict):
            return cls()
        raw_days = d.get("days")
        if not isinstance(raw_days, dict):
            raw_days = {k: v for k, v in d.items() if is_day_key(k)}
        days = {
            k: DayRecord.from_dict(v)
            for k, v in sorted(raw_days.items())
            if is_day_key(k) and isinstance(v, dict)
        }
        return cls(
            streak=int(d.get("streak", 0) or 0),
            water_goal=int(d.get("waterGoal", DEFAULT_WATER_GOAL) or DEFAULT_WATER_GOAL),
            steps_goal=int(d.get("stepsGoal", DEFAULT_STEPS_GOAL) or DEFAULT_STEPS_GOAL),
            days=days,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "streak": self.streak,
            "waterGoal": self.water_goal,
            "stepsGoal": self.steps_goal,
            "days": {k: self.days[k].to_dict() for k in sorted(self.days)},
        }


# ── Program ───────────────────────────────────────────────────


@dataclass
class Program:
    id: str = ""
    owner_id: str = ""
    started_at: datetime | None = None
    current_day: int = 1
    failed_at: datetime | None = None
    completed_at: datetime | None = None
    reset_count: int = 0

    @property
    def status(self) -> str:
        if self.failed_at is not None:
            return "failed"
        if self.completed_at is not None:
            return "completed"
        return "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "currentDay": self.current_day,
            "failedAt": self.failed_at.isoformat() if self.failed_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "resetCount": self.reset_count,
            "status": self.status,
        }


@dataclass
class ProgramStats:
    current_day: int = 1
    total_resets: int = 0
    longest_streak: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentDay": self.current_day,
            "totalResets": self.total_resets,
            "longestStreak": self.longest_streak,
        }
