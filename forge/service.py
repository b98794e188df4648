"""ForgeService: the single entry point the UI talks to.

It owns both backends. In connected mode (a remote store plus an owner id)
reads come from the remote store and fall back to the local cache on any
store error; writes go to the remote store first and are always written
through to the local cache, so a completed task is never lost. In offline
mode only the local cache is used.

No method raises for store failures; callers get a record, a program, or
None.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable
from zoneinfo import ZoneInfo

from forge.catalog import PHASES, REQUIRED_TASK_IDS, find_task
from forge.daykey import resolve_day_key
from forge.errors import PersistenceError
from forge.hooks import run_hooks
from forge.local_store import LocalCache
from forge.messages import banner_message, nudges, phase_message, status_message
from forge.models import DayRecord, Program, ProgramStats
from forge.program import ProgramManager
from forge.progress import calculate_progress, is_day_complete, phase_progress
from forge.remote_store import RemoteStore

logger = logging.getLogger(__name__)

MAX_WATER_OZ = 256
MAX_STEPS = 50000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ForgeService:
    def __init__(
        self,
        local: LocalCache,
        remote: RemoteStore | None = None,
        owner_id: str | None = None,
        tz: ZoneInfo | None = None,
        clock: Callable[[], datetime] = _utcnow,
        hooks_root: Path | None = None,
    ):
        self.local = local
        self.remote = remote
        self.owner_id = owner_id or None
        self.tz = tz or ZoneInfo("UTC")
        self.clock = clock
        self.hooks_root = hooks_root
        self.manager = (
            ProgramManager(remote, self.tz, clock, on_event=self._fire)
            if remote is not None
            else None
        )

    @property
    def connected(self) -> bool:
        return self.manager is not None and self.owner_id is not None

    @property
    def mode(self) -> str:
        return "connected" if self.connected else "offline"

    def today(self) -> str:
        return resolve_day_key(self.clock(), self.tz)

    def _fire(self, event: str, context: dict[str, Any]) -> None:
        if self.hooks_root is None:
            return
        run_hooks(event, {"owner": self.owner_id, "day": self.today(), **context}, self.hooks_root)

    def _fallback(self, op: str, error: PersistenceError | None) -> None:
        logger.warning("Remote %s failed, using local cache: %s", op, error)

    # ── Reads ─────────────────────────────────────────────────

    def get_active_program(self) -> Program | None:
        if not self.connected:
            return None
        result = self.manager.get_active_program(self.owner_id)
        if not result.ok:
            self._fallback("get_active_program", result.error)
            return None
        return result.value

    def get_today_log(self) -> DayRecord:
        """Today's record, from the remote store when possible.

        Checks made locally while the remote store was out of reach are
        merged onto the remote record, so they survive the next save.
        """
        key = self.today()
        local = self.local.get_day(key)
        fallback = local if local is not None else DayRecord()
        if not self.connected:
            return fallback

        program = self.get_active_program()
        if program is None:
            return fallback
        got = self.remote.get_daily_log(program.id, key)
        if not got.ok:
            self._fallback("get_daily_log", got.error)
            return fallback

        same_program = local is not None and local.program_id in (None, program.id)
        record = got.value
        if record is None:
            # Seed the new remote row with anything logged locally for this program.
            seed = local if same_program else DayRecord()
            if not self._write_remote(program, key, seed, self.clock()):
                return fallback
            record = DayRecord(
                checks=dict(seed.checks),
                custom_tasks=dict(seed.custom_tasks),
                steps_actual=seed.steps_actual,
                notes=seed.notes,
                completed_at=seed.completed_at,
                program_id=program.id,
                day_number=program.current_day,
            )
        elif same_program:
            for task_id, checked in local.checks.items():
                if checked:
                    record.checks[task_id] = True

        if local is not None:
            record.water_oz = local.water_oz
            record.steps = local.steps
            record.strict_fasting = local.strict_fasting
            if not record.completed_at:
                record.completed_at = local.completed_at
        return record

    def get_program_stats(self) -> ProgramStats:
        if self.connected:
            result = self.manager.get_stats(self.owner_id)
            if result.ok:
                return result.value
            self._fallback("get_program_stats", result.error)
        return ProgramStats(current_day=1, total_resets=0, longest_streak=self.local.data().streak)

    def get_settings(self) -> dict[str, int]:
        data = self.local.data()
        return {"waterGoal": data.water_goal, "stepsGoal": data.steps_goal}

    def snapshot(self) -> dict[str, Any]:
        """Everything the tracker screen shows, re-derived from storage.

        Safe to call on a timer or when the window regains focus: the day
        key and reset check are idempotent.
        """
        record = self.get_today_log()
        program = self.get_active_program()
        data = self.local.data()
        phases = []
        for phase in PHASES:
            done, total = phase_progress(record, phase)
            phases.append({
                "id": phase.id, "done": done, "total": total,
                "message": phase_message(record, phase),
            })
        return {
            "mode": self.mode,
            "day": self.today(),
            "record": record.to_dict(),
            "progress": calculate_progress(record),
            "complete": is_day_complete(record),
            "phases": phases,
            "streak": data.streak,
            "message": status_message(record, data.streak),
            "banner": banner_message(record),
            "nudges": nudges(record, data.streak),
            "program": program.to_dict() if program else None,
            "stats": self.get_program_stats().to_dict(),
            "goals": {"waterGoal": data.water_goal, "stepsGoal": data.steps_goal},
        }

    # ── Writes ────────────────────────────────────────────────

    def _write_remote(self, program: Program, key: str, record: DayRecord, now: datetime) -> bool:
        """Upsert today's remote log; advance the program on its first completion."""
        saved = self.remote.upsert_daily_log(
            self.owner_id, program.id, key, program.current_day,
            record, is_day_complete(record), now,
        )
        if not saved.ok:
            self._fallback("save daily log", saved.error)
            return False
        if saved.value:
            advanced = self.manager.record_day_completion(program)
            if not advanced.ok:
                self._fallback("record_day_completion", advanced.error)
        return True

    def save_today_log(self, record: DayRecord) -> DayRecord:
        """Persist today's record to both stores and advance the program.

        The program advances only on the save that takes the day from
        incomplete to complete.
        """
        key = self.today()
        now = self.clock()
        complete = is_day_complete(record)
        previous = self.local.get_day(key)
        was_complete = previous is not None and is_day_complete(previous)

        if self.connected:
            program = self.get_active_program()
            if program is not None and self._write_remote(program, key, record, now):
                if record.program_id is None:
                    record.program_id = program.id
                    record.day_number = program.current_day

        result = self.local.save_day(key, record, now)
        if result.ok:
            stored = result.value.days.get(key)
            if stored is not None:
                record.completed_at = stored.completed_at
        if complete and not was_complete:
            self._fire("on_day_complete", {"record": record.to_dict()})
        return record

    def toggle_task(self, task_id: str) -> DayRecord | None:
        if find_task(task_id) is None:
            logger.warning("Ignoring toggle for unknown task %r", task_id)
            return None
        record = self.get_today_log()
        record.checks[task_id] = not record.checks.get(task_id, False)
        return self.save_today_log(record)

    def set_custom_task(self, task_id: str, description: str) -> DayRecord | None:
        """Replace a task's display text; empty text restores the default."""
        task = find_task(task_id)
        if task is None or not task.customizable:
            logger.warning("Ignoring custom text for task %r", task_id)
            return None
        record = self.get_today_log()
        description = (description or "").strip()
        if description:
            record.custom_tasks[task_id] = description
        else:
            record.custom_tasks.pop(task_id, None)
        return self.save_today_log(record)

    def set_steps_actual(self, steps: int) -> DayRecord | None:
        if steps < 0:
            return None
        record = self.get_today_log()
        record.steps_actual = int(steps)
        return self.save_today_log(record)

    def add_water(self, ounces: int) -> DayRecord:
        record = self.get_today_log()
        record.water_oz = max(0, min(record.water_oz + int(ounces), MAX_WATER_OZ))
        return self.save_today_log(record)

    def add_steps(self, steps: int) -> DayRecord:
        record = self.get_today_log()
        record.steps = max(0, min(record.steps + int(steps), MAX_STEPS))
        return self.save_today_log(record)

    def update_notes(self, notes: str) -> DayRecord:
        record = self.get_today_log()
        record.notes = notes or ""
        return self.save_today_log(record)

    def complete_day(self) -> DayRecord:
        """Check every required task at once."""
        record = self.get_today_log()
        for task_id in REQUIRED_TASK_IDS:
            record.checks[task_id] = True
        return self.save_today_log(record)

    def start_over(self) -> Program | None:
        """Abandon the current attempt and begin again at day 1."""
        program = None
        if self.connected:
            result = self.manager.start_over(self.owner_id)
            if result.ok:
                program = result.value
            else:
                self._fallback("start_over", result.error)
        self.local.reset_day(self.today())
        self._fire("on_start_over", {"program": program.to_dict() if program else None})
        return program

    def reset_today(self) -> None:
        """Clear today's record from the local cache."""
        self.local.reset_day(self.today())

    def update_settings(self, water_goal: int, steps_goal: int) -> bool:
        result = self.local.update_settings(water_goal, steps_goal)
        if not result.ok:
            logger.warning("Settings not saved: %s", result.error)
        return result.ok
