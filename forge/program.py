"""90-day program lifecycle: active program lookup, resets, day advance, stats.

A program is one attempt at the challenge. It is active until it either
fails (a day was left incomplete past the cutoff, or the user started over)
or completes (day 90 finished). Each owner has at most one active program.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable
from zoneinfo import ZoneInfo

from forge.daykey import previous_day_key, resolve_day_key
from forge.errors import StoreResult
from forge.models import PROGRAM_LENGTH, Program, ProgramStats
from forge.progress import is_day_complete
from forge.remote_store import RemoteStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_reset_count(prior: Program | None) -> int:
    """Lifetime reset counter for the program that follows *prior*."""
    if prior is None:
        return 0
    return prior.reset_count + (1 if prior.failed_at is not None else 0)


def latest_program(programs: list[Program]) -> Program | None:
    """Most recently started program; reset_count breaks same-instant ties."""
    return max(
        programs,
        key=lambda p: (p.started_at or datetime.min.replace(tzinfo=timezone.utc), p.reset_count),
        default=None,
    )


def program_stats(programs: list[Program]) -> ProgramStats:
    active = next((p for p in programs if p.is_active), None)
    longest = 0
    for p in programs:
        longest = max(longest, PROGRAM_LENGTH if p.completed_at is not None else p.current_day)
    return ProgramStats(
        current_day=active.current_day if active else 1,
        total_resets=sum(1 for p in programs if p.failed_at is not None),
        longest_streak=longest,
    )


class ProgramManager:
    def __init__(
        self,
        remote: RemoteStore,
        tz: ZoneInfo | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_event: Callable[[str, dict[str, Any]], None] | None = None,
    ):
        self.remote = remote
        self.tz = tz or ZoneInfo("UTC")
        self.clock = clock
        self.on_event = on_event

    def _emit(self, event: str, program: Program) -> None:
        if self.on_event is not None:
            self.on_event(event, {"program": program.to_dict()})

    def today(self) -> str:
        return resolve_day_key(self.clock(), self.tz)

    def get_active_program(self, owner_id: str) -> StoreResult[Program]:
        """Return the owner's active program, creating one if needed.

        An existing program goes through the reset check first; if it fails
        there, a fresh program takes its place.
        """
        found = self.remote.find_active_program(owner_id)
        if not found.ok:
            return found
        program = found.value
        if program is not None:
            reset = self.check_for_reset(program)
            if not reset.ok:
                return StoreResult(error=reset.error)
            if not reset.value:
                return StoreResult.success(program)
            return self._create(owner_id, program)

        history = self.remote.list_programs(owner_id)
        if not history.ok:
            return StoreResult(error=history.error)
        return self._create(owner_id, latest_program(history.value or []))

    def check_for_reset(self, program: Program) -> StoreResult[bool]:
        """Fail *program* if yesterday was left incomplete.

        Yesterday counts as incomplete when its log exists without every
        required task checked, or when the program was already running that
        day and no log was written at all. Value is True when the program
        was failed by this call.
        """
        if not program.is_active:
            return StoreResult.success(False)
        yesterday = previous_day_key(self.today())
        started = resolve_day_key(program.started_at, self.tz) if program.started_at else yesterday
        log = self.remote.get_daily_log(program.id, yesterday)
        if not log.ok:
            return StoreResult(error=log.error)
        if log.value is None:
            missed = started <= yesterday
        else:
            missed = not is_day_complete(log.value)
        if not missed:
            return StoreResult.success(False)

        now = self.clock()
        updated = self.remote.update_program(program.id, failed_at=now)
        if not updated.ok:
            return StoreResult(error=updated.error)
        logger.info("Program %s failed on day %s (missed %s)", program.id, program.current_day, yesterday)
        program.failed_at = now
        self._emit("on_program_failed", program)
        return StoreResult.success(True)

    def record_day_completion(self, program: Program) -> StoreResult[Program]:
        """Advance the program after its current day was completed."""
        if not program.is_active:
            return StoreResult.success(program)
        if program.current_day < PROGRAM_LENGTH:
            return self.remote.update_program(program.id, current_day=program.current_day + 1)
        completed = self.remote.update_program(program.id, completed_at=self.clock())
        if completed.ok:
            logger.info("Program %s completed all %s days", program.id, PROGRAM_LENGTH)
            self._emit("on_program_complete", completed.value)
        return completed

    def start_over(self, owner_id: str) -> StoreResult[Program]:
        """Fail the active program, if any, and begin again at day 1."""
        found = self.remote.find_active_program(owner_id)
        if not found.ok:
            return found
        current = found.value
        if current is not None:
            failed = self.remote.update_program(current.id, failed_at=self.clock())
            if not failed.ok:
                return failed
            current = failed.value
            logger.info("Program %s abandoned on day %s", current.id, current.current_day)
        else:
            history = self.remote.list_programs(owner_id)
            if not history.ok:
                return StoreResult(error=history.error)
            current = latest_program(history.value or [])
        reset_count = (current.reset_count + 1) if current is not None else 1
        return self._insert(owner_id, reset_count)

    def get_stats(self, owner_id: str) -> StoreResult[ProgramStats]:
        programs = self.remote.list_programs(owner_id)
        if not programs.ok:
            return StoreResult(error=programs.error)
        return StoreResult.success(program_stats(programs.value or []))

    def _create(self, owner_id: str, prior: Program | None) -> StoreResult[Program]:
        return self._insert(owner_id, next_reset_count(prior))

    def _insert(self, owner_id: str, reset_count: int) -> StoreResult[Program]:
        created = self.remote.insert_program(owner_id, self.clock(), reset_count)
        if created.ok:
            logger.info("Started program %s for %s (resets so far: %s)", created.value.id, owner_id, reset_count)
        return created
