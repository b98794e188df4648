"""Completion and progress evaluation for a day record.

Every required task weighs the same; optional tasks, custom text and the
water/step tallies never affect either result.
"""

from __future__ import annotations

from forge.catalog import REQUIRED_TASK_IDS, Phase
from forge.models import DayRecord


def is_day_complete(record: DayRecord) -> bool:
    """True iff every required task id is checked."""
    return all(record.checks.get(task_id) is True for task_id in REQUIRED_TASK_IDS)


def calculate_progress(record: DayRecord) -> float:
    """Percentage (0-100) of required tasks checked."""
    if not REQUIRED_TASK_IDS:
        return 100.0
    done = sum(1 for task_id in REQUIRED_TASK_IDS if record.checks.get(task_id) is True)
    return done * 100.0 / len(REQUIRED_TASK_IDS)


def phase_progress(record: DayRecord, phase: Phase) -> tuple[int, int]:
    """(done, total) over the phase's required tasks."""
    required = [t.id for t in phase.tasks if t.required]
    done = sum(1 for task_id in required if record.checks.get(task_id) is True)
    return done, len(required)
