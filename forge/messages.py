"""Status lines shown around the tracker: the header line, phase banners and nudges."""

from __future__ import annotations

from forge.catalog import Phase
from forge.models import DayRecord
from forge.progress import calculate_progress, is_day_complete, phase_progress

MESSAGES = {
    # empty
    "shadow_journal": "Your shadow waits. Will you answer?",
    "steps_low": "The March has not begun.",
    "water_low": "The Vessel is empty. Fill it.",
    "no_tasks_complete": "The Forge awaits your first strike.",
    # encouragement
    "phase_complete": "Phase Won.",
    "halfway": "Halfway through the ritual. Keep forging.",
    "almost_done": "The day bends to your will.",
    # completion
    "day_complete": "The Forge Holds. Victory is yours.",
    "streak_continue": "Another link in the chain. You remain unbroken.",
    "first_win": "Your first victory. The transformation begins.",
    # resistance
    "missed_task": "Resistance spotted. Will you answer?",
    "streak_warning": "Break now, and the Forge cools.",
    "low_progress": "The shadow tests you. Double down.",
}


def status_key(record: DayRecord, streak: int) -> str:
    if is_day_complete(record):
        if streak <= 1:
            return "first_win"
        return "streak_continue"
    progress = calculate_progress(record)
    if progress == 0:
        return "no_tasks_complete"
    if progress >= 75:
        return "almost_done"
    if progress >= 50:
        return "halfway"
    if progress >= 25:
        return "missed_task"
    return "low_progress"


def status_message(record: DayRecord, streak: int) -> str:
    return MESSAGES[status_key(record, streak)]


def banner_message(record: DayRecord) -> str | None:
    """Headline shown once every required task is checked."""
    return MESSAGES["day_complete"] if is_day_complete(record) else None


def phase_message(record: DayRecord, phase: Phase) -> str | None:
    done, total = phase_progress(record, phase)
    if total and done == total:
        return MESSAGES["phase_complete"]
    return None


def nudge_keys(record: DayRecord, streak: int) -> list[str]:
    """Reminders for an unfinished day, most urgent first."""
    if is_day_complete(record):
        return []
    keys = []
    if streak > 0:
        keys.append("streak_warning")
    if not record.checks.get("water_goal") and record.water_oz == 0:
        keys.append("water_low")
    if not record.checks.get("steps_goal") and record.steps == 0 and not record.steps_actual:
        keys.append("steps_low")
    if not record.checks.get("shadow_journal"):
        keys.append("shadow_journal")
    return keys


def nudges(record: DayRecord, streak: int) -> list[str]:
    return [MESSAGES[key] for key in nudge_keys(record, streak)]
