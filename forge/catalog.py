"""Static task catalog: the six phases of the daily ritual.

Phases only group tasks for display. Completion is always evaluated over
the flat REQUIRED_TASK_IDS set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Task:
    id: str
    content: str
    required: bool
    phase_id: str
    allow_custom: bool = False  # display text may be replaced by the user
    is_fitness: bool = False  # required, never replaceable

    @property
    def customizable(self) -> bool:
        return self.allow_custom and not self.is_fitness

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "required": self.required,
            "phaseId": self.phase_id,
            "allowCustom": self.customizable,
            "isFitness": self.is_fitness,
        }


@dataclass(frozen=True)
class Phase:
    id: str
    title: str
    subtitle: str
    tasks: tuple[Task, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "tasks": [t.to_dict() for t in self.tasks],
        }


PHASES: tuple[Phase, ...] = (
    Phase("awakening", "Phase I — Awakening", "Wake → +2h", (
        Task("hydrate_morning", "Hydrate 16–20 oz water", True, "awakening", allow_custom=True),
        Task("train_fasted", "Fasted training 45–60 min", True, "awakening", is_fitness=True),
        Task("log_lifts", "Log 1–2 main lifts", True, "awakening", is_fitness=True),
        Task("electrolytes", "Electrolytes if needed", False, "awakening"),
    )),
    Phase("creation", "Phase II — Creation", "+2h → +4h", (
        Task("maker_sprint", "Maker sprint 90–120 min", True, "creation", allow_custom=True),
        Task("reset_walk", "Reset: coffee + 5–10 min walk", True, "creation", is_fitness=True),
    )),
    Phase("fasted_march", "Phase III — The Fasted March", "+4h → +7h", (
        Task("fast_only", "Stay fasted (water/coffee/tea only)", True, "fasted_march"),
        Task("shadow_journal", "Shadow says ___. My answer is ___.", False, "fasted_march"),
    )),
    Phase("breaking", "Phase IV — The Breaking", "+7h → +10h", (
        Task("meal1", "Meal 1: protein + carb + greens", True, "breaking"),
        Task("spice_medicine", "Spice-as-medicine", True, "breaking", allow_custom=True),
        Task("admin_block", "Admin/Execution 1–2h", True, "breaking", allow_custom=True),
    )),
    Phase("forgefire", "Phase V — The Forgefire", "+10h → +13h", (
        Task("meal2", "Meal 2: protein + carb + greens", True, "forgefire"),
        Task("family_block", "Family block (connection)", True, "forgefire", allow_custom=True),
        Task("solo_recharge", "Solo recharge 30–60 min", True, "forgefire", allow_custom=True),
    )),
    Phase("closing", "Phase VI — The Closing", "Final 2h pre-sleep", (
        Task("water_goal", "The Vessel: Complete 128oz water", True, "closing"),
        Task("steps_goal", "The March: Complete 10,000 steps", True, "closing"),
        Task("shadow_rule", "Shadow rule check", True, "closing", allow_custom=True),
        Task("daily_proof", "Daily proof (journal/photo)", True, "closing", allow_custom=True),
        Task("tomorrow_priority", "Write tomorrow's priority", True, "closing", allow_custom=True),
        Task("sleep_ritual", "Sleep ritual → 7h minimum", True, "closing"),
    )),
)

ALL_TASKS: tuple[Task, ...] = tuple(t for p in PHASES for t in p.tasks)
REQUIRED_TASK_IDS: tuple[str, ...] = tuple(t.id for t in ALL_TASKS if t.required)
OPTIONAL_TASK_IDS: tuple[str, ...] = tuple(t.id for t in ALL_TASKS if not t.required)

_BY_ID = {t.id: t for t in ALL_TASKS}


def find_task(task_id: str) -> Task | None:
    return _BY_ID.get(task_id)


def catalog_dict() -> dict[str, Any]:
    return {
        "phases": [p.to_dict() for p in PHASES],
        "required": list(REQUIRED_TASK_IDS),
        "optional": list(OPTIONAL_TASK_IDS),
    }
