"""Tests for forge/service.py — the adapter the UI talks to."""

import json

import yaml
from conftest import complete_record

from forge.catalog import REQUIRED_TASK_IDS
from forge.local_store import LocalCache
from forge.models import DayRecord
from forge.remote_store import RemoteStore
from forge.service import MAX_STEPS, MAX_WATER_OZ, ForgeService

TODAY = "2026-02-11"


def _broken_remote(tmp_path):
    # Parent directory does not exist, so every connection fails.
    return RemoteStore.from_url(f"sqlite:///{tmp_path / 'missing' / 'forge.db'}")


# ── Modes ─────────────────────────────────────────────────────


def test_modes(offline_service, service, local, remote, clock):
    assert offline_service.mode == "offline"
    assert service.mode == "connected"
    # A remote without an owner is still offline.
    assert ForgeService(local, remote=remote, clock=clock).mode == "offline"


def test_today_uses_cutoff(offline_service, clock):
    assert offline_service.today() == TODAY
    clock.advance(hours=14, minutes=59)  # 02:59 next morning
    assert offline_service.today() == TODAY
    clock.advance(minutes=1)
    assert offline_service.today() == "2026-02-12"


# ── Offline ───────────────────────────────────────────────────


def test_offline_toggle_writes_local(offline_service, local):
    record = offline_service.toggle_task("meal1")
    assert record.checks["meal1"] is True
    assert local.get_day(TODAY).checks == {"meal1": True}

    offline_service.toggle_task("meal1")
    assert local.get_day(TODAY).checks == {"meal1": False}


def test_offline_has_no_program(offline_service):
    assert offline_service.get_active_program() is None
    assert offline_service.start_over() is None


def test_offline_stats_use_local_streak(offline_service, local, clock):
    local.save_day("2026-02-10", complete_record(), clock())
    offline_service.complete_day()
    stats = offline_service.get_program_stats()
    assert stats.current_day == 1
    assert stats.total_resets == 0
    assert stats.longest_streak == 2


def test_empty_day_is_blank(offline_service):
    record = offline_service.get_today_log()
    assert record.checks == {}
    assert record.completed_at is None


# ── Connected ─────────────────────────────────────────────────


def test_full_day_advances_program(service, local):
    program = service.get_active_program()
    assert program.current_day == 1

    for task_id in REQUIRED_TASK_IDS[:9]:
        service.toggle_task(task_id)
    snap = service.snapshot()
    assert snap["progress"] == 50.0
    assert snap["complete"] is False
    assert snap["streak"] == 0

    for task_id in REQUIRED_TASK_IDS[9:]:
        service.toggle_task(task_id)
    snap = service.snapshot()
    assert snap["progress"] == 100.0
    assert snap["complete"] is True
    assert snap["streak"] == 1
    assert snap["program"]["currentDay"] == 2
    assert snap["record"]["completedAt"]
    assert local.get_day(TODAY).completed_at


def test_rechecking_does_not_advance_twice(service):
    service.complete_day()
    service.toggle_task("meal1")
    service.toggle_task("meal1")
    assert service.get_active_program().current_day == 2


def test_completed_at_survives_uncheck(service, local):
    stamped = service.complete_day().completed_at
    assert stamped
    service.toggle_task("meal1")
    assert local.get_day(TODAY).completed_at == stamped


def test_remote_row_holds_checks(service, remote):
    service.toggle_task("hydrate_morning")
    program = service.get_active_program()
    stored = remote.get_daily_log(program.id, TODAY).value
    assert stored.checks == {"hydrate_morning": True}
    assert stored.day_number == 1
    assert stored.program_id == program.id


def test_local_progress_seeds_new_remote_row(local, remote, clock):
    # Logged while offline, then signed in the same day.
    local.save_day(TODAY, DayRecord(checks={"meal1": True}), clock())
    service = ForgeService(local, remote=remote, owner_id="user-1", clock=clock)
    record = service.get_today_log()
    assert record.checks == {"meal1": True}
    assert record.program_id is not None


def test_local_tallies_merge_into_remote_view(service):
    service.add_water(32)
    service.add_steps(4000)
    record = service.get_today_log()
    assert record.water_oz == 32
    assert record.steps == 4000


def test_day_finished_offline_advances_on_sync(local, remote, clock):
    ForgeService(local, clock=clock).complete_day()

    service = ForgeService(local, remote=remote, owner_id="user-1", clock=clock)
    assert service.get_today_log().checks == {task_id: True for task_id in REQUIRED_TASK_IDS}
    service.update_notes("synced")
    assert service.get_active_program().current_day == 2
    assert service.snapshot()["program"]["currentDay"] == 2


def test_checks_made_during_outage_survive_recovery(tmp_path, service, local, remote, clock):
    service.toggle_task("meal1")
    offline = ForgeService(local, remote=_broken_remote(tmp_path), owner_id="user-1", clock=clock)
    offline.toggle_task("meal2")

    service.update_notes("back online")
    assert local.get_day(TODAY).checks == {"meal1": True, "meal2": True}
    program = service.get_active_program()
    assert remote.get_daily_log(program.id, TODAY).value.checks == {"meal1": True, "meal2": True}


def test_outage_completion_advances_after_recovery(tmp_path, service, local, clock):
    service.toggle_task("meal1")
    offline = ForgeService(local, remote=_broken_remote(tmp_path), owner_id="user-1", clock=clock)
    offline.complete_day()

    service.update_notes("back online")
    assert service.get_active_program().current_day == 2


def test_next_day_continues_program(service, clock):
    service.complete_day()
    first = service.get_active_program()
    clock.advance(days=1)
    program = service.get_active_program()
    assert program.id == first.id
    assert program.current_day == 2
    assert service.get_today_log().day_number == 2


def test_missed_day_starts_new_program(service, clock):
    first = service.get_active_program()
    service.toggle_task("meal1")
    clock.advance(days=1)
    program = service.get_active_program()
    assert program.id != first.id
    assert program.current_day == 1
    assert program.reset_count == 1
    assert service.get_program_stats().total_resets == 1


def test_start_over_connected(service, local):
    first = service.get_active_program()
    service.toggle_task("meal1")
    program = service.start_over()
    assert program.id != first.id
    assert program.reset_count == 1
    assert local.get_day(TODAY) is None
    assert service.get_active_program().id == program.id


def test_stats_connected(service):
    service.complete_day()
    stats = service.get_program_stats()
    assert stats.current_day == 2
    assert stats.total_resets == 0
    assert stats.longest_streak == 2


# ── Remote failures ───────────────────────────────────────────


def test_remote_outage_still_saves_locally(tmp_path, local, clock):
    service = ForgeService(local, remote=_broken_remote(tmp_path), owner_id="user-1", clock=clock)
    assert service.get_active_program() is None

    record = service.toggle_task("train_fasted")
    assert record.checks["train_fasted"] is True
    assert local.get_day(TODAY).checks == {"train_fasted": True}
    assert service.get_today_log().checks == {"train_fasted": True}


def test_remote_outage_stats_fall_back(tmp_path, local, clock):
    service = ForgeService(local, remote=_broken_remote(tmp_path), owner_id="user-1", clock=clock)
    service.complete_day()
    stats = service.get_program_stats()
    assert stats.current_day == 1
    assert stats.longest_streak == 1


def test_remote_outage_start_over_clears_today(tmp_path, local, clock):
    service = ForgeService(local, remote=_broken_remote(tmp_path), owner_id="user-1", clock=clock)
    service.toggle_task("meal1")
    assert service.start_over() is None
    assert local.get_day(TODAY) is None


# ── Inputs ────────────────────────────────────────────────────


def test_unknown_task_is_ignored(offline_service, local):
    assert offline_service.toggle_task("not_a_task") is None
    assert local.get_day(TODAY) is None


def test_custom_text(offline_service, local):
    record = offline_service.set_custom_task("maker_sprint", "  Ship the release  ")
    assert record.custom_tasks == {"maker_sprint": "Ship the release"}
    record = offline_service.set_custom_task("maker_sprint", "")
    assert record.custom_tasks == {}
    assert local.get_day(TODAY).custom_tasks == {}


def test_custom_text_rejected_for_fitness_and_fixed_tasks(offline_service):
    assert offline_service.set_custom_task("train_fasted", "Yoga") is None
    assert offline_service.set_custom_task("meal1", "Pizza") is None
    assert offline_service.get_today_log().custom_tasks == {}


def test_custom_text_does_not_change_completion(offline_service):
    offline_service.set_custom_task("admin_block", "Taxes")
    assert offline_service.snapshot()["progress"] == 0.0


def test_steps_actual(offline_service):
    assert offline_service.set_steps_actual(-1) is None
    assert offline_service.set_steps_actual(8500).steps_actual == 8500


def test_water_and_steps_are_capped(offline_service):
    assert offline_service.add_water(500).water_oz == MAX_WATER_OZ
    assert offline_service.add_water(-1000).water_oz == 0
    assert offline_service.add_steps(60000).steps == MAX_STEPS


def test_notes(offline_service, local):
    offline_service.update_notes("Felt strong")
    assert local.get_day(TODAY).notes == "Felt strong"


def test_reset_today(offline_service, local):
    offline_service.complete_day()
    offline_service.reset_today()
    assert local.get_day(TODAY) is None
    assert local.data().streak == 0


def test_settings(offline_service):
    assert offline_service.get_settings() == {"waterGoal": 128, "stepsGoal": 10000}
    assert offline_service.update_settings(100, 12000)
    assert offline_service.get_settings() == {"waterGoal": 100, "stepsGoal": 12000}
    assert not offline_service.update_settings(0, 12000)
    assert offline_service.get_settings()["waterGoal"] == 100


# ── Snapshot & hooks ──────────────────────────────────────────


def test_snapshot_shape(offline_service):
    offline_service.toggle_task("hydrate_morning")
    snap = offline_service.snapshot()
    assert snap["mode"] == "offline"
    assert snap["day"] == TODAY
    assert snap["program"] is None
    assert snap["message"]
    awakening = next(p for p in snap["phases"] if p["id"] == "awakening")
    assert awakening == {"id": "awakening", "done": 1, "total": 3, "message": None}
    assert snap["banner"] is None
    assert "The Vessel is empty. Fill it." in snap["nudges"]
    assert snap["goals"] == {"waterGoal": 128, "stepsGoal": 10000}


def test_day_complete_hook_fires_once(workspace, clock):
    (workspace / "hooks.yaml").write_text(
        yaml.dump({"on_day_complete": ["cat >> day_complete.jsonl"]}), encoding="utf-8"
    )
    service = ForgeService(LocalCache(workspace / "forge_v1_daily.json"), clock=clock, hooks_root=workspace)
    service.complete_day()
    service.toggle_task("electrolytes")

    lines = (workspace / "day_complete.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["event"] == "on_day_complete"
    assert payload["day"] == TODAY


def test_program_failed_hook(workspace, local, remote, clock):
    (workspace / "hooks.yaml").write_text(
        yaml.dump({"on_program_failed": ["cat > failed.json"]}), encoding="utf-8"
    )
    service = ForgeService(local, remote=remote, owner_id="user-1", clock=clock, hooks_root=workspace)
    first = service.get_active_program()
    clock.advance(days=1)
    service.get_active_program()

    payload = json.loads((workspace / "failed.json").read_text(encoding="utf-8"))
    assert payload["event"] == "on_program_failed"
    assert payload["program"]["id"] == first.id
    assert payload["owner"] == "user-1"
