"""Shared test fixtures for Forge tests."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from forge.catalog import REQUIRED_TASK_IDS
from forge.local_store import LocalCache
from forge.models import DayRecord
from forge.remote_store import RemoteStore
from forge.service import ForgeService


class FakeClock:
    """Callable clock that tests move forward by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with a UTC profile."""
    root = tmp_path / "workspace"
    root.mkdir(parents=True)
    profile = {"timezone": "UTC"}
    (root / "profile.yaml").write_text(
        yaml.dump(profile, default_flow_style=False), encoding="utf-8"
    )

    old_root = os.environ.get("FORGE_ROOT")
    old_url = os.environ.pop("FORGE_DATABASE_URL", None)
    os.environ["FORGE_ROOT"] = str(root)
    yield root
    if old_root is None:
        os.environ.pop("FORGE_ROOT", None)
    else:
        os.environ["FORGE_ROOT"] = old_root
    if old_url is not None:
        os.environ["FORGE_DATABASE_URL"] = old_url


@pytest.fixture
def clock() -> FakeClock:
    # Midday on 2026-02-11 (UTC), well clear of the 03:00 cutoff.
    return FakeClock(datetime(2026, 2, 11, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def local(workspace: Path) -> LocalCache:
    return LocalCache(workspace / "forge_v1_daily.json")


@pytest.fixture
def remote() -> RemoteStore:
    return RemoteStore.from_url("sqlite://")


@pytest.fixture
def offline_service(local: LocalCache, clock: FakeClock) -> ForgeService:
    return ForgeService(local, clock=clock)


@pytest.fixture
def service(local: LocalCache, remote: RemoteStore, clock: FakeClock) -> ForgeService:
    return ForgeService(local, remote=remote, owner_id="user-1", clock=clock)


def complete_record(**kwargs) -> DayRecord:
    """A day record with every required task checked."""
    return DayRecord(checks={task_id: True for task_id in REQUIRED_TASK_IDS}, **kwargs)
