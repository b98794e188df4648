"""Workspace root, timezone, configuration and path helpers for Forge."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from forge.fileio import read_yaml

logger = logging.getLogger(__name__)

STORAGE_KEY = "forge_v1_daily"


def workspace_root() -> Path:
    """Get the workspace root directory (holds profile.yaml and the local cache)."""
    return Path(
        os.environ.get("FORGE_ROOT", str(Path.home() / "forge"))
    ).expanduser().resolve()


def profile_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "profile.yaml"


def local_cache_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / f"{STORAGE_KEY}.json"


def hooks_config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "hooks.yaml"


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Get the timezone from profile.yaml, defaulting to UTC."""
    try:
        profile = read_yaml(profile_path(root))
    except (OSError, ValueError) as e:
        logger.warning("Unreadable profile, using UTC: %s", e)
        return ZoneInfo("UTC")
    name = profile.get("timezone")
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r in profile, using UTC", name)
        return ZoneInfo("UTC")


def get_database_url(root: Path | None = None) -> str | None:
    """Remote store URL: FORGE_DATABASE_URL, else profile.yaml's database_url.

    None means there is no remote store and Forge runs from the local cache.
    """
    url = os.environ.get("FORGE_DATABASE_URL", "").strip()
    if url:
        return url
    try:
        profile = read_yaml(profile_path(root))
    except (OSError, ValueError):
        return None
    url = str(profile.get("database_url") or "").strip()
    return url or None


def now_local(root: Path | None = None) -> datetime:
    """Get current datetime in the workspace timezone."""
    return datetime.now(get_user_timezone(root))
