from __future__ import annotations

import logging
import os
import secrets
from pathlib import Path
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.exc import SQLAlchemyError

from forge import (
    ForgeService,
    LocalCache,
    RemoteStore,
    catalog_dict,
    get_database_url,
    get_user_timezone,
    local_cache_path,
    workspace_root,
)

logger = logging.getLogger(__name__)

GUEST = "guest"

app = FastAPI(title="Forge", version="0.1.0")

security = HTTPBasic(auto_error=False)


# ── Auth ──────────────────────────────────────────────────────


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("FORGE_USERNAME", "")
    expected_password = os.environ.get("FORGE_PASSWORD", "")

    if credentials is None:
        if not expected_username or not expected_password:
            return GUEST
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    if not expected_username or not expected_password:
        return GUEST

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Service wiring ────────────────────────────────────────────


def _remote_store(root: Path) -> RemoteStore | None:
    """Remote store for the configured URL, built once per URL."""
    url = get_database_url(root)
    if not url:
        return None
    if getattr(app.state, "remote_url", None) != url:
        try:
            app.state.remote_store = RemoteStore.from_url(url)
        except (SQLAlchemyError, ImportError) as e:
            logger.warning("Remote store %s unavailable, running offline: %s", url, e)
            app.state.remote_store = None
        app.state.remote_url = url
    return app.state.remote_store


def get_service(username: str = Depends(get_current_user)) -> ForgeService:
    """A guest has no session, so only the local cache is used."""
    root = workspace_root()
    return ForgeService(
        LocalCache(local_cache_path(root)),
        remote=_remote_store(root),
        owner_id=None if username == GUEST else username,
        tz=get_user_timezone(root),
        hooks_root=root,
    )


def _int_field(payload: dict[str, Any], name: str) -> int:
    try:
        return int(payload[name])
    except KeyError:
        raise HTTPException(status_code=400, detail=f"Missing {name}")
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{name} must be an integer")


def _day(service: ForgeService) -> dict[str, Any]:
    return {"ok": True, **service.snapshot()}


# ── Endpoints ─────────────────────────────────────────────────


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/catalog")
def api_catalog() -> dict[str, Any]:
    return catalog_dict()


@app.get("/api/today")
def api_today(service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    """Full tracker state; the client polls this and re-reads on focus."""
    return _day(service)


@app.post("/api/tasks/{task_id}/toggle")
def api_toggle_task(task_id: str, service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    if service.toggle_task(task_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown task: {task_id}")
    return _day(service)


@app.put("/api/tasks/{task_id}/custom")
def api_set_custom_task(
    task_id: str,
    payload: dict[str, Any] = Body(...),
    service: ForgeService = Depends(get_service),
) -> dict[str, Any]:
    description = str(payload.get("description", "") or "")
    if service.set_custom_task(task_id, description) is None:
        raise HTTPException(status_code=400, detail=f"Task cannot be customized: {task_id}")
    return _day(service)


@app.post("/api/steps")
def api_set_steps_actual(payload: dict[str, Any] = Body(...), service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    if service.set_steps_actual(_int_field(payload, "steps")) is None:
        raise HTTPException(status_code=400, detail="steps must not be negative")
    return _day(service)


@app.post("/api/steps/add")
def api_add_steps(payload: dict[str, Any] = Body(...), service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    service.add_steps(_int_field(payload, "steps"))
    return _day(service)


@app.post("/api/water")
def api_add_water(payload: dict[str, Any] = Body(...), service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    service.add_water(_int_field(payload, "ounces"))
    return _day(service)


@app.put("/api/notes")
def api_update_notes(payload: dict[str, Any] = Body(...), service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    service.update_notes(str(payload.get("notes", "") or ""))
    return _day(service)


@app.post("/api/complete")
def api_complete_day(service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    service.complete_day()
    return _day(service)


@app.post("/api/start_over")
def api_start_over(service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    service.start_over()
    return _day(service)


@app.post("/api/reset_today")
def api_reset_today(service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    service.reset_today()
    return _day(service)


@app.get("/api/stats")
def api_stats(service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    return service.get_program_stats().to_dict()


@app.get("/api/settings")
def api_get_settings(service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    return service.get_settings()


@app.put("/api/settings")
def api_update_settings(payload: dict[str, Any] = Body(...), service: ForgeService = Depends(get_service)) -> dict[str, Any]:
    water_goal = _int_field(payload, "waterGoal")
    steps_goal = _int_field(payload, "stepsGoal")
    if not service.update_settings(water_goal, steps_goal):
        raise HTTPException(status_code=400, detail="Goals must be positive")
    return {"ok": True, **service.get_settings()}
