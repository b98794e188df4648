"""Lifecycle hooks for Forge.

Shell commands configured in <root>/hooks.yaml run when a program changes
state or a day is completed. Each hook receives the event context as JSON
on stdin.

    on_day_complete:
      - notify-send "The Forge holds"
    on_program_failed:
      - command: ./scripts/log_reset.sh
        timeout: 10
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from forge.fileio import read_yaml
from forge.workspace import hooks_config_path, workspace_root

logger = logging.getLogger(__name__)

VALID_HOOK_POINTS = {
    "on_day_complete",
    "on_program_failed",
    "on_program_complete",
    "on_start_over",
}

DEFAULT_TIMEOUT = 30


def load_hooks_config(root: Path | None = None) -> dict[str, Any]:
    if root is None:
        root = workspace_root()
    try:
        return read_yaml(hooks_config_path(root))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable hooks config: %s", e)
        return {}


def run_hooks(
    hook_point: str,
    context: dict[str, Any],
    root: Path | None = None,
) -> list[dict[str, Any]]:
    """Run all hooks registered for *hook_point*.

    Returns one result per hook with exit code and captured output. A hook
    that fails or times out is reported in its result, never raised.
    """
    if hook_point not in VALID_HOOK_POINTS:
        return []
    if root is None:
        root = workspace_root()

    hooks = load_hooks_config(root).get(hook_point, [])
    if not hooks or not isinstance(hooks, list):
        return []

    results = []
    payload = json.dumps({"event": hook_point, **context}, ensure_ascii=False, default=str)

    for hook in hooks:
        if isinstance(hook, str):
            command, timeout = hook, DEFAULT_TIMEOUT
        elif isinstance(hook, dict):
            command = hook.get("command", "")
            timeout = hook.get("timeout", DEFAULT_TIMEOUT)
        else:
            continue
        if not command:
            continue

        result: dict[str, Any] = {"command": command, "hook_point": hook_point}
        try:
            proc = subprocess.run(
                command,
                shell=True,
                input=payload,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=str(root),
            )
            result["exit_code"] = proc.returncode
            result["stdout"] = proc.stdout[:4096]
            result["stderr"] = proc.stderr[:4096]
        except subprocess.TimeoutExpired:
            result["exit_code"] = -1
            result["error"] = f"Hook timed out after {timeout}s"
        except OSError as e:
            result["exit_code"] = -1
            result["error"] = str(e)
        if result["exit_code"] != 0:
            logger.warning("Hook %r for %s exited with %s", command, hook_point, result["exit_code"])
        results.append(result)

    return results
