"""Forge core library — day lifecycle engine and persistence.

Public API re-exports for convenient imports:
    from forge import ForgeService, LocalCache, resolve_day_key, ...
"""

# Workspace & paths
from forge.workspace import (
    workspace_root,
    get_user_timezone,
    get_database_url,
    now_local,
    profile_path,
    local_cache_path,
    hooks_config_path,
)

# Day keys
from forge.daykey import (
    CUTOFF_HOUR,
    resolve_day_key,
    previous_day_key,
    day_key_offset,
    today_key,
)

# Catalog
from forge.catalog import (
    Task,
    Phase,
    PHASES,
    ALL_TASKS,
    REQUIRED_TASK_IDS,
    OPTIONAL_TASK_IDS,
    find_task,
    catalog_dict,
)

# Models
from forge.models import (
    PROGRAM_LENGTH,
    DayRecord,
    ForgeData,
    Program,
    ProgramStats,
)

# Evaluation
from forge.progress import is_day_complete, calculate_progress, phase_progress
from forge.streak import compute_streak
from forge.messages import banner_message, nudges, phase_message, status_message

# Persistence
from forge.errors import ErrorKind, PersistenceError, StoreResult
from forge.local_store import LocalCache
from forge.remote_store import RemoteStore
from forge.program import ProgramManager, program_stats
from forge.service import ForgeService
