# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import BuildMode, BuildResult, ExecutionStatus, ModuleName, ModuleStatus
from core.errors import (
    BuildBlocked,
    BuildNumberSyncError,
    CycleDetectedError,
    DispatchSubmissionError,
    DuplicateModuleError,
    ModuleSetError,
    NoModulesSelected,
    PersistenceError,
)
from core.models import (
    BuildAttempt,
    ChangeSet,
    Module,
    ModuleDescriptor,
    ModuleSet,
    Selection,
)

__all__ = [
    # Enums / identity
    "BuildMode",
    "BuildResult",
    "ExecutionStatus",
    "ModuleName",
    "ModuleStatus",
    # Errors
    "BuildBlocked",
    "BuildNumberSyncError",
    "CycleDetectedError",
    "DispatchSubmissionError",
    "DuplicateModuleError",
    "ModuleSetError",
    "NoModulesSelected",
    "PersistenceError",
    # Models
    "BuildAttempt",
    "ChangeSet",
    "Module",
    "ModuleDescriptor",
    "ModuleSet",
    "Selection",
]
