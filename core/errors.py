# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Foundation - Domain exceptions
# PURPOSE: Structural, dispatch and persistence errors for module set builds
# CREATED: 19 OCT 2026
# ============================================================================
"""
Domain exception hierarchy for the module set orchestrator.

Structural errors (duplicate names, cycles, build number synchronization)
abort a whole build cycle before any child is submitted. Submission errors
are isolated to one module. NoModulesSelected is a signal, not a failure.

Each error carries an HTTP status code so the API layer can map it without
string matching.
"""

from typing import Iterable, List, Optional


class ModuleSetError(Exception):
    """Base for all module set orchestration errors."""

    status_code: int = 500

    def __init__(self, message: str = "Module set error"):
        super().__init__(message)
        self.message = message


class DuplicateModuleError(ModuleSetError):
    """A module with the same name is already registered (409)."""

    status_code = 409

    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f"Module '{module_name}' is already registered")


class CycleDetectedError(ModuleSetError):
    """Module dependencies form a cycle; no valid build order exists (409)."""

    status_code = 409

    def __init__(self, modules: Iterable[str]):
        self.modules: List[str] = sorted(modules)
        super().__init__(
            f"Cycle detected involving modules: {', '.join(self.modules)}"
        )


class BuildNumberSyncError(ModuleSetError):
    """Raised counter could not be persisted; the attempt must abort (500)."""

    status_code = 500

    def __init__(self, target: str, cause: Optional[BaseException] = None):
        self.target = target
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to persist next build number for '{target}'{detail}")


class DispatchSubmissionError(ModuleSetError):
    """The execution engine rejected a module build request (502)."""

    status_code = 502

    def __init__(self, module: str, reason: str):
        self.module = module
        self.reason = reason
        super().__init__(f"Failed to submit build of module '{module}': {reason}")


class BuildBlocked(ModuleSetError):
    """
    A build of the module set cannot start now (409).

    Carries the blockage cause; nothing is dispatched and no build number
    is consumed.
    """

    status_code = 409

    def __init__(self, module_set: str, cause):
        self.module_set = module_set
        self.cause = cause
        super().__init__(f"Build of '{module_set}' is blocked: {cause}")


class PersistenceError(OSError):
    """
    Storage backend failure.

    Subclasses OSError so callers treat database and filesystem failures
    the same way.
    """


class NoModulesSelected(Exception):
    """
    Signal: incremental selection found nothing to build.

    Not a failure. The caller skips the build attempt entirely.
    """

    def __init__(self, module_set: str):
        self.module_set = module_set
        super().__init__(f"No modules of '{module_set}' need to be built")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ModuleSetError",
    "DuplicateModuleError",
    "CycleDetectedError",
    "BuildNumberSyncError",
    "DispatchSubmissionError",
    "BuildBlocked",
    "PersistenceError",
    "NoModulesSelected",
]
