# ============================================================================
# BUILD NUMBER SYNCHRONIZER
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Build numbering across a module set and its modules
# PURPOSE: Keep the set counter ahead of every module counter
# CREATED: 19 OCT 2026
# ============================================================================
"""
Build Number Synchronizer

The module set's next build number must never be lower than the next build
number of any of its modules, so a build of the set always gets a number no
module has used yet. The counter is raised (never lowered) at the start of
every build attempt and persisted before any number is handed out.

All operations run inside the lock service's exclusion zone for the module
set. A failed write restores the in-memory counter and surfaces as
BuildNumberSyncError, which aborts the attempt before any child exists.
"""

import logging
from typing import Optional, Protocol, Sequence, Union

from core.errors import BuildNumberSyncError
from core.logging import log_checkpoint
from core.models import Module, ModuleSet
from infrastructure.locking import LockService

logger = logging.getLogger(__name__)


class BuildNumberStore(Protocol):
    """Persists one counter. Raises OSError on failure."""

    def save_next_build_number(
        self,
        module_set_name: str,
        target: Union[Module, ModuleSet],
    ) -> None:
        ...


class BuildNumberSynchronizer:
    """
    Assigns build numbers to module sets and their modules.

    Usage:
        sync = BuildNumberSynchronizer(store, LockService())
        number = sync.assign_build_number(module_set, registry.modules())
    """

    def __init__(self, store: BuildNumberStore, lock_service: Optional[LockService] = None):
        self.store = store
        self.lock_service = lock_service or LockService()

    def synchronize(self, module_set: ModuleSet, modules: Sequence[Module]) -> int:
        """
        Raise the set's counter to the highest module counter.

        Idempotent: a second call with no build in between persists nothing
        and returns the same number.

        Returns:
            The module set's next build number after synchronization

        Raises:
            BuildNumberSyncError: the raised counter could not be persisted
        """
        with self.lock_service.build_lock(module_set.name):
            highest = max((m.next_build_number for m in modules), default=1)
            if highest > module_set.next_build_number:
                previous = module_set.next_build_number
                module_set.next_build_number = highest
                self._persist(module_set, module_set, previous)
                logger.info(
                    f"Raised next build number of {module_set.name} "
                    f"from {previous} to {highest}"
                )
            return module_set.next_build_number

    def assign_build_number(self, module_set: ModuleSet, modules: Sequence[Module]) -> int:
        """
        Synchronize, then take and consume the set's next build number.

        Raises:
            BuildNumberSyncError: a counter could not be persisted
        """
        with self.lock_service.build_lock(module_set.name):
            number = self.synchronize(module_set, modules)
            module_set.next_build_number = number + 1
            self._persist(module_set, module_set, number)

        log_checkpoint(
            "build_number_assigned",
            {"module_set": module_set.name, "build_number": number},
            logger=logger,
        )
        return number

    def assign_module_build_number(
        self,
        module_set: ModuleSet,
        module: Module,
        parent_number: int,
    ) -> int:
        """
        Align a child build with its parent's number and consume it.

        The child gets ``max(module.next_build_number, parent_number)``; its
        counter then moves past that number.

        Raises:
            BuildNumberSyncError: the module counter could not be persisted
        """
        with self.lock_service.build_lock(module_set.name):
            previous = module.next_build_number
            number = max(previous, parent_number)
            module.next_build_number = number + 1
            self._persist(module_set, module, previous)
        return number

    def _persist(
        self,
        module_set: ModuleSet,
        target: Union[Module, ModuleSet],
        previous: int,
    ) -> None:
        try:
            self.store.save_next_build_number(module_set.name, target)
        except OSError as e:
            target.next_build_number = previous
            name = module_set.name if isinstance(target, ModuleSet) else target.key
            logger.error(f"Failed to persist next build number of {name}: {e}")
            raise BuildNumberSyncError(name, e) from e


__all__ = ["BuildNumberSynchronizer", "BuildNumberStore"]
