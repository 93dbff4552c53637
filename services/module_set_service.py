# ============================================================================
# MODULE SET SERVICE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Service - Public operations of one module set
# PURPOSE: Wire registry, numbering, selection, blockage and dispatch to
#          persistence, descriptor discovery and the execution engine
# CREATED: 19 OCT 2026
# ============================================================================
"""
Module Set Service

Facade over one module set:
- Load configuration, modules and counters from storage
- Sync modules from workspace descriptors
- Report module order, blockage and queue items
- Trigger, refresh, cancel and wait for build attempts
- Delete disabled modules

Dispatch decisions run under one lock: a single logical thread drives a
module set, while builds themselves run in the execution engine.
"""

import logging
import threading
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from core.contracts import ModuleName, ModuleStatus
from core.errors import BuildBlocked, NoModulesSelected
from core.logging import log_context
from core.models import (
    BlockageCause,
    BuildAttempt,
    ChangeSet,
    Module,
    ModuleSet,
    QueueItem,
    Selection,
)
from infrastructure.locking import LockNotAcquired, LockService
from orchestrator.dispatch import DispatchStrategy, ExecutionEngine
from orchestrator.engine.blockage import BlockageResolver
from orchestrator.engine.graph import DependencyGraph, GraphBuilder, PeerSet
from orchestrator.engine.selector import IncrementalSelector, PreviousStatus
from orchestrator.numbering import BuildNumberStore, BuildNumberSynchronizer
from orchestrator.registry import ModuleRegistry
from repositories.build_number_repo import SET_TARGET, PostgresBuildNumberRepository
from repositories.module_store import FileModuleStore
from services.descriptor_service import YamlDescriptorSource

logger = logging.getLogger(__name__)


class ModuleSetService:
    """Service for one module set."""

    def __init__(
        self,
        store: FileModuleStore,
        engine: ExecutionEngine,
        module_set_name: str,
        descriptor_source: Optional[YamlDescriptorSource] = None,
        counter_repo: Optional[PostgresBuildNumberRepository] = None,
        lock_service: Optional[LockService] = None,
        workspace: str = ".",
        default_descriptor_pattern: str = "**/module.yaml",
        poll_interval: float = 2.0,
    ):
        """
        Initialize module set service.

        Args:
            store: Configuration store (and counter store unless counter_repo)
            engine: Execution engine builds are submitted to
            module_set_name: Module set to manage; created if never saved
            descriptor_source: Descriptor discovery (defaults to YAML)
            counter_repo: Optional PostgreSQL counter repository
            lock_service: Exclusion zone for build numbering
            workspace: Workspace root scanned for descriptors
            default_descriptor_pattern: Used when the set declares none
            poll_interval: Seconds between polls in wait_for_completion
        """
        self.store = store
        self.engine = engine
        self.descriptor_source = descriptor_source or YamlDescriptorSource()
        self.counter_repo = counter_repo
        self.counter_store: BuildNumberStore = counter_repo or store
        self.workspace = workspace
        self.default_descriptor_pattern = default_descriptor_pattern
        self.poll_interval = poll_interval

        self.graph_builder = GraphBuilder()
        self.selector = IncrementalSelector()
        self.blockage = BlockageResolver()

        module_set, modules = self._load(module_set_name)
        self._abort_interrupted(module_set, modules)
        self.registry = ModuleRegistry(module_set, modules, graph_builder=self.graph_builder)
        self.lock_service = lock_service or LockService()
        self.synchronizer = BuildNumberSynchronizer(self.counter_store, self.lock_service)
        self.dispatcher = DispatchStrategy(
            self.registry,
            self.synchronizer,
            engine,
            selector=self.selector,
            graph_builder=self.graph_builder,
        )

        self._lock = threading.RLock()
        self._attempts: Dict[int, BuildAttempt] = {}

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    def _load(self, name: str):
        module_set = self.store.load_module_set(name)
        if module_set is None:
            logger.info(f"Module set {name} not found in storage, starting empty")
            module_set = ModuleSet(name=name)
        modules = self.store.load_modules(name)

        if self.counter_repo is not None:
            counters = self.counter_repo.load_next_build_numbers(name)
            stored = counters.get(SET_TARGET)
            if stored and stored > module_set.next_build_number:
                module_set.next_build_number = stored
            for module in modules:
                stored = counters.get(module.key)
                if stored and stored > module.next_build_number:
                    module.next_build_number = stored

        logger.info(f"Loaded module set {name} with {len(modules)} modules")
        return module_set, modules

    def _abort_interrupted(self, module_set: ModuleSet, modules: List[Module]) -> None:
        """
        Mark builds left BUILDING or QUEUED by a previous process as ABORTED.

        Attempts live only in memory, so nothing would ever refresh them and
        the set would stay blocked.
        """
        interrupted = [m for m in modules if m.status.is_active()]
        for module in interrupted:
            module.status = ModuleStatus.ABORTED
            self.store.save_module(module_set.name, module)
        if module_set.status.is_active():
            module_set.status = ModuleStatus.ABORTED
            self.store.save_module_set(module_set)
            interrupted.append(module_set)
        if interrupted:
            logger.warning(
                f"Marked {len(interrupted)} interrupted builds of {module_set.name} as aborted"
            )

    def reload(self) -> None:
        """Re-read configuration, modules and counters from storage."""
        with self._lock:
            module_set, modules = self._load(self.module_set.name)
            self.registry.module_set = module_set
            self.registry.reload(modules)

    def save(self) -> None:
        """
        Save the module set.

        Per-module builds also save every module; aggregated builds keep
        module configuration untouched.
        """
        module_set = self.module_set
        self.store.save_module_set(module_set)
        if self.counter_repo is not None:
            self.counter_repo.save_next_build_number(module_set.name, module_set)
        if not module_set.aggregator_style_build:
            for module in self.registry.modules():
                self._save_module(module)

    def _save_module(self, module: Module) -> None:
        self.store.save_module(self.module_set.name, module)
        if self.counter_repo is not None:
            self.counter_repo.save_next_build_number(self.module_set.name, module)

    def _save_state(self) -> None:
        """Persist set and module statuses after a dispatch transition."""
        self.store.save_module_set(self.module_set)
        for module in self.registry.modules():
            self.store.save_module(self.module_set.name, module)

    def update_configuration(self, changes: Mapping[str, Any]) -> ModuleSet:
        """
        Apply configuration changes to the module set and save it.

        Raises:
            pydantic.ValidationError: the resulting configuration is invalid
        """
        with self._lock:
            protected = {"name", "next_build_number", "status", "last_result"}
            data = self.module_set.model_dump()
            data.update({k: v for k, v in changes.items() if k not in protected})
            updated = ModuleSet.model_validate(data)
            self.registry.module_set = updated
            self.registry.invalidate()
            self.save()
        logger.info(f"Updated configuration of {updated.name}: {sorted(changes)}")
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def module_set(self) -> ModuleSet:
        return self.registry.module_set

    def module_order(self) -> List[Module]:
        """Active modules in dependency order."""
        return self.registry.list_active()

    def modules(self) -> List[Module]:
        return self.registry.modules()

    def disabled_modules(self) -> List[Module]:
        return self.registry.list_disabled(True)

    def get_module(self, name: Union[ModuleName, str]) -> Optional[Module]:
        return self.registry.lookup(name)

    def dependency_graph(self, include_peers: bool = False) -> DependencyGraph:
        """Graph of the active modules, optionally with other stored sets."""
        return self.graph_builder.build(
            self.module_set,
            self.registry.list_active(),
            peers=self._peers() if include_peers else (),
        )

    def _peers(self) -> List[PeerSet]:
        peers = []
        for name in self.store.list_module_sets():
            if name == self.module_set.name:
                continue
            peer_set = self.store.load_module_set(name)
            if peer_set is not None:
                peers.append((peer_set, self.store.load_modules(name)))
        return peers

    def cause_of_blockage(self, host_cause: Optional[BlockageCause] = None) -> Optional[BlockageCause]:
        """Why a build of the module set cannot start now, None if it can."""
        return self.blockage.resolve(self.module_set, self.registry.modules(), host_cause)

    def module_cause_of_blockage(
        self,
        name: Union[ModuleName, str],
        host_cause: Optional[BlockageCause] = None,
    ) -> Optional[BlockageCause]:
        """
        Why a build of one module cannot start now.

        Raises:
            KeyError: unknown module
        """
        module = self.registry.lookup(name)
        if module is None:
            raise KeyError(f"Module not found: {name}")
        modules = self.registry.modules()
        graph = self.graph_builder.build(self.module_set, [m for m in modules if not m.disabled])
        return self.blockage.resolve_module(module, self.module_set, graph, modules, host_cause)

    def preview_selection(
        self,
        change_set: ChangeSet,
        previous_statuses: Optional[Mapping[str, PreviousStatus]] = None,
    ) -> Selection:
        """What an incremental build would select now, without building."""
        modules = self.registry.list_active()
        graph = self.graph_builder.build(self.module_set, modules)
        return self.selector.select(self.module_set, modules, change_set, graph, previous_statuses)

    def queue_items(self) -> List[QueueItem]:
        """Submitted builds of the set and its modules that have not finished."""
        items = []
        for attempt in self.list_attempts(active_only=True):
            if attempt.handle is not None:
                items.append(QueueItem(
                    task=attempt.module_set,
                    build_number=attempt.build_number,
                    handle=attempt.handle,
                    status=attempt.status,
                ))
            for child in attempt.pending_children():
                cause = self.module_cause_of_blockage(child.module)
                items.append(QueueItem(
                    task=child.module,
                    build_number=child.build_number,
                    handle=child.handle,
                    status=child.status,
                    why=cause.short_description if cause else None,
                ))
        return items

    # ------------------------------------------------------------------
    # Build attempts
    # ------------------------------------------------------------------

    def trigger_build(
        self,
        change_set: Optional[ChangeSet] = None,
        upstream_parameters: Optional[Mapping[str, Any]] = None,
        previous_statuses: Optional[Mapping[str, PreviousStatus]] = None,
        host_cause: Optional[BlockageCause] = None,
    ) -> Optional[BuildAttempt]:
        """
        Start a build cycle unless the module set is blocked.

        Returns:
            The attempt, or None when incremental selection found nothing
            to build (no build number is consumed)

        Raises:
            BuildBlocked: a module is still building or queued,
                the host reported a cause, or another process holds the
                build lock
        """
        name = self.module_set.name
        with self._lock:
            # Statuses must reflect finished builds before admission
            for active in self.list_attempts(active_only=True):
                self.refresh(active.build_number)

            cause = self.cause_of_blockage(host_cause)
            if cause is not None:
                logger.info(f"Build of {name} not started: {cause}")
                raise BuildBlocked(name, cause)

            try:
                with self.lock_service.require_build_lock(name):
                    attempt = self.dispatcher.dispatch(
                        change_set, upstream_parameters, previous_statuses
                    )
            except LockNotAcquired:
                cause = BlockageCause(reason=f"Another orchestrator is dispatching {name}")
                logger.info(f"Build of {name} not started: {cause}")
                raise BuildBlocked(name, cause)
            except NoModulesSelected as e:
                logger.info(str(e))
                return None

            if attempt.build_number is not None:
                self._attempts[attempt.build_number] = attempt
            self._save_state()
        return attempt

    def get_attempt(self, build_number: int) -> Optional[BuildAttempt]:
        return self._attempts.get(build_number)

    def list_attempts(self, active_only: bool = False) -> List[BuildAttempt]:
        attempts = sorted(self._attempts.values(), key=lambda a: a.build_number)
        if active_only:
            return [a for a in attempts if not a.is_terminal]
        return attempts

    def refresh(self, build_number: int) -> BuildAttempt:
        """
        Poll the engine for one attempt.

        Raises:
            KeyError: unknown build number
        """
        with self._lock:
            attempt = self._require_attempt(build_number)
            was_terminal = attempt.is_terminal
            self.dispatcher.refresh(attempt)
            if not was_terminal:
                self._save_state()
        return attempt

    def refresh_all(self) -> List[BuildAttempt]:
        return [self.refresh(a.build_number) for a in self.list_attempts(active_only=True)]

    def cancel(self, build_number: int) -> BuildAttempt:
        """
        Request cancellation of an attempt.

        Raises:
            KeyError: unknown build number
        """
        with self._lock:
            attempt = self._require_attempt(build_number)
            return self.dispatcher.cancel(attempt)

    def wait_for_completion(
        self,
        build_number: int,
        timeout: Optional[float] = None,
    ) -> BuildAttempt:
        """
        Poll until the attempt is terminal.

        Raises:
            KeyError: unknown build number
            TimeoutError: still running after ``timeout`` seconds
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        attempt = self.refresh(build_number)
        while not attempt.is_terminal:
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(
                    f"Build #{build_number} of {self.module_set.name} still running "
                    f"after {timeout}s"
                )
            time.sleep(self.poll_interval)
            attempt = self.refresh(build_number)
        return attempt

    def _require_attempt(self, build_number: int) -> BuildAttempt:
        attempt = self._attempts.get(build_number)
        if attempt is None:
            raise KeyError(f"Build #{build_number} of {self.module_set.name} not found")
        return attempt

    # ------------------------------------------------------------------
    # Module lifecycle
    # ------------------------------------------------------------------

    def sync_modules(self, workspace: Optional[str] = None) -> Dict[str, List[str]]:
        """
        Reconcile the registry with the descriptors in the workspace.

        New modules are registered, vanished modules disabled, rediscovered
        modules re-enabled, and changed descriptors applied.

        Returns:
            Module names per change: added, updated, disabled, enabled
        """
        module_set = self.module_set
        root = workspace or self.workspace
        descriptors = self.descriptor_source.discover_modules(
            root,
            module_set.descriptor_pattern or self.default_descriptor_pattern,
            module_set.descriptor_excludes_pattern,
            module_set.relative_path_to_descriptor_from_module_root,
        )

        report: Dict[str, List[str]] = {"added": [], "updated": [], "disabled": [], "enabled": []}

        with self._lock, log_context(module_set=module_set.name, operation="sync_modules"):
            seen = set()
            for descriptor in descriptors:
                key = str(descriptor.name)
                seen.add(key)
                existing = self.registry.lookup(key)

                if existing is None:
                    module = Module(
                        name=descriptor.name,
                        display_name=descriptor.display_name,
                        root_path=descriptor.root_path,
                        dependencies=descriptor.dependencies,
                    )
                    self.registry.register(module)
                    self._save_module(module)
                    report["added"].append(key)
                    continue

                changes = {}
                if existing.root_path != descriptor.root_path:
                    changes["root_path"] = descriptor.root_path
                if existing.dependencies != descriptor.dependencies:
                    changes["dependencies"] = descriptor.dependencies
                if existing.display_name != descriptor.display_name:
                    changes["display_name"] = descriptor.display_name
                if existing.disabled:
                    changes["disabled"] = False
                    report["enabled"].append(key)
                if not changes:
                    continue

                updated = existing.model_copy(update=changes)
                self.registry.update(updated)
                self._save_module(updated)
                if set(changes) - {"disabled"}:
                    report["updated"].append(key)

            for module in self.registry.modules():
                if module.key not in seen and not module.disabled:
                    updated = self.registry.set_disabled(module.key, True)
                    self._save_module(updated)
                    report["disabled"].append(module.key)

        logger.info(
            f"Synced modules of {module_set.name}: "
            + ", ".join(f"{k}={len(v)}" for k, v in report.items())
        )
        return report

    def delete_module(self, name: Union[ModuleName, str]) -> Optional[Module]:
        """Remove a module from the registry and storage. Idempotent."""
        with self._lock:
            removed = self.registry.unregister(name)
            if removed is None:
                return None
            self.store.delete_module(self.module_set.name, removed.name)
            if self.counter_repo is not None:
                self.counter_repo.delete_module(self.module_set.name, removed.key)
        return removed

    def delete_disabled_modules(self) -> List[str]:
        """Delete every disabled module. Returns the deleted names."""
        deleted = []
        for module in self.registry.list_disabled(True):
            if self.delete_module(module.name) is not None:
                deleted.append(module.key)
        logger.info(f"Deleted {len(deleted)} disabled modules of {self.module_set.name}")
        return deleted

    def shutdown(self, wait: bool = False) -> None:
        shutdown = getattr(self.engine, "shutdown", None)
        if shutdown is not None:
            shutdown(wait=wait)


__all__ = ["ModuleSetService"]
