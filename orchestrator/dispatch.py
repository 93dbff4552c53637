# ============================================================================
# DISPATCH STRATEGY
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Build cycle dispatch
# PURPOSE: Hand one aggregated build or many per-module builds to the engine
# CREATED: 19 OCT 2026
# ============================================================================
"""
Dispatch Strategy

Drives one build cycle of a module set through its state machine:

    START -> AGGREGATED_DISPATCH -> COMPLETED
    START -> SELECT_MODULES -> PER_MODULE_DISPATCH -> COMPLETED
                            -> SKIP (NoModulesSelected raised, nothing consumed)
    START | SELECT_MODULES -> FAILED (cycle, duplicate, build number sync)

A build number is assigned before anything is submitted. In per-module
mode each selected child is aligned to the parent's number and submitted
with the handles of its selected upstream modules; a rejected submission
fails that child only and marks its selected dependants not built.

The strategy only mutates in-memory state (attempt, module statuses,
counters through the synchronizer). Saving configuration and statuses is
the caller's job.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, Set

from core.contracts import BuildMode, BuildResult, ExecutionStatus, ModuleStatus
from core.errors import (
    BuildNumberSyncError,
    CycleDetectedError,
    DispatchSubmissionError,
    DuplicateModuleError,
    ModuleSetError,
    NoModulesSelected,
)
from core.logging import log_checkpoint, log_context
from core.models import (
    BuildAttempt,
    ChangeSet,
    ChildBuild,
    DispatchState,
    Module,
    ModuleSet,
)
from orchestrator.engine.graph import GraphBuilder
from orchestrator.engine.selector import IncrementalSelector, PreviousStatus
from orchestrator.numbering import BuildNumberSynchronizer
from orchestrator.registry import ModuleRegistry

logger = logging.getLogger(__name__)


class ExecutionEngine(Protocol):
    """
    Runs builds. Submissions raise DispatchSubmissionError when rejected.

    ``depends_on`` lists handles the submitted build must wait for.
    """

    def submit_module_build(
        self,
        module: Module,
        build_number: int,
        upstream_parameters: Mapping[str, Any],
        depends_on: Sequence[str],
    ) -> str:
        ...

    def submit_aggregated_build(
        self,
        module_set: ModuleSet,
        modules: Sequence[Module],
        build_number: int,
        properties: Mapping[str, Any],
    ) -> str:
        ...

    def status(self, handle: str) -> ExecutionStatus:
        ...

    def cancel(self, handle: str) -> None:
        ...

    def release(self, handles: Sequence[str]) -> None:
        """Forget finished builds once their attempt has completed."""
        ...


# Errors that abort a whole cycle before any child exists
STRUCTURAL_ERRORS = (CycleDetectedError, DuplicateModuleError, BuildNumberSyncError)


class DispatchStrategy:
    """
    Dispatches build cycles of one module set.

    Usage:
        strategy = DispatchStrategy(registry, synchronizer, engine)
        attempt = strategy.dispatch(change_set)
        while not attempt.is_terminal:
            strategy.refresh(attempt)
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        synchronizer: BuildNumberSynchronizer,
        engine: ExecutionEngine,
        selector: Optional[IncrementalSelector] = None,
        graph_builder: Optional[GraphBuilder] = None,
    ):
        self.registry = registry
        self.synchronizer = synchronizer
        self.engine = engine
        self.selector = selector or IncrementalSelector()
        self.graph_builder = graph_builder or GraphBuilder()

    @property
    def module_set(self) -> ModuleSet:
        return self.registry.module_set

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(
        self,
        change_set: Optional[ChangeSet] = None,
        upstream_parameters: Optional[Mapping[str, Any]] = None,
        previous_statuses: Optional[Mapping[str, PreviousStatus]] = None,
    ) -> BuildAttempt:
        """
        Start one build cycle.

        Returns:
            The build attempt (FAILED on structural errors)

        Raises:
            NoModulesSelected: incremental selection found nothing to build
        """
        change_set = change_set or ChangeSet()
        with log_context(module_set=self.module_set.name, operation="dispatch"):
            if self.module_set.aggregator_style_build:
                return self._dispatch_aggregated(change_set)
            return self._dispatch_per_module(change_set, upstream_parameters, previous_statuses)

    def _dispatch_aggregated(self, change_set: ChangeSet) -> BuildAttempt:
        module_set = self.module_set
        attempt = BuildAttempt(module_set=module_set.name, mode=BuildMode.AGGREGATED)

        try:
            modules = self.registry.list_active()
            attempt.state = DispatchState.AGGREGATED_DISPATCH
            number = self.synchronizer.assign_build_number(module_set, self.registry.modules())
        except STRUCTURAL_ERRORS as e:
            return self._fail(attempt, e)

        attempt.build_number = number
        attempt.selected = [m.key for m in modules]

        if module_set.incremental_build and module_set.changed_modules_property:
            changed = self.selector.match_changed_modules(modules, change_set)
            attempt.properties[module_set.changed_modules_property] = ",".join(changed)

        with log_context(build_number=number):
            try:
                attempt.handle = self.engine.submit_aggregated_build(
                    module_set, modules, number, attempt.properties
                )
            except DispatchSubmissionError as e:
                logger.error(f"Aggregated build of {module_set.name} rejected: {e.message}")
                attempt.error = e.message
                attempt.error_type = type(e).__name__
                self._complete(attempt, BuildResult.FAILURE)
                return attempt

            attempt.status = ExecutionStatus.PENDING
            module_set.status = ModuleStatus.QUEUED
            for module in modules:
                module.status = ModuleStatus.QUEUED

            log_checkpoint(
                "aggregated_build_submitted",
                {"handle": attempt.handle, "module_count": len(modules)},
                logger=logger,
            )
        return attempt

    def _dispatch_per_module(
        self,
        change_set: ChangeSet,
        upstream_parameters: Optional[Mapping[str, Any]],
        previous_statuses: Optional[Mapping[str, PreviousStatus]],
    ) -> BuildAttempt:
        module_set = self.module_set
        attempt = BuildAttempt(module_set=module_set.name, mode=BuildMode.PER_MODULE)

        try:
            modules = self.registry.list_active()
            graph = self.graph_builder.build(module_set, modules)
            attempt.state = DispatchState.SELECT_MODULES
            selection = self.selector.select(
                module_set, modules, change_set, graph, previous_statuses
            )
            if selection.is_empty:
                raise NoModulesSelected(module_set.name)

            attempt.state = DispatchState.PER_MODULE_DISPATCH
            number = self.synchronizer.assign_build_number(module_set, self.registry.modules())
        except STRUCTURAL_ERRORS as e:
            return self._fail(attempt, e)

        attempt.build_number = number
        attempt.selected = list(selection.modules)
        selected: Set[str] = set(selection.modules)
        not_submitted: Set[str] = set()
        parameters: Dict[str, Any] = (
            dict(upstream_parameters or {}) if module_set.use_upstream_parameters else {}
        )

        with log_context(build_number=number):
            for key in selection.modules:
                module = self.registry.lookup(key)
                upstream = [dep for dep in graph.get_dependencies(key) if dep in selected]
                child = ChildBuild(module=key, depends_on=upstream)
                attempt.children[key] = child

                blocked_by = next((u for u in upstream if u in not_submitted), None)
                if blocked_by is not None:
                    child.result = BuildResult.NOT_BUILT
                    child.error = f"Upstream module {blocked_by} was not submitted"
                    child.completed_at = datetime.utcnow()
                    not_submitted.add(key)
                    continue

                with log_context(module=key):
                    try:
                        child.build_number = self.synchronizer.assign_module_build_number(
                            module_set, module, number
                        )
                        child.handle = self.engine.submit_module_build(
                            module,
                            child.build_number,
                            parameters,
                            [attempt.children[u].handle for u in upstream],
                        )
                    except (DispatchSubmissionError, BuildNumberSyncError) as e:
                        logger.error(f"Module {key} not submitted: {e.message}")
                        child.result = BuildResult.FAILURE
                        child.error = e.message
                        child.completed_at = datetime.utcnow()
                        module.status = ModuleStatus.FAILURE
                        not_submitted.add(key)
                        continue

                    child.status = ExecutionStatus.PENDING
                    child.submitted_at = datetime.utcnow()
                    module.status = ModuleStatus.QUEUED
                    log_checkpoint(
                        "module_submitted",
                        {
                            "handle": child.handle,
                            "module_build_number": child.build_number,
                            "reason": selection.reasons.get(key),
                        },
                        logger=logger,
                    )

            if attempt.pending_children():
                module_set.status = ModuleStatus.BUILDING
            else:
                self._complete(attempt, BuildResult.worst(attempt.child_results()))

        return attempt

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def refresh(self, attempt: BuildAttempt) -> BuildAttempt:
        """Poll the engine and complete the attempt once everything finished."""
        if attempt.is_terminal:
            return attempt

        with log_context(module_set=attempt.module_set, build_number=attempt.build_number):
            if attempt.mode == BuildMode.AGGREGATED:
                self._refresh_aggregated(attempt)
            else:
                self._refresh_children(attempt)
        return attempt

    def _refresh_aggregated(self, attempt: BuildAttempt) -> None:
        status = self.engine.status(attempt.handle)
        attempt.status = status
        module_status = status.to_module_status()
        self.module_set.status = module_status
        for key in attempt.selected:
            module = self.registry.lookup(key)
            if module is not None:
                module.status = module_status

        if status.is_terminal():
            self._complete(attempt, status.to_result())

    def _refresh_children(self, attempt: BuildAttempt) -> None:
        for child in attempt.pending_children():
            status = self.engine.status(child.handle)
            child.status = status
            module = self.registry.lookup(child.module)
            if module is not None:
                module.status = status.to_module_status()
            if status.is_terminal():
                child.result = status.to_result()
                child.completed_at = datetime.utcnow()
                logger.info(f"Module {child.module} finished: {child.result.value}")

        if not attempt.pending_children():
            self._complete(attempt, BuildResult.worst(attempt.child_results()))

    def cancel(self, attempt: BuildAttempt) -> BuildAttempt:
        """
        Request cancellation of everything still running.

        Finished children are unaffected and the build number stays consumed.
        The attempt completes on a later refresh once the engine reports.
        """
        if attempt.is_terminal:
            return attempt

        attempt.cancel_requested = True
        if attempt.mode == BuildMode.AGGREGATED:
            self.engine.cancel(attempt.handle)
        else:
            for child in attempt.pending_children():
                self.engine.cancel(child.handle)
                child.cancel_requested = True

        logger.info(f"Cancellation requested for {attempt.module_set} #{attempt.build_number}")
        return attempt

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def _complete(self, attempt: BuildAttempt, result: Optional[BuildResult]) -> None:
        result = result or BuildResult.SUCCESS
        attempt.result = result
        attempt.state = DispatchState.COMPLETED
        attempt.completed_at = datetime.utcnow()
        self.module_set.status = ModuleStatus.from_result(result)
        self.module_set.last_result = result
        log_checkpoint(
            "attempt_completed",
            {"result": result.value, "build_number": attempt.build_number},
            logger=logger,
        )
        handles = [attempt.handle] if attempt.handle else []
        handles.extend(c.handle for c in attempt.children.values() if c.handle)
        if handles:
            self.engine.release(handles)

    def _fail(self, attempt: BuildAttempt, error: ModuleSetError) -> BuildAttempt:
        logger.error(f"Build of {attempt.module_set} aborted: {error.message}")
        attempt.state = DispatchState.FAILED
        attempt.result = BuildResult.FAILURE
        attempt.error = error.message
        attempt.error_type = type(error).__name__
        attempt.completed_at = datetime.utcnow()
        self.module_set.status = ModuleStatus.FAILURE
        self.module_set.last_result = BuildResult.FAILURE
        return attempt


__all__ = ["DispatchStrategy", "ExecutionEngine", "STRUCTURAL_ERRORS"]
