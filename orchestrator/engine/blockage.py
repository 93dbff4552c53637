# ============================================================================
# BLOCKAGE RESOLVER
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Queue blockage explanation
# PURPOSE: Explain why a pending module set or module build cannot start
# CREATED: 19 OCT 2026
# ============================================================================
"""
Blockage Resolver

Pure queries consulted by the queue whenever the module set or one of its
modules is a scheduling candidate. A cause supplied by the host scheduler
always wins.
"""

from typing import Optional, Sequence

from core.models import (
    BlockageCause,
    Module,
    ModuleBuildInProgress,
    ModuleSet,
    ModuleSetBuildInProgress,
    UpstreamModuleInProgress,
)
from orchestrator.engine.graph import DependencyGraph


class BlockageResolver:
    """Computes blockage causes."""

    def resolve(
        self,
        module_set: ModuleSet,
        modules: Sequence[Module],
        host_cause: Optional[BlockageCause] = None,
    ) -> Optional[BlockageCause]:
        """
        Why a build of the module set is blocked.

        Args:
            module_set: The candidate module set
            modules: Its modules in registry order
            host_cause: Cause already determined by the host scheduler

        Returns:
            The host cause, else the first module that is building or queued,
            else None
        """
        if host_cause is not None:
            return host_cause

        for module in modules:
            if module.status.is_active():
                return ModuleBuildInProgress(module=module.key)
        return None

    def resolve_module(
        self,
        module: Module,
        module_set: ModuleSet,
        graph: DependencyGraph,
        modules: Sequence[Module],
        host_cause: Optional[BlockageCause] = None,
    ) -> Optional[BlockageCause]:
        """
        Why a build of one module is blocked.

        Order: host cause, an aggregated build of the parent set, then the
        first upstream module (in registry order) that is building or queued.
        """
        if host_cause is not None:
            return host_cause

        if module_set.aggregator_style_build and module_set.status.is_active():
            return ModuleSetBuildInProgress(module_set=module_set.name)

        upstream = set(graph.get_dependencies(module.key))
        for candidate in modules:
            if candidate.key in upstream and candidate.status.is_active():
                return UpstreamModuleInProgress(module=candidate.key)
        return None


__all__ = ["BlockageResolver"]
