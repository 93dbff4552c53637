# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Module set build orchestration
# PURPOSE: Registry, build numbering and dispatch of module set builds
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Module

Usage:
    from orchestrator import DispatchStrategy, ModuleRegistry

    registry = ModuleRegistry(module_set, modules)
    strategy = DispatchStrategy(registry, synchronizer, engine)
    attempt = strategy.dispatch(change_set)
"""

from .registry import ModuleRegistry, RegistrySnapshot
from .numbering import BuildNumberStore, BuildNumberSynchronizer
from .dispatch import DispatchStrategy, ExecutionEngine

__all__ = [
    "ModuleRegistry",
    "RegistrySnapshot",
    "BuildNumberStore",
    "BuildNumberSynchronizer",
    "DispatchStrategy",
    "ExecutionEngine",
]
