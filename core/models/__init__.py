# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the module set orchestrator.

    - ModuleSet / Module: persisted entities (configuration + counters)
    - ModuleDescriptor: output of descriptor discovery
    - ChangeSet: input to incremental selection
    - BuildAttempt / ChildBuild / Selection / BlockageCause: per-cycle state
"""

from core.models.contributors import (
    Contributor,
    DownstreamTrigger,
    UpstreamTrigger,
    ResourceLock,
)
from core.models.module import Module, normalize_path
from core.models.module_set import ModuleSet
from core.models.descriptor import ModuleDescriptor
from core.models.changeset import ChangeEntry, ChangeSet, UpstreamCause
from core.models.build import (
    BlockageCause,
    BuildAttempt,
    ChildBuild,
    DispatchState,
    ModuleBuildInProgress,
    ModuleSetBuildInProgress,
    Selection,
    SelectionKind,
    QueueItem,
    UpstreamModuleInProgress,
)

__all__ = [
    # Contributors
    "Contributor",
    "DownstreamTrigger",
    "UpstreamTrigger",
    "ResourceLock",
    # Entities
    "Module",
    "ModuleSet",
    "ModuleDescriptor",
    "normalize_path",
    # Inputs
    "ChangeEntry",
    "ChangeSet",
    "UpstreamCause",
    # Build cycle
    "BlockageCause",
    "BuildAttempt",
    "ChildBuild",
    "DispatchState",
    "ModuleBuildInProgress",
    "ModuleSetBuildInProgress",
    "Selection",
    "SelectionKind",
    "QueueItem",
    "UpstreamModuleInProgress",
]
