# ============================================================================
# BUILD ATTEMPT MODELS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core model - Per-cycle dispatch records
# PURPOSE: Track one module set build cycle and its child builds
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: DispatchState, SelectionKind, Selection, BlockageCause (+variants),
#          ChildBuild, BuildAttempt, QueueItem
# DEPENDENCIES: pydantic
# ============================================================================
"""
Build Attempt Models

Key concept:
- Selection = which modules a cycle intends to build (and why)
- BuildAttempt = INSTANCE of one module set build cycle
- ChildBuild = one per-module submission within a BuildAttempt

A BuildAttempt is created when a cycle begins and discarded once dispatch
completes; its effects persist only through module statuses and counters.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from core.contracts import BuildMode, BuildResult, ExecutionStatus


# ============================================================================
# SELECTION
# ============================================================================

class SelectionKind(str, Enum):
    """Outcome of incremental selection."""
    ALL = "all"          # Selector bypassed, every active module builds
    SUBSET = "subset"    # Only the listed modules build
    NONE = "none"        # Nothing to build, skip the attempt


class Selection(BaseModel):
    """Modules selected for one build cycle, in build order."""
    kind: SelectionKind
    modules: List[str] = Field(default_factory=list)
    reasons: Dict[str, str] = Field(
        default_factory=dict,
        description="module -> why it was selected (changed, broken, upstream, downstream)",
    )

    @property
    def is_empty(self) -> bool:
        return self.kind == SelectionKind.NONE

    def __contains__(self, module: str) -> bool:
        return module in self.modules


# ============================================================================
# BLOCKAGE CAUSES
# ============================================================================

class BlockageCause(BaseModel):
    """A reason why a pending build cannot start yet."""
    kind: str = "host"
    reason: str = ""

    @property
    def short_description(self) -> str:
        return self.reason

    def __str__(self) -> str:
        return self.short_description


class ModuleBuildInProgress(BlockageCause):
    """One of the set's own modules is building or queued."""
    kind: str = "module_build_in_progress"
    module: str

    @property
    def short_description(self) -> str:
        return f"A build of module {self.module} is in progress"


class ModuleSetBuildInProgress(BlockageCause):
    """The parent set is running an aggregated build."""
    kind: str = "module_set_build_in_progress"
    module_set: str

    @property
    def short_description(self) -> str:
        return f"A build of module set {self.module_set} is in progress"


class UpstreamModuleInProgress(BlockageCause):
    """A module this one depends on is building or queued."""
    kind: str = "upstream_module_in_progress"
    module: str

    @property
    def short_description(self) -> str:
        return f"Upstream module {self.module} is building"


# ============================================================================
# DISPATCH RECORDS
# ============================================================================

class DispatchState(str, Enum):
    """
    Dispatch state machine for one build cycle.

    State transitions:
        START -> AGGREGATED_DISPATCH -> COMPLETED
        START -> SELECT_MODULES -> PER_MODULE_DISPATCH -> COMPLETED
                                -> SKIP
        START | SELECT_MODULES -> FAILED (structural error)
    """
    START = "start"
    AGGREGATED_DISPATCH = "aggregated_dispatch"
    SELECT_MODULES = "select_modules"
    PER_MODULE_DISPATCH = "per_module_dispatch"
    SKIP = "skip"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self in (DispatchState.SKIP, DispatchState.COMPLETED, DispatchState.FAILED)


class ChildBuild(BaseModel):
    """One per-module submission inside a build attempt."""
    module: str
    build_number: Optional[int] = None
    handle: Optional[str] = None
    status: Optional[ExecutionStatus] = None
    result: Optional[BuildResult] = None
    depends_on: List[str] = Field(
        default_factory=list,
        description="Selected upstream modules this child waits for",
    )
    error: Optional[str] = None
    cancel_requested: bool = False
    submitted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.result is not None


class BuildAttempt(BaseModel):
    """
    One module set build cycle.

    Lifecycle:
        1. Created in START when a cycle is triggered
        2. Build number assigned before anything is submitted
        3. Children (or one aggregated submission) dispatched
        4. COMPLETED once every submission reports a terminal status
    """
    module_set: str
    mode: BuildMode
    state: DispatchState = DispatchState.START
    build_number: Optional[int] = None
    selected: List[str] = Field(default_factory=list)

    # Per-module mode
    children: Dict[str, ChildBuild] = Field(default_factory=dict)

    # Aggregated mode
    handle: Optional[str] = None
    status: Optional[ExecutionStatus] = None
    properties: Dict[str, Any] = Field(default_factory=dict)

    result: Optional[BuildResult] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    cancel_requested: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal()

    def pending_children(self) -> List[ChildBuild]:
        return [c for c in self.children.values() if not c.is_terminal]

    def child_results(self) -> List[BuildResult]:
        return [c.result for c in self.children.values() if c.result is not None]


class QueueItem(BaseModel):
    """A submitted build of the set or one of its modules that has not finished."""
    task: str
    build_number: Optional[int] = None
    handle: Optional[str] = None
    status: Optional[ExecutionStatus] = None
    why: Optional[str] = Field(default=None, description="Blockage cause, if blocked")


__all__ = [
    "SelectionKind",
    "Selection",
    "BlockageCause",
    "ModuleBuildInProgress",
    "ModuleSetBuildInProgress",
    "UpstreamModuleInProgress",
    "DispatchState",
    "ChildBuild",
    "BuildAttempt",
    "QueueItem",
]
