# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - Request/Response schemas
# PURPOSE: Pydantic models for API validation
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
API Schemas

Request and response models for the API.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from core.contracts import BuildMode, BuildResult, ModuleStatus
from core.models import (
    BlockageCause,
    BuildAttempt,
    ChangeEntry,
    ChangeSet,
    Module,
    ModuleSet,
    QueueItem,
    UpstreamCause,
)
from orchestrator.engine.graph import DependencyGraph


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class ChangeSetRequest(BaseModel):
    """Changes that caused a build."""
    changed_paths: List[str] = Field(
        default_factory=list,
        description="Workspace relative paths changed since the last build",
    )
    upstream_causes: List[UpstreamCause] = Field(
        default_factory=list,
        description="Projects whose builds triggered this one",
    )
    previous_statuses: Dict[str, ModuleStatus] = Field(
        default_factory=dict,
        description="Override of the last known status per module",
    )

    def to_change_set(self) -> ChangeSet:
        return ChangeSet(
            entries=[ChangeEntry(path=p) for p in self.changed_paths],
            upstream_causes=self.upstream_causes,
        )


class BuildTriggerRequest(ChangeSetRequest):
    """Request to start a module set build."""
    upstream_parameters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Parameters of the triggering build, forwarded when enabled",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "changed_paths": ["libs/core/src/main.c"],
                    "upstream_causes": [{"project": "acme:toolchain", "build_number": 17}],
                }
            ]
        }
    }


class ModuleSetUpdate(BaseModel):
    """Configuration changes to a module set. Unset fields are left alone."""
    description: Optional[str] = None
    aggregator_style_build: Optional[bool] = None
    incremental_build: Optional[bool] = None
    ignore_upstream_changes: Optional[bool] = None
    allowed_to_trigger_downstream: Optional[bool] = None
    use_upstream_parameters: Optional[bool] = None
    archiving_disabled: Optional[bool] = None
    changed_modules_property: Optional[str] = Field(None, max_length=128)
    descriptor_pattern: Optional[str] = Field(None, max_length=512)
    descriptor_excludes_pattern: Optional[str] = Field(None, max_length=512)
    relative_path_to_descriptor_from_module_root: Optional[str] = Field(None, max_length=512)


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class ModuleResponse(BaseModel):
    """Module response."""
    name: str
    display_name: str
    root_path: str
    dependencies: List[str]
    disabled: bool
    next_build_number: int
    status: ModuleStatus

    @classmethod
    def from_module(cls, module: Module) -> "ModuleResponse":
        return cls(
            name=module.key,
            display_name=module.get_display_name(),
            root_path=module.root_path,
            dependencies=[str(d) for d in module.dependencies],
            disabled=module.disabled,
            next_build_number=module.next_build_number,
            status=module.status,
        )


class ModuleListResponse(BaseModel):
    """List of modules."""
    modules: List[ModuleResponse]
    total: int


class ModuleSetResponse(BaseModel):
    """Module set configuration and counters."""
    name: str
    description: Optional[str] = None
    build_mode: BuildMode
    incremental_build: bool
    ignore_upstream_changes: bool
    allowed_to_trigger_downstream: bool
    use_upstream_parameters: bool
    archiving_disabled: bool
    changed_modules_property: Optional[str] = None
    descriptor_pattern: Optional[str] = None
    descriptor_excludes_pattern: Optional[str] = None
    relative_path_to_descriptor_from_module_root: Optional[str] = None
    next_build_number: int
    status: ModuleStatus
    last_result: Optional[BuildResult] = None
    module_count: int
    has_disabled_module: bool
    updated_at: datetime

    @classmethod
    def from_module_set(
        cls,
        module_set: ModuleSet,
        module_count: int,
        has_disabled_module: bool,
    ) -> "ModuleSetResponse":
        return cls(
            **module_set.model_dump(
                exclude={"aggregator_style_build", "publishers", "build_wrappers"}
            ),
            build_mode=module_set.build_mode,
            module_count=module_count,
            has_disabled_module=has_disabled_module,
        )


class BlockageResponse(BaseModel):
    """Why a build cannot start. ``blocked`` is False when it can."""
    blocked: bool
    kind: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def from_cause(cls, cause: Optional[BlockageCause]) -> "BlockageResponse":
        if cause is None:
            return cls(blocked=False)
        return cls(blocked=True, kind=cause.kind, reason=cause.short_description)


class BuildTriggerResponse(BaseModel):
    """Outcome of a build trigger."""
    status: Literal["dispatched", "failed", "skipped"]
    attempt: Optional[BuildAttempt] = None
    message: Optional[str] = None


class SyncResponse(BaseModel):
    """Module changes applied by a descriptor sync."""
    added: List[str]
    updated: List[str]
    disabled: List[str]
    enabled: List[str]


class DeletedModulesResponse(BaseModel):
    deleted: List[str]
    total: int


class QueueResponse(BaseModel):
    items: List[QueueItem]
    total: int


class GraphResponse(BaseModel):
    """Dependency graph as node and edge lists."""
    nodes: List[str]
    edges: List[List[str]]
    resource_activities: List[str]

    @classmethod
    def from_graph(cls, graph: DependencyGraph) -> "GraphResponse":
        edges = [
            [source, target]
            for source in sorted(graph.forward_edges)
            for target in graph.forward_edges[source]
        ]
        return cls(
            nodes=sorted(graph.nodes),
            edges=edges,
            resource_activities=sorted(graph.resource_activities),
        )


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None


__all__ = [
    "ChangeSetRequest",
    "BuildTriggerRequest",
    "ModuleSetUpdate",
    "ModuleResponse",
    "ModuleListResponse",
    "ModuleSetResponse",
    "BlockageResponse",
    "BuildTriggerResponse",
    "SyncResponse",
    "DeletedModulesResponse",
    "QueueResponse",
    "GraphResponse",
    "ErrorResponse",
]
