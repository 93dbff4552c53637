# ============================================================================
# GRAPH CONTRIBUTOR MODELS
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core model - Publishers and build wrappers
# PURPOSE: Closed set of collaborators that contribute graph edges/resources
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: DownstreamTrigger, UpstreamTrigger, ResourceLock, Contributor
# DEPENDENCIES: pydantic
# ============================================================================
"""
Graph Contributor Models

Publishers and build wrappers attached to a module set (or, in per-module
mode, to a module) can add edges to the dependency graph and declare
resource activities. The set of variants is closed: each variant is a
pydantic model tagged by ``kind`` and the ``Contributor`` union is
discriminated on it, so configuration loaded from YAML resolves to exactly
one variant.

Every variant implements:
    edges(owner)          -> list of (from_node, to_node)
    resource_activities() -> set of resource names
"""

from typing import Annotated, List, Literal, Set, Tuple, Union

from pydantic import BaseModel, Field


Edge = Tuple[str, str]


class DownstreamTrigger(BaseModel):
    """Publisher: a finished build of the owner triggers the listed projects."""
    kind: Literal["downstream_trigger"] = "downstream_trigger"
    projects: List[str] = Field(default_factory=list)

    def edges(self, owner: str) -> List[Edge]:
        return [(owner, project) for project in self.projects]

    def resource_activities(self) -> Set[str]:
        return set()


class UpstreamTrigger(BaseModel):
    """Build wrapper: the owner is rebuilt whenever a listed project builds."""
    kind: Literal["upstream_trigger"] = "upstream_trigger"
    projects: List[str] = Field(default_factory=list)

    def edges(self, owner: str) -> List[Edge]:
        return [(project, owner) for project in self.projects]

    def resource_activities(self) -> Set[str]:
        return set()


class ResourceLock(BaseModel):
    """Build wrapper: builds of the owner hold an exclusive named resource."""
    kind: Literal["resource_lock"] = "resource_lock"
    resource: str = Field(..., min_length=1, max_length=128)

    def edges(self, owner: str) -> List[Edge]:
        return []

    def resource_activities(self) -> Set[str]:
        return {self.resource}


Contributor = Annotated[
    Union[DownstreamTrigger, UpstreamTrigger, ResourceLock],
    Field(discriminator="kind"),
]


__all__ = [
    "Edge",
    "DownstreamTrigger",
    "UpstreamTrigger",
    "ResourceLock",
    "Contributor",
]
