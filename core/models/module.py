# ============================================================================
# MODULE MODEL
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core model - One buildable unit of a module set
# PURPOSE: Identity, dependencies, counters and status of a module
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: Module
# DEPENDENCIES: pydantic
# ============================================================================
"""
Module Model

A Module is one buildable unit discovered from its own descriptor and owned
by a module set. Modules are persisted under, and deleted with, their
module set.

Lifecycle:
    1. Created when a descriptor scan discovers it
    2. Disabled when a later scan no longer finds it
    3. Re-enabled if it reappears
    4. Removed when explicitly deleted by its owner
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from core.contracts import ModuleName, ModuleStatus
from core.models.contributors import Contributor


class Module(BaseModel):
    """
    A named sub-module of a module set.

    ``dependencies`` are declared references by module name. They may name
    modules outside the set (external upstream projects); those never
    produce intra-set ordering edges.
    """
    name: ModuleName
    display_name: Optional[str] = Field(default=None, max_length=256)

    # Workspace-relative root directory, posix separators ("" = workspace root)
    root_path: str = Field(default="", max_length=1024)

    dependencies: List[ModuleName] = Field(default_factory=list)

    disabled: bool = False
    next_build_number: int = Field(default=1, ge=1)
    status: ModuleStatus = Field(default=ModuleStatus.NOT_BUILT)

    # Per-module build wrappers/publishers (inert in aggregator mode)
    build_wrappers: List[Contributor] = Field(default_factory=list)
    publishers: List[Contributor] = Field(default_factory=list)

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("name", mode="before")
    @classmethod
    def parse_name(cls, v):
        """Allow ``organisation:name`` strings."""
        if isinstance(v, str):
            return ModuleName.from_string(v)
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def parse_dependencies(cls, v):
        if v is None:
            return []
        return [ModuleName.from_string(d) if isinstance(d, str) else d for d in v]

    @field_validator("root_path", mode="before")
    @classmethod
    def normalize_root_path(cls, v):
        if v is None:
            return ""
        return normalize_path(v)

    @property
    def key(self) -> str:
        """Graph node key and storage key."""
        return str(self.name)

    @property
    def is_building(self) -> bool:
        return self.status == ModuleStatus.BUILDING

    @property
    def is_in_queue(self) -> bool:
        return self.status == ModuleStatus.QUEUED

    def depends_on(self, other: ModuleName) -> bool:
        return other in self.dependencies

    def get_display_name(self) -> str:
        return self.display_name or self.name.name


def normalize_path(path: str) -> str:
    """Normalize a workspace path to posix form without leading './' or '/'."""
    path = path.replace("\\", "/").strip()
    while path.startswith("./"):
        path = path[2:]
    return path.strip("/")


__all__ = ["Module", "normalize_path"]
