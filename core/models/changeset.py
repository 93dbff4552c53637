# ============================================================================
# CHANGE SET MODEL
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core model - Input to incremental selection
# PURPOSE: Changed paths and upstream causes of a build attempt
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ChangeEntry, UpstreamCause, ChangeSet
# DEPENDENCIES: pydantic
# ============================================================================
"""
Change Set Model

Supplied by the change source for each build attempt. Not owned by the
orchestrator - it is read, never stored.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from core.models.module import normalize_path


class ChangeEntry(BaseModel):
    """One changed path, workspace relative."""
    path: str = Field(..., min_length=1, max_length=4096)
    edit_type: str = Field(default="edit", pattern="^(add|edit|delete)$")
    revision: Optional[str] = None

    @field_validator("path", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_path(v) if isinstance(v, str) else v


class UpstreamCause(BaseModel):
    """The attempt was triggered by a build of another project."""
    project: str = Field(..., min_length=1, max_length=256)
    build_number: Optional[int] = None


class ChangeSet(BaseModel):
    """Ordered changed-path entries plus upstream causes for one attempt."""
    entries: List[ChangeEntry] = Field(default_factory=list)
    upstream_causes: List[UpstreamCause] = Field(default_factory=list)

    @classmethod
    def from_paths(cls, *paths: str) -> "ChangeSet":
        return cls(entries=[ChangeEntry(path=p) for p in paths])

    @property
    def paths(self) -> List[str]:
        return [entry.path for entry in self.entries]

    def is_empty(self) -> bool:
        return not self.entries and not self.upstream_causes


__all__ = ["ChangeEntry", "UpstreamCause", "ChangeSet"]
